"""Molecule overlap between cells and the choice of a merge target."""

from __future__ import annotations

from typing import Mapping, Sequence, Tuple

from cbmerge.cells import CellsDataContainer
from cbmerge.constants import MERGE_INTERSECT_FRACTION_BY_CELL
from cbmerge.logging_utils import get_logger

logger = get_logger(__name__)


def _shared_keys(items1: Sequence[Tuple[str, object]], items2: Sequence[Tuple[str, object]]):
    """Yield index pairs of equal keys from two key-sorted item sequences."""
    i = j = 0
    while i < len(items1) and j < len(items2):
        key1, key2 = items1[i][0], items2[j][0]
        if key1 < key2:
            i += 1
        elif key1 > key2:
            j += 1
        else:
            yield i, j
            i += 1
            j += 1


def intersection_fraction(
    genes1: Mapping[str, Mapping[str, int]],
    genes2: Mapping[str, Mapping[str, int]],
) -> float:
    """
    Fraction of molecules shared by two cells.

    Both arguments are gene -> molecule-identifier -> count mappings iterated in key
    order. Shared identifiers are counted within shared genes and divided by the
    smaller of the two cells' molecule-identifier totals.

    Raises
    ------
    ValueError
        If either cell has no molecules.
    """
    total1 = sum(len(umis) for umis in genes1.values())
    total2 = sum(len(umis) for umis in genes2.values())
    if total1 == 0 or total2 == 0:
        raise ValueError(
            f"Intersection fraction is undefined for empty cells (molecules: {total1}, {total2})"
        )

    gene_items1 = list(genes1.items())
    gene_items2 = list(genes2.items())
    shared = 0
    for i, j in _shared_keys(gene_items1, gene_items2):
        umis1 = list(gene_items1[i][1].items())
        umis2 = list(gene_items2[j][1].items())
        shared += sum(1 for _ in _shared_keys(umis1, umis2))

    return shared / min(total1, total2)


class MergeTargetResolver:
    """Pick the neighbour sharing the largest molecule fraction with a base cell."""

    def __init__(self, min_merge_fraction: float):
        self.min_merge_fraction = min_merge_fraction

    def resolve(
        self, container: CellsDataContainer, base_id: int, neighbour_ids: Sequence[int]
    ) -> Tuple[int, float]:
        """
        Return ``(target_id, fraction)``.

        Ties keep the earliest neighbour. ``target_id`` is ``base_id`` when the best
        fraction is below ``min_merge_fraction``.
        """
        if not neighbour_ids:
            raise ValueError("resolve() needs at least one neighbour")

        base_barcode = container.cell_barcode(base_id)
        base_genes = container.cell_genes(base_id)
        best_fraction = 0.0
        best_id = neighbour_ids[0]
        for neighbour_id in neighbour_ids:
            fraction = intersection_fraction(base_genes, container.cell_genes(neighbour_id))
            container.stats.add(
                MERGE_INTERSECT_FRACTION_BY_CELL,
                container.cell_barcode(neighbour_id),
                base_barcode,
                fraction,
            )
            if fraction > best_fraction:
                best_fraction = fraction
                best_id = neighbour_id

        if best_fraction < self.min_merge_fraction:
            logger.debug(
                "Best intersection fraction %.3f for %s is below %.3f",
                best_fraction,
                base_barcode,
                self.min_merge_fraction,
            )
            return base_id, best_fraction

        return best_id, best_fraction
