"""In-memory container for observed cells and their gene/molecule content."""

from __future__ import annotations

from typing import Dict, List, Mapping, Optional, Tuple

import pandas as pd

from cbmerge.constants import CELL_BARCODE_COL, COUNT_COL, GENE_COL, UMI_COL
from cbmerge.logging_utils import get_logger
from cbmerge.stats import MergeStats

logger = get_logger(__name__)

GenesMap = Dict[str, Dict[str, int]]


def _sorted_genes(genes: Mapping[str, Mapping[str, int]]) -> GenesMap:
    """Copy a gene -> umi -> count mapping with both levels in key order, dropping empty genes."""
    out: GenesMap = {}
    for gene in sorted(genes):
        umis = genes[gene]
        if not umis:
            continue
        out[gene] = {umi: int(umis[umi]) for umi in sorted(umis)}
    return out


class CellsDataContainer:
    """
    Cells observed in a run, addressed by stable integer ids.

    Ids follow the order in which barcodes are first given; cells without any
    molecules are dropped. Each cell holds an ordered gene -> molecule-identifier
    -> count mapping. Merge passes mutate the container only through
    ``exclude_cell``, ``merge_cells`` and ``update_cells_genes_counts``.
    """

    def __init__(
        self,
        cells: Mapping[str, Mapping[str, Mapping[str, int]]],
        min_genes_before_merge: int = 0,
    ):
        self._barcodes: List[str] = []
        self._genes: List[GenesMap] = []
        for cb, genes in cells.items():
            sorted_genes = _sorted_genes(genes)
            if not sorted_genes:
                logger.debug("Dropping cell %s without molecules", cb)
                continue
            self._barcodes.append(cb)
            self._genes.append(sorted_genes)
        self._ids_by_barcode: Dict[str, int] = {cb: i for i, cb in enumerate(self._barcodes)}
        self._excluded = [False] * len(self._barcodes)
        self._merged = [False] * len(self._barcodes)
        self.stats = MergeStats()
        self._genes_counts_sorted: List[Tuple[int, int]] = []
        self.update_cells_genes_counts(min_genes_before_merge)
        logger.info(
            "Loaded %d cells, %d with at least %d genes",
            len(self._barcodes),
            len(self._genes_counts_sorted),
            min_genes_before_merge,
        )

    @classmethod
    def from_dataframe(cls, df: pd.DataFrame, min_genes_before_merge: int = 0) -> "CellsDataContainer":
        """
        Build a container from a long-format table.

        Parameters
        ----------
        df : pandas.DataFrame
            Columns ``cell_barcode``, ``gene``, ``umi`` and optionally ``count``
            (defaults to 1 per row). Duplicate (cell, gene, umi) rows are summed.
        min_genes_before_merge : int
            Cells with fewer genes are left out of the processing order.
        """
        missing = [c for c in (CELL_BARCODE_COL, GENE_COL, UMI_COL) if c not in df.columns]
        if missing:
            raise ValueError(f"Cells table is missing required columns: {', '.join(missing)}")

        table = df[[CELL_BARCODE_COL, GENE_COL, UMI_COL]].astype(str)
        if COUNT_COL in df.columns:
            table = table.assign(**{COUNT_COL: pd.to_numeric(df[COUNT_COL]).astype(int)})
        else:
            table = table.assign(**{COUNT_COL: 1})

        # sort=False keeps first-appearance order of barcodes
        grouped = table.groupby([CELL_BARCODE_COL, GENE_COL, UMI_COL], sort=False)[COUNT_COL].sum()

        cells: Dict[str, Dict[str, Dict[str, int]]] = {}
        for (cb, gene, umi), count in grouped.items():
            if count <= 0:
                continue
            cells.setdefault(cb, {}).setdefault(gene, {})[umi] = int(count)
        return cls(cells, min_genes_before_merge=min_genes_before_merge)

    def __len__(self) -> int:
        return len(self._barcodes)

    @property
    def cell_barcodes(self) -> List[str]:
        return list(self._barcodes)

    def cell_barcode(self, cell_id: int) -> str:
        return self._barcodes[cell_id]

    def cell_genes(self, cell_id: int) -> GenesMap:
        return self._genes[cell_id]

    def cell_id_by_barcode(self, barcode: str) -> Optional[int]:
        return self._ids_by_barcode.get(barcode)

    def genes_count(self, cell_id: int) -> int:
        return len(self._genes[cell_id])

    def molecules_count(self, cell_id: int) -> int:
        return sum(len(umis) for umis in self._genes[cell_id].values())

    def cells_genes_counts_sorted(self) -> List[Tuple[int, int]]:
        """(cell id, gene count) pairs, descending by gene count, ties by ascending id."""
        return list(self._genes_counts_sorted)

    def is_cell_excluded(self, cell_id: int) -> bool:
        return self._excluded[cell_id]

    def is_cell_merged(self, cell_id: int) -> bool:
        return self._merged[cell_id]

    def exclude_cell(self, cell_id: int) -> None:
        self._excluded[cell_id] = True

    def merge_cells(self, source_id: int, target_id: int) -> None:
        """Add the source's molecule counts into the target and mark the source merged."""
        if source_id == target_id:
            raise ValueError(f"Can't merge cell {source_id} into itself")

        target = self._genes[target_id]
        for gene, umis in self._genes[source_id].items():
            target_umis = target.setdefault(gene, {})
            for umi, count in umis.items():
                target_umis[umi] = target_umis.get(umi, 0) + count

        self._genes[target_id] = _sorted_genes(target)
        self._merged[source_id] = True

    def update_cells_genes_counts(self, threshold: int) -> None:
        """Recount genes of every cell still present and keep those with ``threshold`` genes or more."""
        counts = [
            (cell_id, len(genes))
            for cell_id, genes in enumerate(self._genes)
            if not self._excluded[cell_id] and not self._merged[cell_id] and len(genes) >= threshold
        ]
        counts.sort(key=lambda item: (-item[1], item[0]))
        self._genes_counts_sorted = counts
