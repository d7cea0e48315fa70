"""Observed catalog barcodes within a combined edit distance of a query."""

from __future__ import annotations

from typing import List, Optional, Sequence, Tuple

from cbmerge.cells import CellsDataContainer
from cbmerge.constants import (
    MAX_REAL_MERGE_EDIT_DISTANCE,
    MERGE_EDIT_DISTANCE_BY_CELL,
    MERGE_REJECTION_BY_CELL,
)
from cbmerge.logging_utils import get_logger
from cbmerge.merge.catalog import BarcodeCatalog
from cbmerge.merge.distances import DistanceEntry

logger = get_logger(__name__)


class NeighborSelector:
    """
    Enumerate catalog fragment pairs whose summed distance to a query is within
    ``max_distance`` and keep those that were actually observed.
    """

    def __init__(self, max_distance: int = MAX_REAL_MERGE_EDIT_DISTANCE):
        self.max_distance = max_distance
        # Summed distance of the neighbours returned by the last select() call
        self.last_match_distance: Optional[int] = None

    def candidate_pairs(
        self, dists1: Sequence[DistanceEntry], dists2: Sequence[DistanceEntry]
    ) -> List[Tuple[int, int, int]]:
        """All (index1, index2, summed distance) within the bound, ascending by summed distance."""
        if not dists1 or not dists2:
            return []

        pairs: List[Tuple[int, int, int]] = []
        best_dist2 = dists2[0].distance
        for entry1 in dists1:
            if entry1.distance + best_dist2 > self.max_distance:
                break

            for entry2 in dists2:
                summed = entry1.distance + entry2.distance
                if summed > self.max_distance:
                    break
                pairs.append((entry1.index, entry2.index, summed))

        pairs.sort(key=lambda pair: pair[2])
        return pairs

    def select(
        self,
        container: CellsDataContainer,
        catalog: BarcodeCatalog,
        base_barcode: str,
        dists1: Sequence[DistanceEntry],
        dists2: Sequence[DistanceEntry],
        spacer: str = "",
    ) -> List[int]:
        """
        Ids of observed cells matching the closest catalog reconstructions.

        Every reconstruction up to and including the smallest accepted distance is
        checked. Hits and misses are both recorded in ``container.stats``.
        """
        neighbours: List[int] = []
        prev_dist = None
        self.last_match_distance = None
        for index1, index2, summed in self.candidate_pairs(dists1, dists2):
            if neighbours and summed > prev_dist:
                break

            candidate = catalog.barcode(index1, index2, spacer)
            cell_id = container.cell_id_by_barcode(candidate)
            if cell_id is not None:
                neighbours.append(cell_id)
                self.last_match_distance = summed
                container.stats.add(MERGE_EDIT_DISTANCE_BY_CELL, candidate, base_barcode, summed)
            else:
                container.stats.add(MERGE_REJECTION_BY_CELL, candidate, base_barcode, summed)
            prev_dist = summed

        logger.debug("%d real neighbours found for %s", len(neighbours), base_barcode)
        return neighbours
