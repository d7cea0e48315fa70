"""Catalog-driven merge pass over all observed cells."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import TYPE_CHECKING, Dict, List, Optional, Union

from cbmerge.cells import CellsDataContainer
from cbmerge.constants import (
    DEFAULT_FRAGMENT2_OFFSET,
    MAX_REAL_MERGE_EDIT_DISTANCE,
    MERGES_COUNT_PER_CB,
    PROGRESS_LOG_EVERY,
)
from cbmerge.logging_utils import get_logger
from cbmerge.merge.catalog import BarcodeCatalog
from cbmerge.merge.distances import DistanceIndex, is_exact, split_barcode
from cbmerge.merge.intersection import MergeTargetResolver
from cbmerge.merge.neighbors import NeighborSelector
from cbmerge.merge.reassignment import ReassignmentTracker

if TYPE_CHECKING:
    from cbmerge.config.merge_config import MergeConfig

logger = get_logger(__name__)


class CellStatus(str, Enum):
    UNPROCESSED = "unprocessed"
    REAL = "real"
    MERGED = "merged"
    EXCLUDED = "excluded"


@dataclass(frozen=True)
class MergeDecision:
    """A cell merged into another one."""

    source_id: int
    target_id: int
    edit_distance: int
    intersection_fraction: float


@dataclass
class MergeResult:
    filtered_cells: List[int]
    statuses: List[CellStatus]
    targets: List[int]
    merges_count: int
    decisions: List[MergeDecision] = field(default_factory=list)

    def status_counts(self) -> Dict[str, int]:
        counts = {status.value: 0 for status in CellStatus}
        for status in self.statuses:
            counts[status.value] += 1
        return counts


class RealBarcodesMerger:
    """
    Merge noisy cell barcodes into observed barcodes from a catalog of expected pairs.

    Cells are processed once each, most genes first:

    1. both fragments match the catalog exactly -> real;
    2. no observed catalog barcode within ``max_real_merge_edit_distance`` -> excluded;
    3. otherwise merged into the neighbour sharing the largest molecule fraction,
       or kept as real when that fraction is below ``min_merge_fraction``.
    """

    def __init__(
        self,
        barcodes_file: Union[str, Path],
        barcode2_length: int,
        min_genes_before_merge: int,
        min_genes_after_merge: int,
        max_merge_edit_distance: int,
        min_merge_fraction: float,
        max_real_merge_edit_distance: int = MAX_REAL_MERGE_EDIT_DISTANCE,
        fragment2_offset: int = DEFAULT_FRAGMENT2_OFFSET,
        distance_backend: str = "auto",
    ):
        self.barcode2_length = barcode2_length
        self.min_genes_before_merge = min_genes_before_merge
        self.min_genes_after_merge = min_genes_after_merge
        self.max_merge_edit_distance = max_merge_edit_distance
        self.min_merge_fraction = min_merge_fraction
        self.max_real_merge_edit_distance = max_real_merge_edit_distance
        self.fragment2_offset = fragment2_offset
        self.distance_backend = distance_backend

        self.catalog = BarcodeCatalog.from_file(barcodes_file)

    @classmethod
    def from_config(cls, cfg: "MergeConfig") -> "RealBarcodesMerger":
        return cls(
            barcodes_file=cfg.barcodes_file,
            barcode2_length=cfg.barcode2_length,
            min_genes_before_merge=cfg.min_genes_before_merge,
            min_genes_after_merge=cfg.min_genes_after_merge,
            max_merge_edit_distance=cfg.max_merge_edit_distance,
            min_merge_fraction=cfg.min_merge_fraction,
            max_real_merge_edit_distance=cfg.max_real_merge_edit_distance,
            fragment2_offset=cfg.fragment2_offset,
            distance_backend=cfg.distance_backend,
        )

    def merge(self, container: CellsDataContainer) -> Optional[MergeResult]:
        """
        Run one merge pass over ``container``.

        Returns None without touching the container when the catalog is empty.
        """
        if not self.catalog:
            logger.warning("Barcodes catalog is empty, skipping merge")
            return None

        index = DistanceIndex(
            self.catalog, backend=self.distance_backend, max_dist=self.max_real_merge_edit_distance
        )
        selector = NeighborSelector(self.max_real_merge_edit_distance)
        resolver = MergeTargetResolver(self.min_merge_fraction)
        tracker = ReassignmentTracker(len(container))
        statuses = [CellStatus.UNPROCESSED] * len(container)
        decisions: List[MergeDecision] = []

        merges_count = 0
        for tag_index, (cell_id, _) in enumerate(container.cells_genes_counts_sorted(), start=1):
            if tag_index % PROGRESS_LOG_EVERY == 0:
                logger.debug("Total %d tags processed, %d cells merged", tag_index, merges_count)

            barcode = container.cell_barcode(cell_id)
            fragment1, spacer, fragment2 = split_barcode(barcode, self.barcode2_length, self.fragment2_offset)
            dists1, dists2 = index.distances(fragment1, fragment2)

            if is_exact(dists1, dists2):
                statuses[cell_id] = CellStatus.REAL
                continue

            logger.debug("Get real neighbours to %s", barcode)
            neighbours = selector.select(container, self.catalog, barcode, dists1, dists2, spacer)
            if not neighbours:
                container.exclude_cell(cell_id)
                statuses[cell_id] = CellStatus.EXCLUDED
                continue

            target_id, fraction = resolver.resolve(container, cell_id, neighbours)
            if target_id == cell_id or tracker.target(target_id) == cell_id:
                statuses[cell_id] = CellStatus.REAL
                continue

            target_id = tracker.redirect(cell_id, target_id)
            container.merge_cells(cell_id, target_id)
            container.stats.inc(MERGES_COUNT_PER_CB, container.cell_barcode(target_id))
            statuses[cell_id] = CellStatus.MERGED
            decisions.append(
                MergeDecision(
                    source_id=cell_id,
                    target_id=target_id,
                    edit_distance=selector.last_match_distance,
                    intersection_fraction=fraction,
                )
            )
            merges_count += 1

        logger.info("Total %d merges", merges_count)

        container.update_cells_genes_counts(self.min_genes_after_merge)
        filtered_cells = []
        for cell_id, genes_count in container.cells_genes_counts_sorted():
            if statuses[cell_id] is not CellStatus.REAL:
                continue
            logger.debug("Add cell to filtered: %d %d", genes_count, cell_id)
            filtered_cells.append(cell_id)

        container.stats.merge(tracker.targets, container.cell_barcodes)
        return MergeResult(
            filtered_cells=filtered_cells,
            statuses=statuses,
            targets=tracker.targets,
            merges_count=merges_count,
            decisions=decisions,
        )
