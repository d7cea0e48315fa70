from __future__ import annotations
from typing import Final, Mapping, Any, Dict
from types import MappingProxyType


## Helpers ##
def _deep_freeze(obj: Any) -> Any:
    """Recursively freeze common containers. Use for constant exports."""
    if isinstance(obj, dict):
        return MappingProxyType({k: _deep_freeze(v) for k, v in obj.items()})
    if isinstance(obj, (list, tuple)):
        return tuple(_deep_freeze(v) for v in obj)
    if isinstance(obj, set):
        return frozenset(_deep_freeze(v) for v in obj)
    return obj  # ints/strs/tuples (already immutable)


## Merge constants ##
# Hard cap on fragment1 + fragment2 edit distance for catalog neighbours.
MAX_REAL_MERGE_EDIT_DISTANCE: Final[int] = 2
DEFAULT_FRAGMENT2_OFFSET: Final[int] = 1
PROGRESS_LOG_EVERY: Final[int] = 1000

DISTANCE_BACKENDS: Final[tuple] = ("auto", "python", "edlib")

## Stat event names ##
MERGE_EDIT_DISTANCE_BY_CELL: Final[str] = "merge_edit_distance_by_cell"
MERGE_REJECTION_BY_CELL: Final[str] = "merge_rejection_by_cell"
MERGE_INTERSECT_FRACTION_BY_CELL: Final[str] = "merge_intersect_fraction_by_cell"
MERGES_COUNT_PER_CB: Final[str] = "merges_count_per_cb"

STAT_EVENTS: Final[tuple] = (
    MERGE_EDIT_DISTANCE_BY_CELL,
    MERGE_REJECTION_BY_CELL,
    MERGE_INTERSECT_FRACTION_BY_CELL,
)

## Cells table ##
CELL_BARCODE_COL: Final[str] = "cell_barcode"
GENE_COL: Final[str] = "gene"
UMI_COL: Final[str] = "umi"
COUNT_COL: Final[str] = "count"

_private_table_seps: Dict[str, str] = {".tsv": "\t", ".tab": "\t", ".txt": "\t", ".csv": ","}
TABLE_SEPARATORS: Final[Mapping[str, str]] = _deep_freeze(_private_table_seps)

## Output file suffixes ##
CLASSIFICATIONS_SUFFIX: Final[str] = "_cell_classifications.csv"
REASSIGNMENTS_SUFFIX: Final[str] = "_reassignments.csv"
EVENTS_SUFFIX: Final[str] = "_merge_events.csv"
COUNTS_SUFFIX: Final[str] = "_merge_counts.csv"
H5AD_SUFFIX: Final[str] = "_filtered.h5ad.gz"
