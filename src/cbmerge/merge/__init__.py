from .catalog import BarcodeCatalog, reverse_complement
from .distances import DistanceEntry, DistanceIndex, edit_distance, resolve_distance, split_barcode
from .intersection import MergeTargetResolver, intersection_fraction
from .neighbors import NeighborSelector
from .real_barcodes import CellStatus, MergeDecision, MergeResult, RealBarcodesMerger
from .reassignment import ReassignmentTracker

__all__ = [
    "BarcodeCatalog",
    "CellStatus",
    "DistanceEntry",
    "DistanceIndex",
    "MergeDecision",
    "MergeResult",
    "MergeTargetResolver",
    "NeighborSelector",
    "ReassignmentTracker",
    "RealBarcodesMerger",
    "edit_distance",
    "intersection_fraction",
    "resolve_distance",
    "reverse_complement",
    "split_barcode",
]
