"""cbmerge"""

from . import cli, config, merge
from .cells import CellsDataContainer
from .merge import RealBarcodesMerger
from .readwrite import cells_to_anndata, read_cells_table, write_merge_outputs
from .stats import MergeStats

from importlib.metadata import version

package_name = "cbmerge"
__version__ = version(package_name)

__all__ = [
    "CellsDataContainer",
    "MergeStats",
    "RealBarcodesMerger",
    "cells_to_anndata",
    "read_cells_table",
    "write_merge_outputs",
]
