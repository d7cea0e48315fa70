from .merge_cells import merge_cells

__all__ = [
    "merge_cells",
]
