from .merge_config import LoadMergeConfig, MergeConfig

__all__ = [
    "LoadMergeConfig",
    "MergeConfig",
]
