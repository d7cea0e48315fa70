from __future__ import annotations

from pathlib import Path
from typing import Dict, Optional, Tuple, Union

from cbmerge.cells import CellsDataContainer
from cbmerge.config import MergeConfig
from cbmerge.logging_utils import get_logger, setup_logging
from cbmerge.merge import MergeResult, RealBarcodesMerger
from cbmerge.readwrite import date_string, read_cells_table, write_merge_outputs

logger = get_logger(__name__)


def merge_cells(
    config_path: Union[str, Path],
) -> Tuple[Optional[MergeResult], CellsDataContainer, Dict[str, Path]]:
    """
    High-level function to run a catalog merge pass from a config file.
    Command line accesses this through cbmerge merge <config_path>

    Parameters:
        config_path (str): Path to a variable/value CSV or YAML merge config.

    Returns:
        (result, container, outputs). result is None and outputs empty when the
        barcodes catalog is empty.
    """
    cfg, report = MergeConfig.from_file(config_path)
    setup_logging(level=cfg.log_level, log_file=cfg.log_file)
    if report["unknown_keys"]:
        logger.warning("Ignoring unknown config keys: %s", ", ".join(report["unknown_keys"]))

    if not cfg.cells_table:
        raise ValueError("cells_table is required to run the merge from a config file.")
    if not cfg.output_directory:
        raise ValueError("output_directory is required to run the merge from a config file.")

    # Load the catalog first so an unreadable file fails before the table is parsed
    merger = RealBarcodesMerger.from_config(cfg)

    cells_df = read_cells_table(cfg.cells_table)
    container = CellsDataContainer.from_dataframe(cells_df, min_genes_before_merge=cfg.min_genes_before_merge)

    result = merger.merge(container)
    if result is None:
        logger.warning("No merge performed for %s; container left untouched", cfg.cells_table)
        return None, container, {}

    logger.info("Cell statuses: %s", result.status_counts())
    logger.info("%d cells passed filtering", len(result.filtered_cells))

    experiment_name = cfg.experiment_name or f"{date_string()}_{Path(cfg.cells_table).name.split('.')[0]}"
    outputs = write_merge_outputs(
        result,
        container,
        cfg.output_directory,
        experiment_name,
        write_h5ad=cfg.write_h5ad,
    )
    return result, container, outputs
