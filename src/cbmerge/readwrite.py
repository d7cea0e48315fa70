## readwrite ##
from __future__ import annotations

from pathlib import Path
from typing import Dict, Iterable, Optional, Sequence, Union

import anndata as ad
import numpy as np
import pandas as pd
from scipy import sparse

from cbmerge.cells import CellsDataContainer
from cbmerge.constants import (
    CELL_BARCODE_COL,
    CLASSIFICATIONS_SUFFIX,
    COUNTS_SUFFIX,
    EVENTS_SUFFIX,
    GENE_COL,
    H5AD_SUFFIX,
    REASSIGNMENTS_SUFFIX,
    TABLE_SEPARATORS,
    UMI_COL,
)
from cbmerge.logging_utils import get_logger
from cbmerge.merge.real_barcodes import MergeResult

logger = get_logger(__name__)

######################################################################################################
## Datetime functionality
def date_string():
    """
    Each time this is called, it returns the current date string
    """
    from datetime import datetime
    current_date = datetime.now()
    date_string = current_date.strftime("%Y%m%d")
    date_string = date_string[2:]
    return date_string
######################################################################################################

######################################################################################################
## General file and directory handling
def make_dirs(directories: Union[str, Path, Iterable[Union[str, Path]]]) -> None:
    """
    Create one or multiple directories.

    Parameters
    ----------
    directories : str | Path | list/iterable of str | Path
        Paths of directories to create. If a file path is passed,
        the parent directory is created.

    Returns
    -------
    None
    """

    # allow user to pass a single string/Path
    if isinstance(directories, (str, Path)):
        directories = [directories]

    for d in directories:
        p = Path(d)

        # If someone passes in a file path, make its parent
        if p.suffix:      # p.suffix != "" means it's a file
            p = p.parent

        p.mkdir(parents=True, exist_ok=True)


def read_cells_table(path: Union[str, Path], sep: Optional[str] = None) -> pd.DataFrame:
    """
    Read a long-format cells table.

    Parameters
    ----------
    path : str | Path
        CSV/TSV with ``cell_barcode``, ``gene``, ``umi`` and optional ``count`` columns.
    sep : str, optional
        Field separator. Inferred from the suffix when None (``.csv`` -> ',', else tab).
        A trailing ``.gz`` is ignored for inference.

    Returns
    -------
    pd.DataFrame
    """
    path = Path(path)
    if sep is None:
        suffixes = [s.lower() for s in path.suffixes if s.lower() != ".gz"]
        sep = TABLE_SEPARATORS.get(suffixes[-1] if suffixes else "", "\t")

    df = pd.read_csv(path, sep=sep, dtype={CELL_BARCODE_COL: str, GENE_COL: str, UMI_COL: str})
    df.columns = [c.strip() for c in df.columns]
    logger.info("Read %d rows from %s", len(df), path)
    return df
######################################################################################################

######################################################################################################
## Merge outputs
def classifications_frame(result: MergeResult, container: CellsDataContainer) -> pd.DataFrame:
    """One row per cell: barcode, status, resolved target and whether it passed filtering."""
    barcodes = container.cell_barcodes
    filtered = set(result.filtered_cells)
    return pd.DataFrame(
        {
            "cell_id": np.arange(len(barcodes)),
            "cell_barcode": barcodes,
            "status": [status.value for status in result.statuses],
            "target_id": result.targets,
            "target_barcode": [barcodes[t] for t in result.targets],
            "genes_count": [container.genes_count(i) for i in range(len(barcodes))],
            "filtered": [i in filtered for i in range(len(barcodes))],
        }
    )


def cells_to_anndata(container: CellsDataContainer, cell_ids: Sequence[int]) -> ad.AnnData:
    """
    Build a cells x genes AnnData of molecule-identifier counts for ``cell_ids``.

    Row order follows ``cell_ids``; genes are sorted.
    """
    genes = sorted({gene for cell_id in cell_ids for gene in container.cell_genes(cell_id)})
    gene_index = {gene: j for j, gene in enumerate(genes)}

    rows, cols, values = [], [], []
    for i, cell_id in enumerate(cell_ids):
        for gene, umis in container.cell_genes(cell_id).items():
            rows.append(i)
            cols.append(gene_index[gene])
            values.append(len(umis))

    X = sparse.csr_matrix(
        (np.asarray(values, dtype=np.float32), (np.asarray(rows, dtype=int), np.asarray(cols, dtype=int))),
        shape=(len(cell_ids), len(genes)),
    )
    obs = pd.DataFrame(
        {
            "cell_id": list(cell_ids),
            "genes_count": [container.genes_count(c) for c in cell_ids],
            "molecules_count": [container.molecules_count(c) for c in cell_ids],
        },
        index=pd.Index([container.cell_barcode(c) for c in cell_ids], name=CELL_BARCODE_COL),
    )
    var = pd.DataFrame(index=pd.Index(genes, name=GENE_COL))
    return ad.AnnData(X=X, obs=obs, var=var)


def write_merge_outputs(
    result: MergeResult,
    container: CellsDataContainer,
    output_directory: Union[str, Path],
    experiment_name: str,
    write_h5ad: bool = True,
) -> Dict[str, Path]:
    """
    Write classification, reassignment and statistics tables (and optionally the
    filtered AnnData) under ``output_directory``.

    Returns a mapping of output kind -> written path.
    """
    output_directory = Path(output_directory)
    make_dirs([output_directory])

    outputs = {
        "classifications": output_directory / f"{experiment_name}{CLASSIFICATIONS_SUFFIX}",
        "reassignments": output_directory / f"{experiment_name}{REASSIGNMENTS_SUFFIX}",
        "events": output_directory / f"{experiment_name}{EVENTS_SUFFIX}",
        "counts": output_directory / f"{experiment_name}{COUNTS_SUFFIX}",
    }
    classifications_frame(result, container).to_csv(outputs["classifications"], index=False)
    container.stats.reassignments_frame().to_csv(outputs["reassignments"], index=False)
    container.stats.events_frame().to_csv(outputs["events"], index=False)
    container.stats.counts_frame().to_csv(outputs["counts"], index=False)

    if write_h5ad:
        outputs["h5ad"] = output_directory / f"{experiment_name}{H5AD_SUFFIX}"
        adata = cells_to_anndata(container, result.filtered_cells)
        adata.uns["merges_count"] = result.merges_count
        adata.write_h5ad(outputs["h5ad"], compression="gzip")

    for kind, path in outputs.items():
        logger.info("Wrote %s to %s", kind, path)
    return outputs
######################################################################################################
