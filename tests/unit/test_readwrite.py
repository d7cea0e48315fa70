import pandas as pd
import pytest

from cbmerge.cells import CellsDataContainer
from cbmerge.merge.real_barcodes import CellStatus, MergeResult
from cbmerge.readwrite import (
    cells_to_anndata,
    classifications_frame,
    make_dirs,
    read_cells_table,
    write_merge_outputs,
)


def _container():
    return CellsDataContainer(
        {
            "AAAATGGG": {"ACTB": {"U1": 1, "U2": 1}, "GAPDH": {"U3": 1}},
            "AAATTGGG": {"ACTB": {"U1": 1}},
            "CCCCTCCC": {"XIST": {"U9": 1}},
        }
    )


def _result():
    return MergeResult(
        filtered_cells=[0],
        statuses=[CellStatus.REAL, CellStatus.MERGED, CellStatus.EXCLUDED],
        targets=[0, 0, 2],
        merges_count=1,
    )


def test_make_dirs_creates_parent_for_file_paths(tmp_path):
    make_dirs([tmp_path / "a" / "b", tmp_path / "c" / "file.csv"])

    assert (tmp_path / "a" / "b").is_dir()
    assert (tmp_path / "c").is_dir()
    assert not (tmp_path / "c" / "file.csv").exists()


@pytest.mark.parametrize("name,sep", [("cells.tsv", "\t"), ("cells.csv", ","), ("cells.tsv.gz", "\t")])
def test_read_cells_table_infers_separator(tmp_path, name, sep):
    df = pd.DataFrame({"cell_barcode": ["AAAA"], "gene": ["ACTB"], "umi": ["0001"], "count": [2]})
    path = tmp_path / name
    df.to_csv(path, sep=sep, index=False)

    loaded = read_cells_table(path)

    assert loaded.to_dict("records") == [
        {"cell_barcode": "AAAA", "gene": "ACTB", "umi": "0001", "count": 2}
    ]


def test_classifications_frame():
    df = classifications_frame(_result(), _container())

    assert df["status"].tolist() == ["real", "merged", "excluded"]
    assert df["target_barcode"].tolist() == ["AAAATGGG", "AAAATGGG", "CCCCTCCC"]
    assert df["filtered"].tolist() == [True, False, False]
    assert df["genes_count"].tolist() == [2, 1, 1]


def test_cells_to_anndata():
    adata = cells_to_anndata(_container(), [0, 2])

    assert adata.shape == (2, 3)
    assert adata.obs_names.tolist() == ["AAAATGGG", "CCCCTCCC"]
    assert adata.var_names.tolist() == ["ACTB", "GAPDH", "XIST"]
    assert adata.X.toarray().tolist() == [[2.0, 1.0, 0.0], [0.0, 0.0, 1.0]]
    assert adata.obs["molecules_count"].tolist() == [3, 1]


def test_write_merge_outputs(tmp_path):
    container = _container()
    container.stats.merge([0, 0, 2], container.cell_barcodes)

    outputs = write_merge_outputs(_result(), container, tmp_path / "out", "run1", write_h5ad=False)

    assert set(outputs) == {"classifications", "reassignments", "events", "counts"}
    for path in outputs.values():
        assert path.exists()
    reassignments = pd.read_csv(outputs["reassignments"])
    assert reassignments["source_barcode"].tolist() == ["AAATTGGG"]


def test_write_merge_outputs_h5ad(tmp_path):
    ad = pytest.importorskip("anndata")
    container = _container()

    outputs = write_merge_outputs(_result(), container, tmp_path, "run1")

    adata = ad.read_h5ad(outputs["h5ad"])
    assert adata.obs_names.tolist() == ["AAAATGGG"]
    assert adata.uns["merges_count"] == 1
