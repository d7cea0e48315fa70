"""Tests for edit distances and barcode splitting."""

import pytest

from cbmerge.merge import distances as distances_module
from cbmerge.merge.catalog import BarcodeCatalog
from cbmerge.merge.distances import (
    DistanceEntry,
    DistanceIndex,
    edit_distance,
    is_exact,
    resolve_distance,
    sorted_distances,
    split_barcode,
)


class TestEditDistance:
    def test_identical(self):
        assert edit_distance("ACGT", "ACGT") == 0

    def test_one_substitution(self):
        assert edit_distance("ACGT", "ACTT") == 1

    def test_one_insertion(self):
        assert edit_distance("ACGT", "ACGTT") == 1

    def test_one_deletion(self):
        assert edit_distance("ACGT", "ACT") == 1

    def test_empty_strings(self):
        assert edit_distance("", "") == 0
        assert edit_distance("ACGT", "") == 4
        assert edit_distance("", "ACGT") == 4

    def test_mixed_operations(self):
        assert edit_distance("kitten", "sitting") == 3

    def test_max_dist_caps_result(self):
        assert edit_distance("AAAA", "TTTT", max_dist=1) == 2
        assert edit_distance("A", "AAAA", max_dist=2) == 3


class TestSplitBarcode:
    def test_default_offset_skips_spacer(self):
        assert split_barcode("AAAATGGG", 4) == ("AAAA", "T", "GGG")

    def test_zero_offset(self):
        assert split_barcode("AAAAGGG", 3, fragment2_offset=0) == ("AAAA", "", "GGG")

    def test_too_short_barcode_raises(self):
        with pytest.raises(ValueError, match="shorter"):
            split_barcode("AC", 4)


def test_sorted_distances_is_stable_on_ties():
    dists = sorted_distances("AAAA", ["TAAA", "AAAA", "AATA", "TTTT"], edit_distance)

    assert dists == [
        DistanceEntry(1, 0),
        DistanceEntry(0, 1),
        DistanceEntry(2, 1),
        DistanceEntry(3, 4),
    ]


def test_distance_index_returns_both_sides_sorted():
    catalog = BarcodeCatalog(["AAAA", "ACAA", "AAAT"], ["GGG", "GTC", "GGC"])
    index = DistanceIndex(catalog)

    dists1, dists2 = index.distances("AAAT", "GGC")

    assert [entry.distance for entry in dists1] == sorted(entry.distance for entry in dists1)
    assert dists1[0] == DistanceEntry(2, 0)
    assert dists2[0] == DistanceEntry(2, 0)
    assert {entry.index for entry in dists1} == {0, 1, 2}


def test_is_exact():
    assert is_exact([DistanceEntry(0, 0)], [DistanceEntry(3, 0)])
    assert not is_exact([DistanceEntry(0, 0)], [DistanceEntry(3, 1)])
    assert not is_exact([], [])


def test_unknown_backend_raises():
    with pytest.raises(ValueError, match="Unknown distance backend"):
        DistanceIndex(BarcodeCatalog([], []), backend="hamming")


def test_edlib_backend_matches_python():
    pytest.importorskip("edlib")
    catalog = BarcodeCatalog(["AAAA", "ACAA", "CCTT"], ["GGG", "GTC", "TTA"])

    python_dists = DistanceIndex(catalog, backend="python").distances("AACA", "GTA")
    edlib_dists = DistanceIndex(catalog, backend="edlib").distances("AACA", "GTA")

    assert python_dists == edlib_dists


def test_edlib_backend_caps_like_python():
    pytest.importorskip("edlib")
    capped = resolve_distance("edlib", max_dist=1)

    assert capped("AAAA", "AAAA") == 0
    assert capped("AAAA", "AATA") == 1
    assert capped("AAAA", "TTTT") == 2
    assert capped("", "TTTT") == 2


def test_max_dist_caps_only_far_entries():
    catalog = BarcodeCatalog(["TTTT", "AAAT", "AAAA", "ATTA"], ["G", "G", "G", "G"])

    dists1, _ = DistanceIndex(catalog, backend="python", max_dist=1).distances("AAAA", "G")

    assert dists1 == [
        DistanceEntry(2, 0),
        DistanceEntry(1, 1),
        DistanceEntry(0, 2),
        DistanceEntry(3, 2),
    ]


def _missing_edlib(package, *, extra, purpose=None):
    raise ModuleNotFoundError(f"Optional dependency '{package}' is required. Install it with: pip install 'cbmerge[{extra}]'")


def test_auto_backend_falls_back_without_edlib(monkeypatch):
    monkeypatch.setattr(distances_module, "require", _missing_edlib)

    distance = resolve_distance("auto", max_dist=2)

    assert distance("kitten", "sitting") == 3
    assert distance("ACGT", "ACTT") == 1


def test_edlib_backend_requires_edlib(monkeypatch):
    monkeypatch.setattr(distances_module, "require", _missing_edlib)

    with pytest.raises(ModuleNotFoundError, match="cbmerge\\[fast\\]"):
        resolve_distance("edlib")
