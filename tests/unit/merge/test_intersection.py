"""Tests for molecule intersection fractions and merge target resolution."""

import pytest

from cbmerge.cells import CellsDataContainer
from cbmerge.constants import MERGE_INTERSECT_FRACTION_BY_CELL
from cbmerge.merge.intersection import MergeTargetResolver, intersection_fraction

CELL_A = {
    "ACTB": {"AAAA": 3, "CCCC": 1},
    "GAPDH": {"GGGG": 2},
    "MALAT1": {"TTTT": 1, "ACGT": 5},
}
CELL_B = {
    "ACTB": {"AAAA": 1, "TTTT": 1},
    "GAPDH": {"GGGG": 1, "CCCC": 4},
    "XIST": {"ACGT": 1},
}


class TestIntersectionFraction:
    def test_shared_identifiers_within_shared_genes_only(self):
        # Shared: ACTB/AAAA, GAPDH/GGGG. ACGT is in different genes. Totals 5 and 5.
        assert intersection_fraction(CELL_A, CELL_B) == pytest.approx(2 / 5)

    def test_symmetric(self):
        assert intersection_fraction(CELL_A, CELL_B) == intersection_fraction(CELL_B, CELL_A)

    def test_uses_smaller_total(self):
        small = {"ACTB": {"AAAA": 1}}
        assert intersection_fraction(CELL_A, small) == 1.0
        assert intersection_fraction(small, CELL_A) == 1.0

    def test_unshared_trailing_genes_count_towards_totals(self):
        a = {"A1": {"U1": 1}, "Z1": {"U2": 1, "U3": 1}}
        b = {"A1": {"U1": 1}, "B1": {"U9": 1}}
        # totals 3 and 2
        assert intersection_fraction(a, b) == pytest.approx(1 / 2)

    def test_disjoint_cells(self):
        assert intersection_fraction({"G1": {"U1": 1}}, {"G2": {"U1": 1}}) == 0.0

    def test_empty_cell_raises(self):
        with pytest.raises(ValueError, match="empty cells"):
            intersection_fraction(CELL_A, {})
        with pytest.raises(ValueError, match="empty cells"):
            intersection_fraction({"G1": {}}, CELL_A)


def _container():
    return CellsDataContainer(
        {
            "BASE": {"G1": {"U1": 1, "U2": 1}, "G2": {"U3": 1, "U4": 1}},
            "HALF1": {"G1": {"U1": 1, "U2": 1}, "G3": {"X": 1, "Y": 1}},
            "HALF2": {"G2": {"U3": 1, "U4": 1}, "G3": {"Z": 1, "W": 1}},
            "MOST": {"G1": {"U1": 1, "U2": 1}, "G2": {"U3": 1}},
            "NONE": {"G9": {"Q": 1}},
        }
    )


class TestMergeTargetResolver:
    def test_picks_largest_fraction(self):
        container = _container()

        target, fraction = MergeTargetResolver(0.2).resolve(container, 0, [1, 3, 2])

        assert target == 3
        assert fraction == 1.0

    def test_ties_keep_first_neighbour(self):
        container = _container()

        assert MergeTargetResolver(0.2).resolve(container, 0, [1, 2]) == (1, 0.5)
        assert MergeTargetResolver(0.2).resolve(container, 0, [2, 1]) == (2, 0.5)

    def test_below_threshold_keeps_base(self):
        container = _container()

        target, fraction = MergeTargetResolver(0.6).resolve(container, 0, [1, 2])

        assert target == 0
        assert fraction == 0.5

    def test_zero_overlap_is_no_merge(self):
        container = _container()

        assert MergeTargetResolver(0.2).resolve(container, 0, [4]) == (0, 0.0)

    def test_records_fraction_events(self):
        container = _container()

        MergeTargetResolver(0.2).resolve(container, 0, [1, 4])

        assert container.stats.events(MERGE_INTERSECT_FRACTION_BY_CELL) == [
            ("HALF1", "BASE", 0.5),
            ("NONE", "BASE", 0.0),
        ]

    def test_requires_neighbours(self):
        with pytest.raises(ValueError):
            MergeTargetResolver(0.2).resolve(_container(), 0, [])
