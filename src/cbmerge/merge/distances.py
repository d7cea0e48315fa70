"""Edit distances from a query barcode to every catalog fragment."""

from __future__ import annotations

from functools import partial
from typing import Callable, List, NamedTuple, Optional, Sequence, Tuple

from cbmerge.constants import DEFAULT_FRAGMENT2_OFFSET, DISTANCE_BACKENDS
from cbmerge.logging_utils import get_logger
from cbmerge.merge.catalog import BarcodeCatalog
from cbmerge.optional_imports import require

logger = get_logger(__name__)


class DistanceEntry(NamedTuple):
    index: int
    distance: int


def edit_distance(s1: str, s2: str, max_dist: Optional[int] = None) -> int:
    """
    Compute Levenshtein edit distance between two strings (unit costs).

    If max_dist is provided, returns max_dist + 1 as soon as the distance is known
    to exceed it.
    """
    if s1 == s2:
        return 0

    len1, len2 = len(s1), len(s2)
    if not s1 or not s2:
        dist = max(len1, len2)
        return dist if max_dist is None else min(dist, max_dist + 1)

    if max_dist is not None and abs(len1 - len2) > max_dist:
        return max_dist + 1

    # Use two-row DP for memory efficiency
    prev_row = list(range(len2 + 1))
    curr_row = [0] * (len2 + 1)

    for i in range(1, len1 + 1):
        curr_row[0] = i
        row_min = i
        for j in range(1, len2 + 1):
            cost = 0 if s1[i - 1] == s2[j - 1] else 1
            curr_row[j] = min(
                prev_row[j] + 1,  # deletion
                curr_row[j - 1] + 1,  # insertion
                prev_row[j - 1] + cost,  # substitution
            )
            row_min = min(row_min, curr_row[j])

        if max_dist is not None and row_min > max_dist:
            return max_dist + 1

        prev_row, curr_row = curr_row, prev_row

    return prev_row[len2]


def _edlib_distance(edlib, max_dist: Optional[int] = None) -> Callable[[str, str], int]:
    k = max_dist if max_dist is not None else -1

    def distance(s1: str, s2: str) -> int:
        if not s1 or not s2:
            return edit_distance(s1, s2, max_dist)
        dist = edlib.align(s1, s2, mode="NW", task="distance", k=k)["editDistance"]
        if dist == -1:
            # Distance exceeds k
            return max_dist + 1
        return dist

    return distance


def resolve_distance(backend: str = "auto", max_dist: Optional[int] = None) -> Callable[[str, str], int]:
    """
    Pick the pairwise distance function for a backend.

    ``"auto"`` uses edlib when it is installed and the dynamic program otherwise,
    ``"edlib"`` requires it and ``"python"`` never loads it. With ``max_dist`` set,
    every distance above it is reported as ``max_dist + 1``.
    """
    if backend not in DISTANCE_BACKENDS:
        raise ValueError(f"Unknown distance backend '{backend}'. Expected one of {DISTANCE_BACKENDS}.")

    if backend != "python":
        try:
            edlib = require("edlib", extra="fast", purpose="barcode edit distance calculation")
        except ModuleNotFoundError:
            if backend == "edlib":
                raise
            logger.debug("edlib not installed, using the pure Python edit distance")
        else:
            return _edlib_distance(edlib, max_dist)

    return partial(edit_distance, max_dist=max_dist)


def split_barcode(
    barcode: str, barcode2_length: int, fragment2_offset: int = DEFAULT_FRAGMENT2_OFFSET
) -> Tuple[str, str, str]:
    """
    Split a barcode into (fragment1, spacer, fragment2).

    fragment1 is everything before the last ``barcode2_length`` bases; the first
    ``fragment2_offset`` bases of that tail form the spacer and the rest is fragment2.
    """
    split_at = len(barcode) - barcode2_length
    if split_at < 0:
        raise ValueError(
            f"Barcode '{barcode}' is shorter than the second part length ({barcode2_length})"
        )
    return (
        barcode[:split_at],
        barcode[split_at:split_at + fragment2_offset],
        barcode[split_at + fragment2_offset:],
    )


def sorted_distances(query: str, fragments: Sequence[str], distance: Callable[[str, str], int]) -> List[DistanceEntry]:
    entries = [DistanceEntry(i, distance(query, fragment)) for i, fragment in enumerate(fragments)]
    # sorted() is stable, so equal distances keep catalog order
    return sorted(entries, key=lambda entry: entry.distance)


def is_exact(dists1: Sequence[DistanceEntry], dists2: Sequence[DistanceEntry]) -> bool:
    return bool(dists1) and bool(dists2) and dists1[0].distance == 0 and dists2[0].distance == 0


class DistanceIndex:
    """Distances from query fragments to both fragment lists of a catalog."""

    def __init__(self, catalog: BarcodeCatalog, backend: str = "auto", max_dist: Optional[int] = None):
        self.catalog = catalog
        self.backend = backend
        self.max_dist = max_dist
        self._distance = resolve_distance(backend, max_dist)

    def distances(self, fragment1: str, fragment2: str) -> Tuple[List[DistanceEntry], List[DistanceEntry]]:
        return (
            sorted_distances(fragment1, self.catalog.fragments1, self._distance),
            sorted_distances(fragment2, self.catalog.fragments2, self._distance),
        )
