"""Expected barcode fragment pairs loaded from a catalog file."""

from __future__ import annotations

from pathlib import Path
from typing import List, Sequence, Union

from cbmerge.logging_utils import get_logger

logger = get_logger(__name__)

_COMPLEMENT = str.maketrans("ACGTNacgtn", "TGCANtgcan")


def reverse_complement(seq: str) -> str:
    """Return the reverse complement of a DNA sequence."""
    return seq.translate(_COMPLEMENT)[::-1]


class BarcodeCatalog:
    """
    Two index-aligned lists of barcode fragments.

    Any combination ``fragments1[i] + fragments2[j]`` is a candidate barcode, not
    only the pairs that shared a line in the catalog file.
    """

    def __init__(self, fragments1: Sequence[str], fragments2: Sequence[str]):
        if len(fragments1) != len(fragments2):
            raise ValueError(
                f"Fragment lists differ in length: {len(fragments1)} vs {len(fragments2)}"
            )
        self.fragments1: List[str] = list(fragments1)
        self.fragments2: List[str] = list(fragments2)

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "BarcodeCatalog":
        """
        Load a catalog file with one ``<fragment1> <fragment2>`` pair per line.

        Fields are whitespace-separated and reverse-complemented before storage. Lines
        without two fields are skipped with a warning. A file that can't be opened raises.
        """
        fragments1: List[str] = []
        fragments2: List[str] = []
        with open(path, "r", encoding="utf-8") as handle:
            for line_number, line in enumerate(handle, start=1):
                parts = line.strip().split(maxsplit=1)
                if len(parts) != 2:
                    logger.warning("Barcodes line %d has bad format: '%s'", line_number, line.rstrip("\r\n"))
                    continue
                fragments1.append(reverse_complement(parts[0]))
                fragments2.append(reverse_complement(parts[1]))

        if not fragments1:
            logger.warning("Empty barcodes list in %s", path)
        else:
            logger.info("Loaded %d barcode pairs from %s", len(fragments1), path)
        return cls(fragments1, fragments2)

    def __len__(self) -> int:
        return len(self.fragments1)

    def barcode(self, index1: int, index2: int, spacer: str = "") -> str:
        return self.fragments1[index1] + spacer + self.fragments2[index2]
