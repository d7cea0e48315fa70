"""Statistics collected while merging cell barcodes."""

from __future__ import annotations

from collections import Counter, defaultdict
from typing import Dict, List, Optional, Sequence, Tuple

import pandas as pd

from cbmerge.constants import STAT_EVENTS


class MergeStats:
    """
    Collector for barcode-level merge events.

    Events are ``(cell_barcode, base_barcode, value)`` records keyed by event name,
    counters are per-barcode tallies keyed by counter name. After a pass, ``merge``
    stores the fully resolved source -> target barcode mapping.
    """

    def __init__(self):
        self._events: Dict[str, List[Tuple[str, str, float]]] = defaultdict(list)
        self._counters: Dict[str, Counter] = defaultdict(Counter)
        self._reassignments: Optional[pd.DataFrame] = None

    def add(self, event: str, cell_barcode: str, base_barcode: str, value: float) -> None:
        if event not in STAT_EVENTS:
            raise ValueError(f"Unknown stat event '{event}'. Expected one of {STAT_EVENTS}.")
        self._events[event].append((cell_barcode, base_barcode, value))

    def inc(self, counter: str, barcode: str, value: int = 1) -> None:
        self._counters[counter][barcode] += value

    def events(self, event: str) -> List[Tuple[str, str, float]]:
        return list(self._events.get(event, []))

    def count(self, counter: str, barcode: str) -> int:
        return self._counters[counter][barcode] if counter in self._counters else 0

    def merge(self, targets: Sequence[int], barcodes: Sequence[str]) -> None:
        """Store the reassignment summary for every cell redirected away from itself."""
        if len(targets) != len(barcodes):
            raise ValueError(
                f"targets ({len(targets)}) and barcodes ({len(barcodes)}) must have the same length"
            )
        rows = [
            {
                "source_id": source,
                "source_barcode": barcodes[source],
                "target_id": target,
                "target_barcode": barcodes[target],
            }
            for source, target in enumerate(targets)
            if source != target
        ]
        self._reassignments = pd.DataFrame(
            rows, columns=["source_id", "source_barcode", "target_id", "target_barcode"]
        )

    @property
    def has_reassignments(self) -> bool:
        return self._reassignments is not None

    def reassignments_frame(self) -> pd.DataFrame:
        if self._reassignments is None:
            return pd.DataFrame(
                columns=["source_id", "source_barcode", "target_id", "target_barcode"]
            )
        return self._reassignments.copy()

    def events_frame(self) -> pd.DataFrame:
        """Long-format table of all recorded events, in recording order per event."""
        frames = [
            pd.DataFrame(records, columns=["cell_barcode", "base_barcode", "value"]).assign(event=event)
            for event, records in self._events.items()
            if records
        ]
        if not frames:
            return pd.DataFrame(columns=["event", "cell_barcode", "base_barcode", "value"])
        df = pd.concat(frames, ignore_index=True)
        return df[["event", "cell_barcode", "base_barcode", "value"]]

    def counts_frame(self) -> pd.DataFrame:
        rows = [
            {"counter": counter, "barcode": barcode, "count": n}
            for counter, tally in self._counters.items()
            for barcode, n in tally.items()
        ]
        return pd.DataFrame(rows, columns=["counter", "barcode", "count"])
