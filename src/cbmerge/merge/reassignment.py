"""Bookkeeping of which cell every cell id currently resolves to."""

from __future__ import annotations

from typing import Dict, FrozenSet, List, Set


class ReassignmentTracker:
    """
    Current merge target for every cell id, kept fully resolved.

    ``redirect`` updates the forward targets and the inverse mapping together, so a
    lookup never lands on a cell that was itself merged away.
    """

    def __init__(self, cells_number: int):
        self._targets: List[int] = list(range(cells_number))
        self._reassigned_to: Dict[int, Set[int]] = {}

    def __len__(self) -> int:
        return len(self._targets)

    @property
    def targets(self) -> List[int]:
        return list(self._targets)

    def target(self, cell_id: int) -> int:
        return self._targets[cell_id]

    def is_redirected(self, cell_id: int) -> bool:
        return self._targets[cell_id] != cell_id

    def reassigned_to(self, cell_id: int) -> FrozenSet[int]:
        return frozenset(self._reassigned_to.get(cell_id, ()))

    def redirect(self, source: int, target: int) -> int:
        """
        Point ``source`` and everything currently pointing at it to ``target``.

        ``target`` is first resolved to its own current target. Returns the id the
        source now resolves to.
        """
        target = self._targets[target]
        if target == source:
            raise ValueError(f"Cell {source} can't be redirected to itself")

        old_target = self._targets[source]
        if old_target != source:
            previous = self._reassigned_to.get(old_target)
            if previous is not None:
                previous.discard(source)
                if not previous:
                    del self._reassigned_to[old_target]

        self._targets[source] = target
        moved = self._reassigned_to.setdefault(target, set())
        moved.add(source)
        for dependent in sorted(self._reassigned_to.pop(source, ())):
            self._targets[dependent] = target
            moved.add(dependent)
        return target
