from __future__ import annotations

from collections.abc import Iterable
from typing import Protocol

from bdiff.core.selection import Selection


class MirrorTarget(Protocol):
    id: int
    selection: Selection

    @property
    def size(self) -> int: ...


class SelectionMirror:
    """Broadcasts one canonical selection to every open file by offset.

    `accept()` records a file's selection as the canonical one (a copy, so
    later edits on either side stay independent). `propagate()` writes it
    into every target, clearing targets the range does not fit in.
    """

    def __init__(self, *, enabled: bool = True) -> None:
        self.enabled = enabled
        self.selection = Selection()
        self.source_id: int | None = None

    def accept(self, source_id: int | None, selection: Selection) -> None:
        self.selection = selection.copy()
        self.source_id = source_id

    def reset(self) -> None:
        self.selection.clear()
        self.source_id = None

    def finish_drag(self) -> None:
        if self.selection.state == "selecting":
            self.selection.state = "selected"

    def propagate(self, targets: Iterable[MirrorTarget]) -> list[int]:
        """Apply the canonical selection to `targets`.

        Returns the ids of targets whose selection was changed. Does nothing
        while disabled.
        """
        if not self.enabled:
            return []
        changed: list[int] = []
        for t in targets:
            if t.selection == self.selection:
                continue
            t.selection.assign(self.selection)
            if t.selection.is_active() and not t.selection.fits(t.size):
                t.selection.clear()
            changed.append(t.id)
        return changed
