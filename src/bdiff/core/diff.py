from __future__ import annotations

import logging
from array import array
from bisect import bisect_left, bisect_right
from collections.abc import Sequence
from typing import Protocol

logger = logging.getLogger(__name__)


class HasData(Protocol):
    @property
    def data(self) -> bytes: ...


def compute_diff_offsets(
    buffers: Sequence[bytes],
    *,
    chunk_size: int = 64 * 1024,
) -> array:
    """Positional comparison of all buffers.

    Returns an ascending array('Q') of offsets where not every buffer holds
    the same byte. Offsets past the end of a shorter buffer count as changed.
    """
    if chunk_size <= 0:
        raise ValueError("chunk_size must be positive")
    out = array("Q")
    if len(buffers) < 2:
        return out
    sizes = [len(b) for b in buffers]
    total = max(sizes)
    common = min(sizes)

    offset = 0
    while offset < common:
        end = min(common, offset + chunk_size)
        chunks = [memoryview(b)[offset:end] for b in buffers]
        first = chunks[0]
        # Fast path: identical chunk across every buffer
        if all(c == first for c in chunks[1:]):
            offset = end
            continue
        for i in range(end - offset):
            v = first[i]
            for c in chunks[1:]:
                if c[i] != v:
                    out.append(offset + i)
                    break
        offset = end

    # Tail beyond the shortest buffer
    out.extend(range(common, total))
    return out


def offsets_to_spans(offsets: Sequence[int]) -> list[tuple[int, int]]:
    """Merge sorted offsets into contiguous (offset, length) spans."""
    spans: list[tuple[int, int]] = []
    open_start: int | None = None
    prev = -2
    for o in offsets:
        if open_start is not None and o == prev + 1:
            prev = o
            continue
        if open_start is not None:
            spans.append((open_start, prev - open_start + 1))
        open_start = o
        prev = o
    if open_start is not None:
        spans.append((open_start, prev - open_start + 1))
    return spans


class DiffEngine:
    """Sorted index of offsets at which the open files disagree.

    The index is rebuilt from scratch by `recalculate`; queries use binary
    search. `enabled` is a display toggle for callers, queries ignore it.
    """

    def __init__(self, *, enabled: bool = True) -> None:
        self.enabled = enabled
        self._offsets = array("Q")
        self._max_size = 0
        self._sizes: list[int] = []

    def recalculate(self, files: Sequence[HasData]) -> None:
        if len(files) < 2:
            self._offsets = array("Q")
            self._max_size = max((len(f.data) for f in files), default=0)
            self._sizes = [len(f.data) for f in files]
            return
        buffers = [f.data for f in files]
        self._offsets = compute_diff_offsets(buffers)
        self._sizes = [len(b) for b in buffers]
        self._max_size = max(self._sizes)
        logger.debug(
            "Diff recalculated over %d files: %d differing bytes",
            len(files),
            len(self._offsets),
        )

    def clear(self) -> None:
        self._offsets = array("Q")
        self._max_size = 0
        self._sizes = []

    @property
    def offsets(self) -> array:
        return self._offsets

    def __len__(self) -> int:
        return len(self._offsets)

    def is_diff_at(self, offset: int) -> bool:
        if offset < 0 or offset >= self._max_size:
            return False
        i = bisect_left(self._offsets, offset)
        return i < len(self._offsets) and self._offsets[i] == offset

    def get_next_diff(self, after: int) -> int | None:
        """Smallest diff offset strictly greater than `after`."""
        i = bisect_right(self._offsets, after) if after >= 0 else 0
        if i < len(self._offsets):
            return int(self._offsets[i])
        return None

    def count_below(self, end: int) -> int:
        """Number of diff offsets smaller than `end`."""
        return bisect_left(self._offsets, end) if end > 0 else 0

    def get_prev_diff(self, before: int) -> int | None:
        """Largest diff offset strictly smaller than `before`."""
        if before <= 0:
            return None
        i = bisect_left(self._offsets, before) - 1
        if i >= 0:
            return int(self._offsets[i])
        return None

    def spans(self) -> list[tuple[int, int]]:
        return offsets_to_spans(self._offsets)

    def stats(self) -> dict[str, float | int]:
        changed = len(self._offsets)
        return {
            "files": len(self._sizes),
            "max_size": self._max_size,
            "changed_bytes": changed,
            "changed_percent": (changed / self._max_size * 100.0) if self._max_size > 0 else 0.0,
        }
