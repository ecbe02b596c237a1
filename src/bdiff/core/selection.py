from __future__ import annotations

from dataclasses import dataclass, replace
from typing import Literal

SelectionState = Literal["none", "selecting", "selected"]
# "primary" is the hex column, "secondary" the text column
SelectionSide = Literal["primary", "secondary"]


@dataclass
class Selection:
    """A byte range driven by pointer drags and keyboard moves.

    `first` is where the drag began and `second` where it currently is; they
    are unordered, use `start()`/`end()`. While `state` is "none" the anchors
    carry no meaning.
    """

    first: int = 0
    second: int = 0
    state: SelectionState = "none"
    side: SelectionSide = "primary"

    def start(self) -> int:
        return min(self.first, self.second)

    def end(self) -> int:
        return max(self.first, self.second)

    def __len__(self) -> int:
        if self.state == "none":
            return 0
        return self.end() - self.start() + 1

    def is_active(self) -> bool:
        return self.state != "none"

    def contains(self, offset: int) -> bool:
        return self.state != "none" and self.start() <= offset <= self.end()

    def begin(self, pos: int, side: SelectionSide = "primary") -> None:
        self.first = pos
        self.second = pos
        self.state = "selecting"
        self.side = side

    def update(self, pos: int) -> None:
        if self.state != "selecting":
            return
        self.second = pos

    def finalize(self, pos: int) -> None:
        self.second = pos
        self.state = "selected"

    def clear(self) -> None:
        self.first = 0
        self.second = 0
        self.state = "none"
        self.side = "primary"

    def adjust(self, delta: int) -> None:
        self.first = max(0, self.first + delta)
        self.second = max(0, self.second + delta)

    def clamp_to_length(self, length: int) -> None:
        """Fit the anchors inside a file of `length` bytes.

        Clears when both anchors fall outside; otherwise each anchor is
        clamped to the last byte on its own.
        """
        if self.first >= length and self.second >= length:
            self.clear()
            return
        self.first = min(self.first, length - 1)
        self.second = min(self.second, length - 1)

    def fits(self, length: int) -> bool:
        return self.start() < length and self.end() < length

    def copy(self) -> Selection:
        return replace(self)

    def assign(self, other: Selection) -> None:
        self.first = other.first
        self.second = other.second
        self.state = other.state
        self.side = other.side
