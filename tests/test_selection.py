from __future__ import annotations

import pytest

from bdiff.core.selection import Selection


def test_drag_sequence() -> None:
    sel = Selection()
    sel.begin(5, "primary")
    sel.update(2)
    assert (sel.start(), sel.end(), sel.state) == (2, 5, "selecting")
    sel.finalize(7)
    assert (sel.start(), sel.end(), sel.state) == (5, 7, "selected")
    sel.clear()
    assert sel.state == "none"
    assert not any(sel.contains(o) for o in range(0, 20))


def test_begin_discards_previous_selection() -> None:
    sel = Selection()
    sel.begin(1, "secondary")
    sel.finalize(9)
    sel.begin(4, "primary")
    assert (sel.first, sel.second, sel.state, sel.side) == (4, 4, "selecting", "primary")


def test_update_is_noop_unless_selecting() -> None:
    sel = Selection()
    sel.update(10)
    assert sel.state == "none"
    assert sel.second == 0
    sel.begin(3)
    sel.finalize(4)
    sel.update(12)
    assert sel.end() == 4
    assert sel.state == "selected"


def test_one_byte_selection() -> None:
    sel = Selection()
    sel.begin(8)
    sel.finalize(8)
    assert sel.start() == sel.end() == 8
    assert len(sel) == 1
    assert sel.contains(8)
    assert not sel.contains(9)


def test_clear_resets_side() -> None:
    sel = Selection()
    sel.begin(2, "secondary")
    sel.clear()
    assert (sel.first, sel.second, sel.side) == (0, 0, "primary")
    assert len(sel) == 0


def test_adjust_floors_at_zero() -> None:
    sel = Selection(first=3, second=10, state="selected")
    sel.adjust(-100)
    assert (sel.first, sel.second) == (0, 0)
    assert sel.state == "selected"


def test_adjust_moves_both_anchors() -> None:
    sel = Selection(first=3, second=10, state="selected")
    sel.adjust(16)
    assert (sel.first, sel.second) == (19, 26)


@pytest.mark.parametrize(
    "first,second,length,expected",
    [
        (3, 8, 10, (3, 8, "selected")),
        (3, 8, 6, (3, 5, "selected")),
        (8, 3, 6, (5, 3, "selected")),
        (7, 8, 5, (0, 0, "none")),
        (0, 0, 0, (0, 0, "none")),
    ],
)
def test_clamp_to_length(first: int, second: int, length: int, expected: tuple[int, int, str]) -> None:
    sel = Selection(first=first, second=second, state="selected")
    sel.clamp_to_length(length)
    assert (sel.first, sel.second, sel.state) == expected


def test_copy_is_independent() -> None:
    sel = Selection()
    sel.begin(1)
    dup = sel.copy()
    sel.update(9)
    assert dup.second == 1
    assert dup != sel
