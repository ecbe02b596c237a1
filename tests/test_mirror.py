from __future__ import annotations

from bdiff.core.io import BinaryFile
from bdiff.core.mirror import SelectionMirror
from bdiff.core.selection import Selection
from bdiff.core.view import FileView


def mkview(view_id: int, size: int) -> FileView:
    return FileView(BinaryFile(f"f{view_id}.bin", bytes(size)), view_id)


def selected(first: int, second: int) -> Selection:
    return Selection(first=first, second=second, state="selected")


def test_mirror_clears_where_range_does_not_fit() -> None:
    long_view, short_view = mkview(0, 10), mkview(1, 5)
    mirror = SelectionMirror()
    mirror.accept(None, selected(3, 8))
    changed = mirror.propagate([long_view, short_view])
    assert changed == [0, 1]
    assert (long_view.selection.start(), long_view.selection.end()) == (3, 8)
    assert long_view.selection.state == "selected"
    assert short_view.selection.state == "none"


def test_end_exactly_at_length_clears() -> None:
    view = mkview(0, 8)
    mirror = SelectionMirror()
    mirror.accept(None, selected(2, 8))
    mirror.propagate([view])
    assert view.selection.state == "none"


def test_source_view_is_left_alone() -> None:
    source, other = mkview(0, 10), mkview(1, 10)
    source.selection.begin(2)
    source.selection.finalize(4)
    mirror = SelectionMirror()
    mirror.accept(source.id, source.selection)
    changed = mirror.propagate([source, other])
    assert changed == [1]
    assert other.selection == source.selection


def test_mirrored_selection_is_a_copy() -> None:
    a, b = mkview(0, 10), mkview(1, 10)
    a.selection.begin(1)
    mirror = SelectionMirror()
    mirror.accept(a.id, a.selection)
    mirror.propagate([a, b])
    a.selection.update(6)
    b.selection.adjust(2)
    assert mirror.selection.end() == 1
    assert (b.selection.first, b.selection.second) == (3, 3)
    assert a.selection.end() == 6


def test_disabled_mirror_changes_nothing() -> None:
    a, b = mkview(0, 10), mkview(1, 10)
    mirror = SelectionMirror(enabled=False)
    mirror.accept(None, selected(1, 2))
    assert mirror.propagate([a, b]) == []
    assert a.selection.state == "none"


def test_reset_and_finish_drag() -> None:
    mirror = SelectionMirror()
    sel = Selection()
    sel.begin(4)
    mirror.accept(7, sel)
    mirror.finish_drag()
    assert mirror.selection.state == "selected"
    mirror.reset()
    assert mirror.selection.state == "none"
    assert mirror.source_id is None
