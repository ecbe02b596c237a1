from __future__ import annotations

import logging
import os
from collections.abc import Iterable
from dataclasses import dataclass, field
from pathlib import Path

from bdiff.core.diff import DiffEngine
from bdiff.core.io import BinaryFile
from bdiff.core.mirror import SelectionMirror
from bdiff.core.selection import SelectionSide
from bdiff.core.symbols import ErrorPolicy, MapFile, ParseError
from bdiff.core.view import DEFAULT_BYTES_PER_ROW, FileView
from bdiff.core.watch import FileWatcher, file_stamp
from bdiff.core.workspace import FileEntry

logger = logging.getLogger(__name__)


def parse_offset(text: str) -> int | None:
    s = text.strip().lower()
    try:
        if s.startswith("0x"):
            return int(s, 16)
        return int(s, 10)
    except ValueError:
        return None


@dataclass
class PollReport:
    reloaded: list[Path] = field(default_factory=list)
    failed: list[tuple[Path, str]] = field(default_factory=list)
    maps_reloaded: list[Path] = field(default_factory=list)
    maps_failed: list[tuple[Path, str]] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.reloaded or self.maps_reloaded)


class Session:
    """All open files plus the shared diff and selection state.

    Selection input is applied per view, then `end_step()` settles the
    step: it finishes drags released outside any view and mirrors the
    canonical selection to every file.
    """

    def __init__(
        self,
        *,
        diff_enabled: bool = True,
        mirror_selection: bool = True,
        bytes_per_row: int = DEFAULT_BYTES_PER_ROW,
        watcher: FileWatcher | None = None,
    ) -> None:
        self.views: list[FileView] = []
        self.diff = DiffEngine(enabled=diff_enabled)
        self.mirror = SelectionMirror(enabled=mirror_selection)
        self.watcher = watcher if watcher is not None else FileWatcher()
        self.bytes_per_row = bytes_per_row
        self.selecting_id: int | None = None
        self.last_selected_id: int | None = None
        self._next_id = 0

    # ---- File set ----
    def open_file(
        self,
        path: str | os.PathLike[str],
        map_path: str | os.PathLike[str] | None = None,
        *,
        map_base: int = 0,
        map_errors: ErrorPolicy = "strict",
        recalculate: bool = True,
    ) -> FileView:
        """Open `path` as a new view. Raises `OSError` if it cannot be read.

        A map that fails to load is logged and attached without symbols, so
        a later change to it can still be picked up.
        """
        stamp = file_stamp(path)
        file = BinaryFile.load(path)
        view = FileView(file, self._next_id, bytes_per_row=self.bytes_per_row)
        self._next_id += 1
        self.watcher.watch(file.path, file.modified, baseline=stamp)
        if map_path is not None:
            view.map_file = self._attach_map(map_path, map_base, map_errors)
        self.views.append(view)
        logger.info("Opened %s (%d bytes)", file.path, file.size)
        if recalculate:
            self.recalculate_diff()
        return view

    def _attach_map(self, path: str | os.PathLike[str], base: int, on_error: ErrorPolicy) -> MapFile:
        map_file = MapFile(path, on_error=on_error, base=base)
        stamp = file_stamp(map_file.path)
        try:
            table = map_file.reload()
            logger.info("Loaded map %s (%d symbols)", map_file.path, len(table))
        except (OSError, ParseError) as e:
            logger.error("Failed to load map file: %s", e)
        self.watcher.watch(map_file.path, map_file.modified, baseline=stamp)
        return map_file

    def open_workspace(self, entries: Iterable[FileEntry]) -> list[FileView]:
        opened: list[FileView] = []
        for entry in entries:
            try:
                view = self.open_file(
                    entry.path,
                    entry.map,
                    map_base=entry.map_base,
                    map_errors=entry.map_errors,  # type: ignore[arg-type]
                    recalculate=False,
                )
            except OSError as e:
                logger.error("Failed to open file: %s", e)
                continue
            opened.append(view)
        self.recalculate_diff()
        return opened

    def close_file(self, view_id: int) -> bool:
        view = self.get_view(view_id)
        if view is None:
            return False
        view.closed = True
        self.views.remove(view)
        self.watcher.unwatch(view.file.modified)
        if view.map_file is not None:
            self.watcher.unwatch(view.map_file.modified)
        if self.last_selected_id == view_id:
            self.last_selected_id = None
        if self.selecting_id == view_id:
            self.selecting_id = None
        if not self.views:
            self.mirror.reset()
        self.recalculate_diff()
        return True

    def get_view(self, view_id: int) -> FileView | None:
        for v in self.views:
            if v.id == view_id:
                return v
        return None

    @property
    def files(self) -> list[BinaryFile]:
        return [v.file for v in self.views]

    # ---- Diff ----
    def recalculate_diff(self) -> None:
        if not self.diff.enabled:
            self.diff.clear()
            return
        self.diff.recalculate(self.files)

    def set_diff_enabled(self, enabled: bool) -> None:
        self.diff.enabled = enabled
        self.recalculate_diff()

    def jump_to_next_diff(self, view_id: int, *, wrap: bool = False) -> int | None:
        """Scroll a view so the next diff below the screen is on its top row.

        With no diff left the view goes to the last screen of the file. With
        diffs disabled it moves one screen down.
        """
        view = self.get_view(view_id)
        if view is None:
            return None
        bps = view.bytes_per_screen()
        if not self.diff.enabled:
            view.adjust_cur_pos(bps)
            return view.cur_pos
        last_byte = view.cur_pos + bps
        nxt = self.diff.get_next_diff(last_byte) if last_byte < view.size else None
        if nxt is None and wrap:
            nxt = self.diff.get_next_diff(-1)
        if nxt is not None:
            view.set_cur_pos(nxt - nxt % view.bytes_per_row)
        elif last_byte < view.size and view.size >= bps:
            view.set_cur_pos(view.size - bps)
        return view.cur_pos

    def goto(self, pos: int) -> None:
        for v in self.views:
            v.set_cur_pos(pos)

    def goto_text(self, text: str) -> bool:
        pos = parse_offset(text)
        if pos is None or pos < 0:
            return False
        self.goto(pos)
        return True

    # ---- Selection input ----
    def _selectable(self, view_id: int, pos: int) -> FileView | None:
        if self.selecting_id is not None and self.selecting_id != view_id:
            return None
        view = self.get_view(view_id)
        if view is None or pos < 0 or pos >= view.size:
            return None
        return view

    def _selection_changed(self, view: FileView) -> None:
        if view.selection.state == "selecting":
            self.selecting_id = view.id
            self.last_selected_id = view.id
        else:
            self.selecting_id = None
        self.mirror.accept(view.id, view.selection)

    def begin_selection(self, view_id: int, pos: int, side: SelectionSide = "primary") -> bool:
        view = self._selectable(view_id, pos)
        if view is None:
            return False
        before = view.selection.copy()
        view.selection.begin(pos, side)
        if view.selection != before:
            self._selection_changed(view)
        return True

    def update_selection(self, view_id: int, pos: int) -> bool:
        view = self._selectable(view_id, pos)
        if view is None or view.selection.state != "selecting":
            return False
        before = view.selection.copy()
        view.selection.update(pos)
        if view.selection != before:
            self._selection_changed(view)
        return True

    def finalize_selection(self, view_id: int, pos: int) -> bool:
        view = self._selectable(view_id, pos)
        if view is None or view.selection.state != "selecting":
            return False
        view.selection.finalize(pos)
        self._selection_changed(view)
        return True

    def clear_selection(self, view_id: int) -> bool:
        view = self.get_view(view_id)
        if view is None:
            return False
        if view.selection.is_active():
            view.selection.clear()
            self._selection_changed(view)
        return True

    def move_selection(self, delta: int) -> bool:
        """Shift the last selected view's selection, keeping it inside the file."""
        if self.last_selected_id is None:
            return False
        view = self.get_view(self.last_selected_id)
        if view is None or not view.selection.is_active():
            return False
        sel = view.selection
        if sel.start() + delta < 0 or sel.end() + delta > view.size - 1:
            return False
        sel.adjust(delta)
        self.mirror.accept(view.id, sel)
        return True

    def end_step(self, *, pointer_released: bool = False) -> list[int]:
        """Settle a round of selection input and mirror it.

        Returns the ids of views whose selection the mirror rewrote.
        """
        if pointer_released:
            for v in self.views:
                if v.selection.state == "selecting":
                    v.selection.state = "selected"
            self.selecting_id = None
            self.mirror.finish_drag()
        if not self.views:
            self.mirror.reset()
            return []
        return self.mirror.propagate(self.views)

    def copy_selection(self) -> str:
        if self.last_selected_id is None:
            return ""
        view = self.get_view(self.last_selected_id)
        if view is None:
            return ""
        return view.selection_text()

    # ---- Change polling ----
    def poll_changes(self) -> PollReport:
        """Consume change flags and reload what changed.

        Failures are logged and reported; the previous contents stay.
        """
        report = PollReport()
        for v in self.views:
            if v.file.take_modified():
                try:
                    v.reload_file()
                except OSError as e:
                    logger.error("Failed to reload file: %s", e)
                    report.failed.append((v.file.path, str(e)))
                else:
                    logger.info("Reloaded file %s", v.file.path)
                    if v.id in (self.mirror.source_id, self.last_selected_id):
                        # the clamped range is now the canonical one
                        self.mirror.accept(v.id, v.selection)
                    report.reloaded.append(v.file.path)
            mf = v.map_file
            if mf is not None and mf.take_modified():
                try:
                    mf.reload()
                except (OSError, ParseError) as e:
                    logger.error("Failed to reload map file: %s", e)
                    report.maps_failed.append((mf.path, str(e)))
                else:
                    logger.info("Reloaded map file %s", mf.path)
                    report.maps_reloaded.append(mf.path)
        if report.reloaded:
            self.recalculate_diff()
        return report

    def start_watching(self) -> None:
        self.watcher.start()

    def stop_watching(self) -> None:
        self.watcher.stop()
