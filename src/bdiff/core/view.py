from __future__ import annotations

from bdiff.core.io import BinaryFile
from bdiff.core.selection import Selection
from bdiff.core.symbols import MapFile, SymbolMatch

MIN_ROWS = 10
MAX_ROWS = 25
DEFAULT_BYTES_PER_ROW = 0x10


class FileView:
    """Navigation state for one open file.

    Holds the scroll position (`cur_pos`, the first byte on screen), the
    hovered offset and the file's selection. Knows nothing about drawing.
    """

    def __init__(
        self,
        file: BinaryFile,
        view_id: int,
        *,
        bytes_per_row: int = DEFAULT_BYTES_PER_ROW,
        map_file: MapFile | None = None,
    ) -> None:
        if bytes_per_row <= 0:
            raise ValueError("bytes_per_row must be positive")
        self.id = view_id
        self.file = file
        self.bytes_per_row = bytes_per_row
        self.num_rows = max(MIN_ROWS, min(file.size // bytes_per_row, MAX_ROWS))
        self.cur_pos = 0
        self.pos_locked = False
        self.selection = Selection()
        self.cursor_pos: int | None = None
        self.map_file = map_file
        self.closed = False

    @property
    def size(self) -> int:
        return self.file.size

    # ---- Scrolling ----
    def bytes_per_screen(self) -> int:
        return self.bytes_per_row * self.num_rows

    def last_line_start(self) -> int:
        return max(0, (self.file.size - 1) // self.bytes_per_row * self.bytes_per_row)

    def set_cur_pos(self, value: int) -> None:
        if self.pos_locked:
            return
        self.cur_pos = max(0, min(value, self.last_line_start()))

    def adjust_cur_pos(self, delta: int) -> None:
        self.set_cur_pos(self.cur_pos + delta)

    def get_cur_bytes(self) -> bytes:
        return self.file.read(self.cur_pos, self.bytes_per_screen())

    def get_selected_bytes(self) -> bytes:
        if not self.selection.is_active():
            return b""
        return self.file.read(self.selection.start(), len(self.selection))

    # ---- Reload ----
    def reload_file(self) -> None:
        """Reload the file and fit the selection into the new length."""
        self.file.reload()
        if self.selection.is_active():
            self.selection.clamp_to_length(self.file.size)
        if self.cursor_pos is not None and self.cursor_pos >= self.file.size:
            self.cursor_pos = None
        self.cur_pos = min(self.cur_pos, self.last_line_start())

    # ---- Labels ----
    def lookup(self, start: int, end_exclusive: int) -> SymbolMatch | None:
        if self.map_file is None:
            return None
        return self.map_file.get_entry(start, end_exclusive)

    def selection_label(self) -> str:
        if not self.selection.is_active():
            return "No selection"
        start = self.selection.start()
        end = self.selection.end()
        length = end - start + 1
        if length == 1:
            text = f"Selection: 0x{start:X}"
        else:
            text = f"Selection: 0x{start:X} - 0x{end:X} (len 0x{length:X})"
        match = self.lookup(start, end + 1)
        if match is not None:
            text += f" ({match.label()})"
        return text

    def cursor_label(self) -> str:
        if self.cursor_pos is None:
            return "Not hovering"
        pos = self.cursor_pos
        match = self.lookup(pos, pos + 1)
        if match is not None:
            return f"Cursor: 0x{pos:X} ({match.label()})"
        return f"Cursor: 0x{pos:X}"

    def selection_text(self) -> str:
        data = self.get_selected_bytes()
        if self.selection.side == "secondary":
            return data.decode("utf-8", errors="replace")
        return " ".join(f"{b:02X}" for b in data)

    def __repr__(self) -> str:
        return f"FileView(id={self.id}, path={str(self.file.path)!r})"
