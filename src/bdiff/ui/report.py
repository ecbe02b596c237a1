"""Rich renderables for the command-line summary."""

from __future__ import annotations

from rich.style import Style
from rich.table import Table
from rich.text import Text

from bdiff.core.diff import DiffEngine
from bdiff.core.session import Session
from bdiff.core.view import FileView
from bdiff.ui.palette import PALETTE


def files_table(session: Session) -> Table:
    table = Table(title="Files", title_style=PALETTE.accent, header_style="bold")
    table.add_column("#", justify="right")
    table.add_column("Path")
    table.add_column("Size", justify="right")
    table.add_column("Symbols", justify="right")
    table.add_column("Differs", justify="right")
    for v in session.views:
        if v.map_file is None:
            symbols = "-"
        elif v.map_file.table is None:
            symbols = Text("error", style=PALETTE.error_fg)
        else:
            symbols = str(len(v.map_file.table))
        differs = session.diff.count_below(v.size)
        table.add_row(str(v.id), str(v.file.path), f"0x{v.size:X}", symbols, str(differs))
    return table


def regions_table(session: Session, *, limit: int | None = None) -> Table:
    """Merged diff regions, labelled with the first file's symbols."""
    table = Table(title="Changed regions", title_style=PALETTE.accent, header_style="bold")
    table.add_column("Start", justify="right")
    table.add_column("End", justify="right")
    table.add_column("Length", justify="right")
    table.add_column("Symbol")
    labeller: FileView | None = session.views[0] if session.views else None
    spans = session.diff.spans()
    if limit is not None:
        spans = spans[:limit]
    for start, length in spans:
        end = start + length - 1
        match = labeller.lookup(start, end + 1) if labeller is not None else None
        label = Text(match.label(), style=PALETTE.symbol_fg) if match else Text("")
        table.add_row(f"0x{start:X}", f"0x{end:X}", f"0x{length:X}", label)
    return table


def hex_rows(view: FileView, diff: DiffEngine, offset: int, rows: int) -> Text:
    """Hex and text columns for `rows` rows starting at the row holding `offset`.

    Differing bytes are coloured; bytes inside the view's selection get the
    selection background.
    """
    bpr = view.bytes_per_row
    text = Text()
    row_start = offset - offset % bpr
    for r in range(rows):
        pos = row_start + r * bpr
        if pos >= view.size:
            break
        chunk = view.file.read(pos, bpr)
        line = Text(f"{pos:08X}  ", style=PALETTE.offset_fg)
        for idx, b in enumerate(chunk):
            line.append(f"{b:02X}", style=_byte_style(view, diff, pos + idx, b, hex_side=True))
            if idx < bpr - 1:
                line.append(" ")
        for pad in range(len(chunk), bpr):
            line.append("  ")
            if pad < bpr - 1:
                line.append(" ")
        line.append("  |")
        for idx, b in enumerate(chunk):
            ch = chr(b) if 32 <= b <= 126 else "."
            line.append(ch, style=_byte_style(view, diff, pos + idx, b, hex_side=False))
        line.append("|")
        text.append(line)
        text.append("\n")
    if text.plain.endswith("\n"):
        text = text[:-1]
    return text


def _byte_style(view: FileView, diff: DiffEngine, off: int, b: int, *, hex_side: bool) -> Style:
    if hex_side:
        fg = PALETTE.hex_null_fg if b == 0 else PALETTE.hex_fg
    else:
        fg = PALETTE.ascii_fg if 32 <= b <= 126 else PALETTE.ascii_other_fg
    if diff.enabled and diff.is_diff_at(off):
        fg = PALETTE.diff_changed_fg
    bg = PALETTE.selection_bg if view.selection.contains(off) else None
    return Style(color=fg, bgcolor=bg)
