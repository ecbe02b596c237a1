from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class Palette:
    accent: str
    offset_fg: str
    hex_fg: str
    hex_null_fg: str
    ascii_fg: str
    ascii_other_fg: str
    diff_changed_fg: str
    selection_bg: str
    symbol_fg: str
    error_fg: str


DEFAULT = Palette(
    accent="#00ffff",
    offset_fg="#e5e5e5",
    hex_fg="#e5e5e5",
    hex_null_fg="#808080",
    ascii_fg="#00ff00",
    ascii_other_fg="#808080",
    diff_changed_fg="#ff5555",
    selection_bg="#3c3c5a",
    symbol_fg="#ffff00",
    error_fg="#ff6666",
)

# Selected palette for now
PALETTE = DEFAULT
