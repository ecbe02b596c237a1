"""Symbol maps: resolve file offsets to `symbol + offset` labels."""

from __future__ import annotations

import logging
import os
import re
from bisect import bisect_right
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from bdiff.core.watch import ChangeFlag

logger = logging.getLogger(__name__)

ErrorPolicy = Literal["strict", "skip"]

_HEX = r"(?:0[xX])?([0-9a-fA-F]+)"
_NAME = r"([A-Za-z_.$@?][\w.$@?:<>~+-]*)"
# "0x80001000 func_name" (also GNU ld symbol lines, which are indented)
_ADDR_NAME = re.compile(rf"^\s*{_HEX}\s+{_NAME}\s*$")
# "func_name = 0x80001000;" (linker script style)
_NAME_ADDR = re.compile(rf"^\s*{_NAME}\s*=\s*{_HEX}\s*;?\s*$")
_COMMENT_PREFIXES = ("#", ";", "//")


class ParseError(ValueError):
    """Raised when a map line cannot be decoded as an address/name pair."""

    def __init__(self, line_no: int, line: str, source: str | None = None) -> None:
        where = f"{source}: " if source else ""
        super().__init__(f"{where}line {line_no}: cannot decode address/name pair: {line.strip()!r}")
        self.line_no = line_no
        self.line = line
        self.source = source


@dataclass(frozen=True)
class SymbolEntry:
    address: int
    name: str


@dataclass(frozen=True)
class SymbolMatch:
    entry: SymbolEntry
    offset: int

    @property
    def name(self) -> str:
        return self.entry.name

    @property
    def address(self) -> int:
        return self.entry.address

    def label(self) -> str:
        return f"{self.entry.name} + 0x{self.offset:X}"


def parse_line(line: str) -> SymbolEntry | None:
    """Decode one record line. Returns None if it does not match."""
    m = _ADDR_NAME.match(line)
    if m:
        return SymbolEntry(int(m.group(1), 16), m.group(2))
    m = _NAME_ADDR.match(line)
    if m:
        return SymbolEntry(int(m.group(2), 16), m.group(1))
    return None


class SymbolTable:
    """Address-sorted symbol entries with floor lookup."""

    def __init__(self, entries: list[SymbolEntry], *, skipped: int = 0) -> None:
        # stable sort keeps file order for duplicate addresses
        self._entries = sorted(entries, key=lambda e: e.address)
        self._addresses = [e.address for e in self._entries]
        self.skipped = skipped

    @classmethod
    def parse(
        cls,
        text: str,
        *,
        on_error: ErrorPolicy = "strict",
        base: int = 0,
        source: str | None = None,
    ) -> SymbolTable:
        """Parse map text into a table.

        Blank and comment lines are ignored. With `on_error="strict"` the
        first undecodable line raises `ParseError`; with "skip" such lines
        are dropped and counted in `skipped`. `base` is subtracted from every
        address, and entries below it are dropped.
        """
        if on_error not in ("strict", "skip"):
            raise ValueError(f"Unknown error policy: {on_error!r}")
        entries: list[SymbolEntry] = []
        skipped = 0
        for line_no, line in enumerate(text.splitlines(), start=1):
            stripped = line.strip()
            if not stripped or stripped.startswith(_COMMENT_PREFIXES):
                continue
            entry = parse_line(line)
            if entry is None:
                if on_error == "strict":
                    raise ParseError(line_no, line, source)
                skipped += 1
                continue
            if entry.address < base:
                continue
            if base:
                entry = SymbolEntry(entry.address - base, entry.name)
            entries.append(entry)
        return cls(entries, skipped=skipped)

    @property
    def entries(self) -> list[SymbolEntry]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def get_entry(self, start: int, end_exclusive: int | None = None) -> SymbolMatch | None:
        """Find the symbol at or before `start`.

        Only `start` is used; the range end is accepted for callers labelling
        selections but not checked against the following symbol.
        """
        i = bisect_right(self._addresses, start) - 1
        if i < 0:
            return None
        entry = self._entries[i]
        return SymbolMatch(entry, start - entry.address)


class MapFile:
    """A symbol map on disk with its last successfully parsed table."""

    def __init__(
        self,
        path: str | os.PathLike[str],
        *,
        on_error: ErrorPolicy = "strict",
        base: int = 0,
    ) -> None:
        self.path = Path(path)
        self.on_error: ErrorPolicy = on_error
        self.base = int(base)
        self.table: SymbolTable | None = None
        self.modified = ChangeFlag()

    @classmethod
    def load(
        cls,
        path: str | os.PathLike[str],
        *,
        on_error: ErrorPolicy = "strict",
        base: int = 0,
    ) -> MapFile:
        mf = cls(path, on_error=on_error, base=base)
        mf.reload()
        return mf

    def reload(self) -> SymbolTable:
        """Reparse from disk.

        Raises `OSError` or `ParseError`; either way the previous table stays
        in place.
        """
        text = self.path.read_text(encoding="utf-8", errors="replace")
        table = SymbolTable.parse(text, on_error=self.on_error, base=self.base, source=str(self.path))
        if table.skipped:
            logger.warning("Skipped %d unreadable lines in %s", table.skipped, self.path)
        self.table = table
        return table

    def take_modified(self) -> bool:
        return self.modified.consume()

    def get_entry(self, start: int, end_exclusive: int | None = None) -> SymbolMatch | None:
        if self.table is None:
            return None
        return self.table.get_entry(start, end_exclusive)
