from __future__ import annotations

import logging
import os
from pathlib import Path

from bdiff.core.watch import ChangeFlag

logger = logging.getLogger(__name__)


class InvalidOffset(ValueError):
    """Raised when an invalid (e.g., negative) offset is provided."""


class TruncatedRead(OSError):
    """Raised when a file yields fewer bytes than its reported size."""


def read_file_bytes(path: str | os.PathLike[str], *, chunk_size: int = 64 * 1024) -> bytes:
    """Read the whole file at `path` in chunks.

    Raises `FileNotFoundError`/`PermissionError` as reported by the OS, and
    `TruncatedRead` if the file shrinks while it is being read.
    """
    if chunk_size <= 0:
        raise ValueError("chunk_size must be positive")
    try:
        st = os.stat(path)
    except FileNotFoundError:
        raise FileNotFoundError(f"File not found: {path}") from None

    expected = int(st.st_size)
    buf = bytearray()
    with open(path, "rb", buffering=0) as fh:
        while len(buf) < expected:
            chunk = fh.read(min(chunk_size, expected - len(buf)))
            if not chunk:
                break
            buf += chunk
    if len(buf) < expected:
        raise TruncatedRead(f"Short read on {path}: got {len(buf)} of {expected} bytes")
    return bytes(buf)


class BinaryFile:
    """An open file: its path, its full contents and a change flag.

    `data` is only ever replaced as a whole. `modified` is set by a watcher
    thread and consumed here via `take_modified()`.
    """

    def __init__(self, path: str | os.PathLike[str], data: bytes) -> None:
        self._path = Path(path)
        self._data = bytes(data)
        self.modified = ChangeFlag()

    @classmethod
    def load(cls, path: str | os.PathLike[str]) -> BinaryFile:
        data = read_file_bytes(path)
        logger.debug("Loaded %s (%d bytes)", path, len(data))
        return cls(path, data)

    @property
    def path(self) -> Path:
        return self._path

    @property
    def data(self) -> bytes:
        return self._data

    @property
    def size(self) -> int:
        """File size in bytes."""
        return len(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def reload(self) -> None:
        """Re-read the file from disk.

        On failure the previous contents are kept and the error propagates.
        """
        data = read_file_bytes(self._path)
        self._data = data

    def take_modified(self) -> bool:
        """Return and clear the change flag."""
        return self.modified.consume()

    def byte_at(self, offset: int) -> int | None:
        """Return the byte value at `offset`, or None if at EOF.

        Negative offsets raise `InvalidOffset`.
        """
        if offset < 0:
            raise InvalidOffset("offset must be >= 0")
        if offset >= len(self._data):
            return None
        return self._data[offset]

    def read(self, offset: int, length: int) -> bytes:
        """Read up to `length` bytes starting at `offset`.

        - Negative `offset` or `length` raises `InvalidOffset`.
        - If `offset` >= size, returns b"".
        - Reading past EOF returns the truncated data.
        """
        if offset < 0:
            raise InvalidOffset("offset must be >= 0")
        if length < 0:
            raise InvalidOffset("length must be >= 0")
        if length == 0 or offset >= len(self._data):
            return b""
        return self._data[offset : offset + length]

    def __repr__(self) -> str:
        return f"BinaryFile({str(self._path)!r}, size={len(self._data)})"
