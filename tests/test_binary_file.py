from __future__ import annotations

from pathlib import Path

import pytest

from bdiff.core.io import BinaryFile, InvalidOffset, read_file_bytes


def make_fixture_file(tmp_path: Path, size: int = 5000) -> Path:
    # Deterministic content: 0..255 repeating
    data = bytes(i % 256 for i in range(size))
    p = tmp_path / "fixture.bin"
    p.write_bytes(data)
    return p


@pytest.mark.parametrize("chunk_size", [1, 7, 4096, 64 * 1024])
def test_read_file_bytes_chunking(tmp_path: Path, chunk_size: int) -> None:
    path = make_fixture_file(tmp_path, size=5000)
    assert read_file_bytes(path, chunk_size=chunk_size) == bytes(i % 256 for i in range(5000))


def test_load_and_read_ranges(tmp_path: Path) -> None:
    path = make_fixture_file(tmp_path, size=5000)
    f = BinaryFile.load(path)
    assert f.size == len(f) == 5000
    assert f.path == path
    assert f.read(0, 16) == bytes(range(16))
    assert f.read(1234, 77) == bytes(i % 256 for i in range(1234, 1234 + 77))
    # past EOF truncates, at EOF is empty
    assert len(f.read(f.size - 10, 100)) == 10
    assert f.read(f.size, 10) == b""


def test_byte_at(tmp_path: Path) -> None:
    f = BinaryFile.load(make_fixture_file(tmp_path, size=1024))
    assert f.byte_at(0) == 0
    assert f.byte_at(255) == 255
    assert f.byte_at(256) == 0
    assert f.byte_at(f.size) is None


def test_invalid_negative_offset_raises(tmp_path: Path) -> None:
    f = BinaryFile.load(make_fixture_file(tmp_path, size=100))
    with pytest.raises(InvalidOffset):
        f.read(-1, 1)
    with pytest.raises(InvalidOffset):
        f.read(0, -1)
    with pytest.raises(InvalidOffset):
        f.byte_at(-5)


def test_file_not_found(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        BinaryFile.load(tmp_path / "missing.bin")


def test_empty_file(tmp_path: Path) -> None:
    p = tmp_path / "empty.bin"
    p.write_bytes(b"")
    f = BinaryFile.load(p)
    assert f.size == 0
    assert f.read(0, 4) == b""


def test_reload_replaces_contents(tmp_path: Path) -> None:
    p = tmp_path / "a.bin"
    p.write_bytes(b"before")
    f = BinaryFile.load(p)
    p.write_bytes(b"after!!")
    f.reload()
    assert f.data == b"after!!"


def test_failed_reload_keeps_previous_contents(tmp_path: Path) -> None:
    p = tmp_path / "a.bin"
    p.write_bytes(b"keep me")
    f = BinaryFile.load(p)
    p.unlink()
    with pytest.raises(OSError):
        f.reload()
    assert f.data == b"keep me"


def test_modified_flag_is_consumed_once() -> None:
    f = BinaryFile("mem.bin", b"\x00")
    assert f.take_modified() is False
    f.modified.set()
    assert f.modified.is_set()
    assert f.take_modified() is True
    assert f.take_modified() is False
