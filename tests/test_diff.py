from __future__ import annotations

from pathlib import Path

import pytest

from bdiff.core.diff import DiffEngine, compute_diff_offsets, offsets_to_spans
from bdiff.core.io import BinaryFile


def mkfile(data: bytes, name: str = "f.bin") -> BinaryFile:
    return BinaryFile(name, data)


@pytest.mark.parametrize("size", [0, 1, 7, 4096])
def test_identical_files_no_diffs(size: int) -> None:
    data = bytes(i % 256 for i in range(size))
    engine = DiffEngine()
    engine.recalculate([mkfile(data, "a"), mkfile(data, "b")])
    assert list(engine.offsets) == []
    assert engine.get_next_diff(-1) is None


def test_single_changed_byte() -> None:
    engine = DiffEngine()
    engine.recalculate([mkfile(b"\x00\x01\x02\x03"), mkfile(b"\x00\x09\x02\x03")])
    assert list(engine.offsets) == [1]
    assert engine.is_diff_at(1) is True
    assert engine.is_diff_at(0) is False
    assert engine.get_next_diff(0) == 1
    assert engine.get_next_diff(1) is None


def test_shorter_file_tail_counts_as_changed() -> None:
    engine = DiffEngine()
    engine.recalculate([mkfile(b"abcdef"), mkfile(b"abXd")])
    # 2 differs in the overlap, 4..5 are missing from the shorter file
    assert list(engine.offsets) == [2, 4, 5]
    assert engine.spans() == [(2, 1), (4, 2)]


def test_three_files_any_disagreement() -> None:
    engine = DiffEngine()
    engine.recalculate([mkfile(b"aaaa"), mkfile(b"aaaa"), mkfile(b"aaba")])
    assert list(engine.offsets) == [2]


def test_fewer_than_two_files_is_empty() -> None:
    engine = DiffEngine()
    engine.recalculate([mkfile(b"abc"), mkfile(b"xyz")])
    assert len(engine) == 3
    engine.recalculate([mkfile(b"abc")])
    assert len(engine) == 0
    engine.recalculate([])
    assert len(engine) == 0
    assert engine.is_diff_at(0) is False


def test_recalculate_replaces_previous_result() -> None:
    engine = DiffEngine()
    engine.recalculate([mkfile(b"abcd"), mkfile(b"xbcd")])
    assert list(engine.offsets) == [0]
    engine.recalculate([mkfile(b"abcd"), mkfile(b"abcx")])
    assert list(engine.offsets) == [3]


def test_queries_out_of_range() -> None:
    engine = DiffEngine()
    engine.recalculate([mkfile(b"ab"), mkfile(b"ax")])
    assert engine.is_diff_at(2) is False
    assert engine.is_diff_at(1000) is False
    assert engine.is_diff_at(-1) is False
    assert engine.get_next_diff(-5) == 1
    assert engine.get_next_diff(1000) is None


def test_prev_diff() -> None:
    engine = DiffEngine()
    engine.recalculate([mkfile(b"aXcdeY"), mkfile(b"abcdef")])
    assert engine.get_prev_diff(5) == 1
    assert engine.get_prev_diff(6) == 5
    assert engine.get_prev_diff(1) is None
    assert engine.get_prev_diff(0) is None


def test_count_below() -> None:
    engine = DiffEngine()
    engine.recalculate([mkfile(b"aXcdeY"), mkfile(b"abcdef")])
    assert engine.count_below(0) == 0
    assert engine.count_below(1) == 0
    assert engine.count_below(2) == 1
    assert engine.count_below(5) == 1
    assert engine.count_below(100) == 2


def test_queries_ignore_enabled_flag() -> None:
    engine = DiffEngine(enabled=False)
    engine.recalculate([mkfile(b"ab"), mkfile(b"ax")])
    assert engine.is_diff_at(1) is True


def test_chunk_boundary_changes() -> None:
    base = bytearray(range(32))
    mod = bytearray(base)
    for i in range(6, 11):
        mod[i] ^= 0xFF
    offsets = compute_diff_offsets([bytes(mod), bytes(base)], chunk_size=8)
    assert list(offsets) == [6, 7, 8, 9, 10]
    assert offsets_to_spans(offsets) == [(6, 5)]


def test_chunk_size_must_be_positive() -> None:
    with pytest.raises(ValueError):
        compute_diff_offsets([b"a", b"b"], chunk_size=0)


def test_offsets_to_spans_merges_runs() -> None:
    assert offsets_to_spans([]) == []
    assert offsets_to_spans([0, 1, 2, 5, 7, 8]) == [(0, 3), (5, 1), (7, 2)]


def test_stats() -> None:
    engine = DiffEngine()
    engine.recalculate([mkfile(b"abcd"), mkfile(b"abcdef")])
    stats = engine.stats()
    assert stats["files"] == 2
    assert stats["max_size"] == 6
    assert stats["changed_bytes"] == 2
    assert round(stats["changed_percent"], 2) == round(2 / 6 * 100.0, 2)


def test_diff_files_from_disk(tmp_path: Path) -> None:
    a = tmp_path / "a.bin"
    b = tmp_path / "b.bin"
    a.write_bytes(b"hello world")
    b.write_bytes(b"hello World!")
    engine = DiffEngine()
    engine.recalculate([BinaryFile.load(a), BinaryFile.load(b)])
    assert list(engine.offsets) == [6, 11]
