from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

import yaml

DEFAULT_WORKSPACE = "bdiff.json"


class WorkspaceError(Exception):
    def __init__(self, errors: list[str]):
        super().__init__("; ".join(errors))
        self.errors = errors


@dataclass(frozen=True)
class FileEntry:
    path: Path
    map: Path | None = None
    map_base: int = 0
    map_errors: str = "strict"


def _as_int(value: Any) -> int | None:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        s = value.strip().lower()
        try:
            return int(s, 16) if s.startswith("0x") else int(s, 10)
        except ValueError:
            return None
    return None


def parse_workspace(text: str, *, root: Path | None = None) -> list[FileEntry]:
    """Parse a workspace description.

    Accepts YAML or JSON with a top-level `files` list. Each item is a path
    string or a mapping with `path` and optional `map`, `map_base` and
    `map_errors`. Relative paths are resolved against `root`.
    """
    try:
        data = yaml.safe_load(text) or {}
    except yaml.YAMLError as e:
        raise WorkspaceError([f"YAML parse error: {e}"]) from None

    if not isinstance(data, dict):
        raise WorkspaceError(["Top-level document must be a mapping with a 'files' list."])
    raw_files = data.get("files", [])
    if not isinstance(raw_files, list):
        raise WorkspaceError(["files must be a list"])

    def resolve(p: str) -> Path:
        path = Path(p).expanduser()
        if root is not None and not path.is_absolute():
            path = root / path
        return path

    errors: list[str] = []
    entries: list[FileEntry] = []
    for i, item in enumerate(raw_files):
        if isinstance(item, str):
            entries.append(FileEntry(resolve(item)))
            continue
        if not isinstance(item, dict):
            errors.append(f"files[{i}]: expected a path or a mapping")
            continue
        path = item.get("path")
        if not isinstance(path, str) or not path:
            errors.append(f"files[{i}]: 'path' is required")
            continue
        map_path = item.get("map")
        if map_path is not None and not isinstance(map_path, str):
            errors.append(f"files[{i}]: 'map' must be a path")
            continue
        base = _as_int(item.get("map_base", 0))
        if base is None or base < 0:
            errors.append(f"files[{i}]: 'map_base' must be a non-negative integer")
            continue
        policy = item.get("map_errors", "strict")
        if policy not in ("strict", "skip"):
            errors.append(f"files[{i}]: 'map_errors' must be 'strict' or 'skip'")
            continue
        entries.append(
            FileEntry(
                path=resolve(path),
                map=resolve(map_path) if map_path else None,
                map_base=base,
                map_errors=policy,
            )
        )
    if errors:
        raise WorkspaceError(errors)
    return entries


def load_workspace(path: str | os.PathLike[str]) -> list[FileEntry]:
    p = Path(path)
    try:
        text = p.read_text(encoding="utf-8")
    except OSError as e:
        raise WorkspaceError([f"Cannot read workspace {p}: {e}"]) from None
    return parse_workspace(text, root=p.parent)
