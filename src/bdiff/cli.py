from __future__ import annotations

import argparse
import logging
import os
import time
from pathlib import Path

from rich.console import Console
from rich.logging import RichHandler
from rich.text import Text

from bdiff.core.session import Session
from bdiff.core.watch import FileWatcher
from bdiff.core.workspace import DEFAULT_WORKSPACE, FileEntry, WorkspaceError, load_workspace
from bdiff.ui.report import files_table, hex_rows, regions_table

logger = logging.getLogger("bdiff")


def setup_logging(verbosity: int) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG
    logger.setLevel(level)
    if not any(isinstance(h, RichHandler) for h in logger.handlers):
        handler = RichHandler(console=Console(stderr=True), show_path=False)
        handler.setFormatter(logging.Formatter("%(message)s"))
        logger.addHandler(handler)


def _parse_map_args(values: list[str]) -> dict[str, str]:
    maps: dict[str, str] = {}
    for item in values:
        file_path, sep, map_path = item.partition("=")
        if not sep or not file_path or not map_path:
            raise argparse.ArgumentTypeError(f"expected FILE=MAP, got {item!r}")
        maps[os.path.normpath(file_path)] = map_path
    return maps


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="bdiff", description="Compare binary files byte by byte")
    parser.add_argument("paths", nargs="*", help="Files to compare")
    parser.add_argument("-w", "--workspace", help=f"Workspace file (default: ./{DEFAULT_WORKSPACE})")
    parser.add_argument(
        "-m",
        "--map",
        action="append",
        default=[],
        metavar="FILE=MAP",
        help="Symbol map for FILE (repeatable)",
    )
    parser.add_argument(
        "--map-errors",
        choices=("strict", "skip"),
        default="strict",
        help="How to treat unreadable map lines",
    )
    parser.add_argument("--regions", action="store_true", help="List changed regions")
    parser.add_argument("--limit", type=int, default=None, help="Show at most N regions")
    parser.add_argument("--show", action="store_true", help="Hex dump around the first difference")
    parser.add_argument("--rows", type=int, default=4, help="Rows per hex dump")
    parser.add_argument("--watch", action="store_true", help="Re-report when files change")
    parser.add_argument("--interval", type=float, default=0.5, help="Watch poll interval (s)")
    parser.add_argument("-v", "--verbose", action="count", default=0)
    return parser


def report(session: Session, console: Console, args: argparse.Namespace) -> None:
    console.print(files_table(session))
    stats = session.diff.stats()
    console.print(
        Text(
            f"[diff: {stats['changed_bytes']} bytes, {float(stats['changed_percent']):.1f}%"
            f" over {stats['files']} files]"
        )
    )
    if args.regions:
        console.print(regions_table(session, limit=args.limit))
    if args.show:
        first = session.diff.get_next_diff(-1)
        if first is None:
            return
        for v in session.views:
            console.print(Text(str(v.file.path), style="bold"))
            console.print(hex_rows(v, session.diff, first, args.rows))


def watch_loop(
    session: Session,
    console: Console,
    args: argparse.Namespace,
    *,
    max_polls: int | None = None,
) -> None:
    polls = 0
    session.start_watching()
    try:
        while max_polls is None or polls < max_polls:
            time.sleep(args.interval)
            polls += 1
            result = session.poll_changes()
            for path, err in result.failed + result.maps_failed:
                console.print(Text(f"reload failed {path}: {err}", style="red"))
            if result.changed:
                report(session, console, args)
    except KeyboardInterrupt:
        pass
    finally:
        session.stop_watching()


def main(argv: list[str] | None = None, *, console: Console | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    console = console or Console()
    setup_logging(args.verbose)

    try:
        maps = _parse_map_args(args.map)
    except argparse.ArgumentTypeError as e:
        parser.error(str(e))
    if args.interval <= 0:
        parser.error("--interval must be positive")

    if args.paths:
        for p in args.paths:
            if not os.path.exists(p):
                console.print(f"bdiff: file not found: {p}", style="red", markup=False)
                return 2
        entries = [
            FileEntry(
                Path(p),
                map=Path(maps[os.path.normpath(p)]) if os.path.normpath(p) in maps else None,
                map_errors=args.map_errors,
            )
            for p in args.paths
        ]
    else:
        ws = args.workspace or DEFAULT_WORKSPACE
        if not args.workspace and not os.path.exists(ws):
            parser.error("no files given and no workspace found")
        try:
            entries = load_workspace(ws)
        except WorkspaceError as e:
            console.print(f"bdiff: {e}", style="red", markup=False)
            return 1

    session = Session(watcher=FileWatcher(interval=args.interval))
    session.open_workspace(entries)
    if not session.views:
        console.print("bdiff: no files could be opened", style="red", markup=False)
        return 1
    report(session, console, args)
    if args.watch:
        watch_loop(session, console, args)
    return 0


if __name__ == "__main__":  # pragma: no cover
    raise SystemExit(main())
