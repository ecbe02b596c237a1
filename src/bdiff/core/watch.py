from __future__ import annotations

import logging
import os
import threading
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)


class ChangeFlag:
    """Single-bit change signal shared with a watcher thread.

    The watcher only calls `set()`. The owner polls with `consume()`, which
    reads and clears the bit in one step.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._value = False

    def set(self) -> None:
        with self._lock:
            self._value = True

    def consume(self) -> bool:
        with self._lock:
            value = self._value
            self._value = False
        return value

    def is_set(self) -> bool:
        return self._value

    def __bool__(self) -> bool:
        return self._value


@dataclass
class _Watch:
    path: Path
    flag: ChangeFlag
    stamp: tuple[int, int] | None


def file_stamp(path: str | os.PathLike[str]) -> tuple[int, int] | None:
    try:
        st = os.stat(path)
    except OSError:
        return None
    return (st.st_mtime_ns, st.st_size)


class FileWatcher:
    """Polls watched paths for mtime/size changes and sets their flags.

    `check()` performs one scan synchronously; `start()` runs scans on a
    daemon thread every `interval` seconds until `stop()`.
    """

    def __init__(self, *, interval: float = 0.5) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.interval = float(interval)
        self._watches: list[_Watch] = []
        self._lock = threading.Lock()
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    def watch(
        self,
        path: str | os.PathLike[str],
        flag: ChangeFlag,
        *,
        baseline: tuple[int, int] | None = None,
    ) -> None:
        """Watch `path`, firing `flag` once its stamp differs from `baseline`.

        `baseline` defaults to the stamp at call time. Pass the stamp taken
        before the file was read so writes in between are not missed.
        """
        p = Path(path)
        with self._lock:
            self._watches.append(_Watch(p, flag, baseline if baseline is not None else file_stamp(p)))

    def unwatch(self, flag: ChangeFlag) -> None:
        with self._lock:
            self._watches = [w for w in self._watches if w.flag is not flag]

    @property
    def watched(self) -> list[Path]:
        with self._lock:
            return [w.path for w in self._watches]

    def check(self) -> int:
        """Scan once. Returns the number of flags set."""
        with self._lock:
            watches = list(self._watches)
        fired = 0
        for w in watches:
            stamp = file_stamp(w.path)
            if stamp != w.stamp:
                w.stamp = stamp
                w.flag.set()
                fired += 1
                logger.debug("Change detected on %s", w.path)
        return fired

    def _run(self) -> None:
        while not self._stop.wait(self.interval):
            self.check()

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name="bdiff-watcher", daemon=True)
        self._thread.start()

    def stop(self) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join()
            self._thread = None

    def __enter__(self) -> FileWatcher:  # pragma: no cover - sugar
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:  # pragma: no cover - sugar
        self.stop()
