"""Advisory file locks guarding the log."""

from __future__ import annotations

import fcntl
import logging
import time
from contextlib import contextmanager
from pathlib import Path
from typing import IO, Iterator

from worklog_engine.errors import LockContention

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 5.0
POLL_INTERVAL = 0.05


def lock_path_for(path: Path) -> Path:
    return path.with_name(path.name + ".lock")


@contextmanager
def _flock(lock_path: Path, mode: int, timeout: float) -> Iterator[IO[str]]:
    lock_path.parent.mkdir(parents=True, exist_ok=True)
    handle = lock_path.open("a+", encoding="utf-8")
    try:
        deadline = time.monotonic() + max(0.0, timeout)
        while True:
            try:
                fcntl.flock(handle.fileno(), mode | fcntl.LOCK_NB)
                break
            except BlockingIOError as exc:
                if time.monotonic() >= deadline:
                    raise LockContention(
                        f"could not lock {lock_path} within {timeout:.1f}s; another process is using the log"
                    ) from exc
                logger.debug("waiting for lock %s", lock_path)
                time.sleep(POLL_INTERVAL)
        try:
            yield handle
        finally:
            fcntl.flock(handle.fileno(), fcntl.LOCK_UN)
    finally:
        handle.close()


@contextmanager
def exclusive_lock(lock_path: Path, timeout: float = DEFAULT_TIMEOUT) -> Iterator[IO[str]]:
    """Acquire an exclusive advisory lock, waiting at most ``timeout`` seconds.

    Mutations of the log hold this lock from the read through the write.
    """

    with _flock(lock_path, fcntl.LOCK_EX, timeout) as handle:
        yield handle


@contextmanager
def shared_lock(lock_path: Path, timeout: float = DEFAULT_TIMEOUT) -> Iterator[IO[str]]:
    """Acquire a shared lock so readers never see a half-written append."""

    with _flock(lock_path, fcntl.LOCK_SH, timeout) as handle:
        yield handle
