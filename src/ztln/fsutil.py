"""Durable writes and the store-wide advisory lock.

Every record is written to a hidden temporary file next to its destination,
fsynced, then installed with os.replace. A crash before the replace leaves the
old record intact and an orphaned ``.<name>.<hex>.tmp`` that listings skip.

Mutations additionally hold ``flock(LOCK_EX)`` on ``<base_dir>/.lock``.
"""

from __future__ import annotations

import contextlib
import fcntl
import logging
import os
import secrets
import time
from pathlib import Path
from typing import TYPE_CHECKING

from ztln.errors import LockedError

if TYPE_CHECKING:
    from collections.abc import Iterator

logger = logging.getLogger("ztln.fsutil")

LOCK_FILENAME = ".lock"


def is_hidden(name: str) -> bool:
    """True for lock files and write temporaries, which are never entities."""
    return name.startswith(".")


def fsync_dir(directory: Path) -> None:
    fd = os.open(directory, os.O_RDONLY)
    try:
        os.fsync(fd)
    finally:
        os.close(fd)


def atomic_write(path: Path, data: bytes | str) -> None:
    """Write data to path via tmp + fsync + rename."""
    if isinstance(data, str):
        data = data.encode("utf-8")
    tmp = path.with_name(f".{path.name}.{secrets.token_hex(4)}.tmp")
    try:
        with tmp.open("wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        tmp.replace(path)
    except BaseException:
        with contextlib.suppress(OSError):
            tmp.unlink()
        raise
    fsync_dir(path.parent)


def read_line(path: Path) -> str | None:
    """Read a single-line record. Missing file or blank content yields None."""
    try:
        value = path.read_text(encoding="utf-8").strip()
    except FileNotFoundError:
        return None
    return value or None


def list_visible(directory: Path) -> list[str]:
    """Sorted entry names in directory, without hidden bookkeeping files."""
    if not directory.is_dir():
        return []
    return sorted(name for name in os.listdir(directory) if not is_hidden(name))


@contextlib.contextmanager
def store_lock(base_dir: Path, *, retries: int = 20, retry_delay: float = 0.05) -> Iterator[None]:
    """Hold the exclusive store lock for the duration of the block.

    Acquisition never blocks: it is attempted ``retries + 1`` times with
    ``retry_delay`` seconds between attempts, then LockedError is raised.
    """
    lock_path = base_dir / LOCK_FILENAME
    with lock_path.open("a") as f:
        for attempt in range(retries + 1):
            try:
                fcntl.flock(f, fcntl.LOCK_EX | fcntl.LOCK_NB)
                break
            except BlockingIOError:
                if attempt == retries:
                    msg = f"Store is locked by another process: {lock_path}"
                    raise LockedError(msg) from None
                logger.debug("lock busy, retry %d/%d", attempt + 1, retries)
                time.sleep(retry_delay)
        try:
            yield
        finally:
            fcntl.flock(f, fcntl.LOCK_UN)
