"""Cross-process lock around shared merge targets.

A hidden marker file beside the target (``.<name>.ck-merge.lock``) is locked
with an exclusive, non-blocking OS advisory lock in a bounded retry loop with
exponential backoff. The lock works across independently started processes.
"""

from __future__ import annotations

import errno
import logging
import os
import sys
import threading
import time
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import IO

from portable_installer.errors import LockAcquisitionError

if sys.platform == "win32":
    import msvcrt
else:
    import fcntl

logger = logging.getLogger(__name__)

LOCK_SUFFIX = ".ck-merge.lock"

# Retry budget: one initial attempt plus LOCK_RETRIES retries.
LOCK_RETRIES = 10
LOCK_FACTOR = 1.5
LOCK_MIN_TIMEOUT = 0.025
LOCK_MAX_TIMEOUT = 0.5

_BUSY_ERRNOS = {errno.EAGAIN, errno.EWOULDBLOCK, errno.EACCES, errno.EDEADLK}


def lock_path_for(target_path: Path) -> Path:
    """Get the lock marker path for a merge target."""
    return target_path.parent / f".{target_path.name}{LOCK_SUFFIX}"


def backoff_delays(
    retries: int = LOCK_RETRIES,
    factor: float = LOCK_FACTOR,
    min_timeout: float = LOCK_MIN_TIMEOUT,
    max_timeout: float = LOCK_MAX_TIMEOUT,
) -> list[float]:
    """Get the sleep schedule between lock attempts, in seconds.

    Example:
        >>> backoff_delays(retries=3, factor=2, min_timeout=0.1, max_timeout=0.3)
        [0.1, 0.2, 0.3]
    """
    return [min(min_timeout * factor**attempt, max_timeout) for attempt in range(retries)]


def _try_lock(fh: IO[str]) -> bool:
    try:
        if sys.platform == "win32":
            msvcrt.locking(fh.fileno(), msvcrt.LK_NBLCK, 1)
        else:
            fcntl.flock(fh.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
    except OSError as exc:
        if exc.errno in _BUSY_ERRNOS:
            return False
        raise
    return True


def _unlock(fh: IO[str]) -> None:
    if sys.platform == "win32":
        fh.seek(0)
        msvcrt.locking(fh.fileno(), msvcrt.LK_UNLCK, 1)
    else:
        fcntl.flock(fh.fileno(), fcntl.LOCK_UN)


def _is_current_marker(fh: IO[str], lock_path: Path) -> bool:
    """Check that the locked handle still refers to the marker on disk.

    A previous holder unlinks the marker on release; a waiter that opened the
    old file would otherwise hold a lock nobody else can see.
    """
    try:
        on_disk = os.stat(lock_path)
    except FileNotFoundError:
        return False
    held = os.fstat(fh.fileno())
    return (held.st_dev, held.st_ino) == (on_disk.st_dev, on_disk.st_ino)


def _acquire(
    lock_path: Path,
    delays: list[float],
    cancel: threading.Event | None,
) -> IO[str]:
    for attempt in range(len(delays) + 1):
        if cancel is not None and cancel.is_set():
            raise LockAcquisitionError(f"lock wait cancelled for {lock_path}")

        fh = open(lock_path, "a+", encoding="utf-8")
        try:
            locked = _try_lock(fh)
        except BaseException:
            fh.close()
            raise
        if locked and _is_current_marker(fh, lock_path):
            return fh
        fh.close()

        if attempt < len(delays):
            delay = delays[attempt]
            logger.debug("Lock %s busy, retrying in %.3fs", lock_path, delay)
            if cancel is not None:
                if cancel.wait(delay):
                    raise LockAcquisitionError(f"lock wait cancelled for {lock_path}")
            else:
                time.sleep(delay)

    raise LockAcquisitionError(
        f"{lock_path} is held by another process ({len(delays) + 1} attempts)"
    )


def _release(fh: IO[str], lock_path: Path) -> None:
    try:
        # Unlink while still holding the lock so waiters detect a stale marker.
        if sys.platform != "win32":
            try:
                os.unlink(lock_path)
            except FileNotFoundError:
                pass
        _unlock(fh)
    finally:
        fh.close()


@contextmanager
def merge_target_lock(
    target_path: Path,
    *,
    retries: int = LOCK_RETRIES,
    factor: float = LOCK_FACTOR,
    min_timeout: float = LOCK_MIN_TIMEOUT,
    max_timeout: float = LOCK_MAX_TIMEOUT,
    cancel: threading.Event | None = None,
) -> Iterator[Path]:
    """Hold the exclusive merge lock for ``target_path``.

    The parent directory is created if needed. Release always runs; a failure
    to release is logged and never replaces the wrapped operation's outcome.

    Args:
        target_path: Shared file about to be read, merged and rewritten.
        retries: Number of retries after the first failed attempt.
        factor: Exponential backoff factor.
        min_timeout: First backoff interval, in seconds.
        max_timeout: Cap on any backoff interval, in seconds.
        cancel: Event that aborts a pending wait when set.

    Yields:
        The lock marker path.

    Raises:
        LockAcquisitionError: If the lock is still held after every retry,
            or the wait was cancelled.
    """
    target_path = target_path.resolve()
    target_path.parent.mkdir(parents=True, exist_ok=True)
    lock_path = lock_path_for(target_path)
    delays = backoff_delays(retries, factor, min_timeout, max_timeout)

    fh = _acquire(lock_path, delays, cancel)
    try:
        yield lock_path
    finally:
        try:
            _release(fh, lock_path)
        except Exception:
            logger.warning("Failed to release merge lock %s", lock_path, exc_info=True)
