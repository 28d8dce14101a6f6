"""
Advisory workspace locking.

Uses flock on <project>/.tracker/workspace.lock so two tracker processes do
not interleave their writes. Advisory only: a process that skips the lock
(or an editor) is not stopped. Re-entrant within one process, so a caller
holding Tracker.locked() can still call save_all().
"""

import fcntl
import logging
import os
import time
from contextlib import contextmanager
from pathlib import Path

from tracker.lib.errors import LockTimeout, StorageError

logger = logging.getLogger(__name__)

POLL_INTERVAL = 0.1

# lock path -> nesting depth held by this process
_held: dict[str, int] = {}


def is_locked_by_other(lock_file: Path) -> bool:
    """True if another process currently holds the lock."""
    if not lock_file.exists():
        return False
    try:
        fd = open(lock_file, 'r')
    except OSError:
        return False
    try:
        fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
        fcntl.flock(fd, fcntl.LOCK_UN)
        return False
    except BlockingIOError:
        return True
    finally:
        fd.close()


@contextmanager
def workspace_lock(lock_file: Path, timeout: float):
    """
    Acquire the workspace lock, yield, release on exit.

    Args:
        lock_file: Path to the lock file (created if missing)
        timeout: Seconds to wait; 0 means a single attempt

    Raises:
        LockTimeout: another process kept the lock past the timeout
        StorageError: the lock file could not be created
    """
    key = str(lock_file.absolute())
    if _held.get(key):
        _held[key] += 1
        try:
            yield
        finally:
            _held[key] -= 1
        return

    try:
        lock_file.parent.mkdir(parents=True, exist_ok=True)
        # Never delete lock files: a delete/recreate race would hand two
        # processes "exclusive" locks on different inodes.
        fd = open(lock_file, 'a+')
    except OSError as e:
        raise StorageError("open lock file", lock_file, e) from e

    start = time.monotonic()
    while True:
        try:
            fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
            break
        except BlockingIOError:
            if time.monotonic() - start >= timeout:
                fd.close()
                raise LockTimeout(f"Could not acquire workspace lock {lock_file} within {timeout}s")
            time.sleep(POLL_INTERVAL)

    _held[key] = 1
    try:
        fd.seek(0)
        fd.truncate()
        fd.write(f"{os.getpid()}\n")
        fd.flush()
        logger.debug(f"Acquired workspace lock {lock_file}")
        yield
    finally:
        _held.pop(key, None)
        fcntl.flock(fd, fcntl.LOCK_UN)
        fd.close()
        logger.debug(f"Released workspace lock {lock_file}")
