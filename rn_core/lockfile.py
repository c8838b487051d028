"""
rn_core/lockfile.py — Host-local advisory exclusive lock.

A HostLock wraps one lock file and an exclusive, non-blocking flock(2)
on it. The lock belongs to the open file description, so two HostLock
objects on the same path exclude each other even inside one process,
and the kernel drops the lock if the holding process dies.

This protects a single host only. Generators on different machines that
share an (authority, instance, type) tuple are not detected; instance
numbers must be partitioned between hosts administratively.

POSIX only (fcntl).
"""

from __future__ import annotations

import errno
import fcntl
import logging
import os
import threading
from typing import Optional

logger = logging.getLogger(__name__)

# A holder may unlink the file between our open() and flock(); retry a few
# times against the fresh file before reporting contention.
_MAX_ATTEMPTS = 3


class HostLock:
    """Non-blocking exclusive lock on a file.

    All operations are idempotent and thread-safe.

    Args:
        path: Lock file path. Parent directories are created on first
              acquire.
    """

    def __init__(self, path: str) -> None:
        self.path = os.fspath(path)
        self._fd: Optional[int] = None
        self._locked = False
        self._mutex = threading.Lock()

    @property
    def locked(self) -> bool:
        return self._locked

    def try_acquire(self) -> bool:
        """Take the lock if nobody else holds it.

        Returns:
            True if this object now holds the lock (including when it
            already did), False if another holder has it.
        """
        with self._mutex:
            if self._locked:
                return True
            for _ in range(_MAX_ATTEMPTS):
                if self._fd is None:
                    directory = os.path.dirname(self.path)
                    if directory:
                        os.makedirs(directory, exist_ok=True)
                    self._fd = os.open(self.path, os.O_RDWR | os.O_CREAT, 0o644)
                try:
                    fcntl.flock(self._fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
                except OSError as e:
                    if e.errno not in (errno.EAGAIN, errno.EACCES):
                        raise
                    logger.debug("Lock %s is held elsewhere", self.path)
                    self._close_fd()
                    return False
                if self._is_current_file():
                    self._locked = True
                    self._write_owner()
                    logger.debug("Acquired lock %s", self.path)
                    return True
                # Locked an unlinked file: start again on the new one.
                fcntl.flock(self._fd, fcntl.LOCK_UN)
                self._close_fd()
            logger.warning(
                "Lock file %s kept changing underneath us; giving up", self.path
            )
            return False

    def release(self) -> bool:
        """Drop the lock but keep the file open for a later re-acquire.

        Returns:
            True if a held lock was released, False if none was held.
        """
        with self._mutex:
            if not self._locked:
                return False
            fcntl.flock(self._fd, fcntl.LOCK_UN)
            self._locked = False
            logger.debug("Released lock %s", self.path)
            return True

    def close(self, delete: bool = False) -> bool:
        """Release the lock (if held) and close the file.

        Args:
            delete: Also remove the lock file. A held lock is unlinked
                    before it is released, so no rival can take the
                    file in between.

        Returns:
            True if the lock file was removed.
        """
        with self._mutex:
            deleted = False
            if self._locked:
                if delete and self._is_current_file():
                    deleted = self._unlink()
                fcntl.flock(self._fd, fcntl.LOCK_UN)
                self._locked = False
                delete = False
            self._close_fd()
        if delete:
            deleted = self.delete()
        return deleted

    def delete(self) -> bool:
        """Best-effort removal of the lock file.

        The file is only removed while locked by this object. When it
        is not held here, the lock is taken briefly first; a file that
        another holder has locked is left alone.

        Returns:
            True if the file was removed.
        """
        with self._mutex:
            if self._locked:
                return self._is_current_file() and self._unlink()
            try:
                fd = os.open(self.path, os.O_RDWR)
            except FileNotFoundError:
                return False
            try:
                try:
                    fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
                except OSError as e:
                    if e.errno not in (errno.EAGAIN, errno.EACCES):
                        raise
                    logger.debug("Not removing %s: held elsewhere", self.path)
                    return False
                if not self._same_file(fd):
                    return False
                return self._unlink()
            finally:
                os.close(fd)

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------

    def _close_fd(self) -> None:
        if self._fd is not None:
            os.close(self._fd)
            self._fd = None

    def _is_current_file(self) -> bool:
        return self._same_file(self._fd)

    def _same_file(self, fd: int) -> bool:
        try:
            on_disk = os.stat(self.path)
        except FileNotFoundError:
            return False
        held = os.fstat(fd)
        return (held.st_dev, held.st_ino) == (on_disk.st_dev, on_disk.st_ino)

    def _unlink(self) -> bool:
        try:
            os.unlink(self.path)
        except FileNotFoundError:
            return False
        except OSError as e:
            logger.warning("Could not remove lock file %s: %s", self.path, e)
            return False
        return True

    def _write_owner(self) -> None:
        os.ftruncate(self._fd, 0)
        os.pwrite(self._fd, f"{os.getpid()}\n".encode("ascii"), 0)

    def __enter__(self) -> "HostLock":
        return self

    def __exit__(self, *args) -> None:
        self.close()

    def __repr__(self) -> str:
        state = "locked" if self._locked else "unlocked"
        return f"HostLock({self.path!r}, {state})"
