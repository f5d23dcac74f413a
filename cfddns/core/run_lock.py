"""Single-instance guard based on ``flock(2)``.

The kernel drops the lock when the holding process exits, however it
exits, so a killed run never blocks the next one.
"""

import fcntl
import logging
import os
from pathlib import Path

from cfddns.config import LOCK_FILE

logger = logging.getLogger(__name__)


class LockError(Exception):
    """Raised when the lock file cannot be created or opened."""


class RunLock:
    """Non-blocking exclusive lock on a fixed path."""

    def __init__(self, path: Path = LOCK_FILE) -> None:
        self.path = path
        self._fd: int | None = None

    @property
    def held(self) -> bool:
        return self._fd is not None

    def acquire(self) -> bool:
        """Try to take the lock.  Returns ``False`` if another process holds it."""
        if self.held:
            return True
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd = os.open(self.path, os.O_RDWR | os.O_CREAT, 0o600)
        except OSError as exc:
            raise LockError(f"Cannot create lock file {self.path}: {exc}") from exc

        try:
            fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
        except BlockingIOError:
            os.close(fd)
            return False

        os.ftruncate(fd, 0)
        os.write(fd, f"{os.getpid()}\n".encode())
        self._fd = fd
        logger.debug("Lock acquired: %s", self.path)
        return True

    def release(self) -> None:
        if not self.held:
            return
        try:
            fcntl.flock(self._fd, fcntl.LOCK_UN)
        finally:
            os.close(self._fd)
            self._fd = None

    def __enter__(self) -> "RunLock":
        return self

    def __exit__(self, *exc_info) -> None:
        self.release()
