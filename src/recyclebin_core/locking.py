"""Advisory lock around metadata store rewrites."""

import logging
from pathlib import Path
from typing import Optional, TextIO

try:
    import fcntl
except ImportError:  # non-POSIX platforms
    fcntl = None  # type: ignore

logger = logging.getLogger(__name__)


class StoreLock:
    """Exclusive ``flock`` on a lock file, held for one Append/RemoveWhere.

    Each acquisition opens its own file description, so the lock also
    serializes threads in one process (the background sweep included).
    Not reentrant.
    """

    def __init__(self, path: Path):
        self.path = path
        self._fd: Optional[TextIO] = None

    def acquire(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._fd = open(self.path, "a", encoding="utf-8")
        if fcntl is None:
            logger.debug("fcntl not available; store lock is advisory no-op")
            return
        fcntl.flock(self._fd.fileno(), fcntl.LOCK_EX)

    def release(self) -> None:
        if self._fd is None:
            return
        try:
            if fcntl is not None:
                fcntl.flock(self._fd.fileno(), fcntl.LOCK_UN)
        finally:
            self._fd.close()
            self._fd = None

    def __enter__(self) -> "StoreLock":
        self.acquire()
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.release()
