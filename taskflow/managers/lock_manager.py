"""
Per-project locks.

Scheduled ticks and user-triggered cascades on the same project run one
at a time; different projects never block each other. With a lock
directory the lock also holds across processes, so a `taskflow run`
daemon and a `taskflow cancel` invocation serialize on the same file.
"""

import fcntl
import os
import threading
import time
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator, Optional

from taskflow.constants import DEFAULT_LOCK_TIMEOUT_SECONDS
from taskflow.exceptions import LockTimeoutError

LOCK_POLL_INTERVAL_SECONDS = 0.01


class ProjectLockManager:
    """
    Hands out one lock per project id.

    Usage:
        locks = ProjectLockManager(timeout=5.0, lock_dir=storage.projects_dir)
        with locks.hold(project_id):
            ...  # load, compute, commit
    """

    def __init__(
        self, timeout: Optional[float] = None, lock_dir: Optional[Path] = None
    ) -> None:
        """
        Initialize ProjectLockManager.

        Args:
            timeout: Seconds to wait for a lock before failing. A negative
                value waits forever. Defaults to DEFAULT_LOCK_TIMEOUT_SECONDS.
            lock_dir: Directory for `<project_id>.lock` files. When None only
                threads of this process are serialized.
        """
        self.timeout = DEFAULT_LOCK_TIMEOUT_SECONDS if timeout is None else timeout
        self.lock_dir = Path(lock_dir) if lock_dir is not None else None
        self._locks: Dict[str, threading.Lock] = {}
        self._guard = threading.Lock()

    def lock_for(self, project_id: str) -> threading.Lock:
        """Get (creating if needed) the lock of a project."""
        with self._guard:
            lock = self._locks.get(project_id)
            if lock is None:
                lock = threading.Lock()
                self._locks[project_id] = lock
            return lock

    def lock_path(self, project_id: str) -> Optional[Path]:
        if self.lock_dir is None:
            return None
        return self.lock_dir / f"{project_id}.lock"

    def is_locked(self, project_id: str) -> bool:
        return self.lock_for(project_id).locked()

    @contextmanager
    def hold(self, project_id: str, timeout: Optional[float] = None) -> Iterator[None]:
        """Hold a project's lock for the duration of the block.

        Raises:
            LockTimeoutError: If the lock is not acquired within the timeout.
        """
        wait = self.timeout if timeout is None else timeout
        deadline = None if wait < 0 else time.monotonic() + wait
        lock = self.lock_for(project_id)
        if not lock.acquire(timeout=wait):
            raise LockTimeoutError(project_id, wait)
        try:
            fd = self._acquire_file_lock(project_id, wait, deadline)
            try:
                yield
            finally:
                if fd is not None:
                    fcntl.flock(fd, fcntl.LOCK_UN)
                    os.close(fd)
        finally:
            lock.release()

    def _acquire_file_lock(
        self, project_id: str, wait: float, deadline: Optional[float]
    ) -> Optional[int]:
        """Take the exclusive flock on the project's lock file.

        Returns:
            The open file descriptor, or None without a lock directory.
        """
        path = self.lock_path(project_id)
        if path is None:
            return None

        path.parent.mkdir(parents=True, exist_ok=True)
        fd = os.open(path, os.O_RDWR | os.O_CREAT, 0o644)
        while True:
            try:
                fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
                return fd
            except BlockingIOError:
                if deadline is not None and time.monotonic() >= deadline:
                    os.close(fd)
                    raise LockTimeoutError(project_id, wait)
                time.sleep(LOCK_POLL_INTERVAL_SECONDS)
