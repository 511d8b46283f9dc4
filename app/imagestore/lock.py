"""Single-run lock for reconciliation.

Two reconciliation runs against the same tree could interleave copy and
delete sequences, so runs are serialized through an exclusive lock file.
Checking and taking over a stale lock happens under an advisory ``flock``
on a sibling guard file, which the kernel releases if the holder dies.
"""

import fcntl
import os
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from loguru import logger


class ReconcileLockError(Exception):
    """Another reconciliation run holds the lock."""


def _pid_alive(pid: int) -> bool:
    try:
        os.kill(pid, 0)
    except ProcessLookupError:
        return False
    except PermissionError:
        return True
    return True


class ReconcileLock:
    """Exclusive lock file holding the owner's pid; stale locks are taken over."""

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self.guard_path = self.path.with_name(f"{self.path.name}.guard")
        self._held = False

    def _read_pid(self) -> int | None:
        try:
            return int(self.path.read_text().strip())
        except (OSError, ValueError):
            return None

    @contextmanager
    def _guard(self) -> Iterator[None]:
        # The guard file is never removed, so every acquirer locks the same inode
        fd = os.open(self.guard_path, os.O_CREAT | os.O_RDWR, 0o644)
        try:
            fcntl.flock(fd, fcntl.LOCK_EX)
            yield
        finally:
            os.close(fd)

    def acquire(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self._guard():
            try:
                fd = os.open(self.path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
            except FileExistsError:
                pid = self._read_pid()
                if pid is not None and _pid_alive(pid):
                    raise ReconcileLockError(f"Reconciliation already running (pid {pid})")
                logger.warning(f"Removing stale reconciliation lock {self.path} (pid {pid})")
                self.path.unlink(missing_ok=True)
                try:
                    fd = os.open(self.path, os.O_CREAT | os.O_EXCL | os.O_WRONLY, 0o644)
                except FileExistsError as e:
                    raise ReconcileLockError(f"Could not acquire {self.path}") from e

            with os.fdopen(fd, "w") as f:
                f.write(str(os.getpid()))
            self._held = True

    def release(self) -> None:
        if self._held:
            self.path.unlink(missing_ok=True)
            self._held = False

    def __enter__(self) -> "ReconcileLock":
        self.acquire()
        return self

    def __exit__(self, *exc) -> None:
        self.release()
