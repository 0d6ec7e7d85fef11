"""Directory-level locking using fcntl.flock.

Only one engine run may own a data directory at a time: two runs sharing
a directory would race on the cache, the ledger and the parts themselves.
"""

from __future__ import annotations

import asyncio
import fcntl
from pathlib import (
    Path,  # noqa: TC003 - Path used at runtime for file operations
)
from typing import IO, TYPE_CHECKING, Self

from snapsync.exceptions import LockError

if TYPE_CHECKING:
    import types


class LockManager:
    """Async context manager holding an exclusive flock on a lock file.

    Example:
        >>> async with LockManager(data_dir / ".snapsync.lock"):
        ...     await engine.sync(...)

    """

    def __init__(self, lock_path: Path) -> None:
        """Initialize LockManager with lock file path."""
        self._lock_path = lock_path
        self._lock_file: IO[str] | None = None

    async def __aenter__(self) -> Self:
        """Acquire the lock without blocking.

        Raises:
            LockError: If another process holds the lock, or if file
                operations fail.

        """
        loop = asyncio.get_running_loop()

        def _acquire_lock() -> None:
            self._lock_path.parent.mkdir(parents=True, exist_ok=True)

            lock_file = None
            try:
                lock_file = self._lock_path.open("w", encoding="utf-8")
                fcntl.flock(lock_file.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
                self._lock_file = lock_file
            except BlockingIOError as e:
                if lock_file is not None:
                    lock_file.close()
                msg = (
                    "Another snapsync run is using "
                    f"{self._lock_path.parent}"
                )
                raise LockError(msg, cause=e) from e
            except OSError as e:
                if lock_file is not None:
                    lock_file.close()
                msg = f"Failed to acquire lock: {e}"
                raise LockError(msg, cause=e) from e

        await loop.run_in_executor(None, _acquire_lock)
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: types.TracebackType | None,
    ) -> None:
        """Release the lock. Safe to call even if it was never acquired."""
        if self._lock_file is not None:
            loop = asyncio.get_running_loop()
            await loop.run_in_executor(None, self._lock_file.close)
            self._lock_file = None
