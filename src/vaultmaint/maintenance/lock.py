"""Run lock preventing concurrent maintenance of one database.

An exclusive, non-blocking ``flock`` on a lock file derived from the
database path. The kernel drops the lock when the process dies, so a
crashed run never leaves a stale lock behind.

Example:
    >>> with RunLock(Path("/srv/vault/db.sqlite3"), Path("/run/vaultmaint")):
    ...     engine.run_intelligent(RunMode.UNATTENDED)
"""

import fcntl
import hashlib
import os
from datetime import datetime
from pathlib import Path
from typing import IO, Any, Optional

from ..core.exceptions import ErrorCodes, MaintenanceError, MaintenanceInProgressError


class RunLock:
    """Exclusive per-database run lock.

    Attributes:
        path: Lock file location
    """

    def __init__(self, db_path: Path, lock_dir: Path) -> None:
        digest = hashlib.sha256(str(Path(db_path).resolve()).encode("utf-8")).hexdigest()[:16]
        self.db_path = Path(db_path)
        self.path = Path(lock_dir) / f"vaultmaint-{digest}.lock"
        self._handle: Optional[IO[str]] = None

    @property
    def held(self) -> bool:
        return self._handle is not None

    def acquire(self) -> None:
        """Take the lock.

        Raises:
            MaintenanceInProgressError: If another process holds it
            MaintenanceError: If the lock file cannot be created
        """
        if self._handle is not None:
            return

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            handle = open(self.path, "a+", encoding="utf-8")
        except OSError as e:
            raise MaintenanceError(
                f"Cannot create run lock {self.path}: {e}",
                code=ErrorCodes.OPERATION_FAILED,
                context={"lock_file": str(self.path)},
                cause=e,
            )

        try:
            fcntl.flock(handle, fcntl.LOCK_EX | fcntl.LOCK_NB)
        except BlockingIOError as e:
            handle.seek(0)
            holder = handle.read().strip() or "unknown"
            handle.close()
            raise MaintenanceInProgressError(
                f"Maintenance already running for {self.db_path}",
                code=ErrorCodes.RUN_IN_PROGRESS,
                context={"lock_file": str(self.path), "holder": holder},
                cause=e,
            )

        handle.seek(0)
        handle.truncate()
        handle.write(f"{os.getpid()} {datetime.now().isoformat()}\n")
        handle.flush()
        self._handle = handle

    def release(self) -> None:
        if self._handle is None:
            return
        try:
            fcntl.flock(self._handle, fcntl.LOCK_UN)
        finally:
            self._handle.close()
            self._handle = None

    def __enter__(self) -> "RunLock":
        self.acquire()
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.release()

    def __repr__(self) -> str:
        return f"RunLock(path={str(self.path)!r}, held={self.held})"
