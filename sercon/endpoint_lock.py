"""
Endpoint locking for sercon.

Provides:
- File-based per-endpoint locking so two processes do not open the same port
- Owner information for contention diagnostics
"""

from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import IO, Optional

import portalocker

logger = logging.getLogger(__name__)


@dataclass
class EndpointOwner:
    """Information about the current endpoint owner."""
    pid: int
    started: datetime
    endpoint: str


class EndpointLock:
    """
    Exclusive, non-blocking lock on one endpoint.

    Usage:
        lock = EndpointLock("/dev/ttyUSB0")
        if lock.acquire():
            # Use the port
            lock.release()
        else:
            print(f"Endpoint in use by: {lock.get_owner()}")
    """

    LOCK_DIR = os.path.join(os.environ.get("SERCON_RUN_DIR", "/tmp"), "sercon-locks")

    def __init__(self, endpoint: str):
        self._endpoint = endpoint
        self._lock_file: Optional[IO[str]] = None
        self._lock_path = self.lock_path_for(endpoint)

    @property
    def endpoint(self) -> str:
        return self._endpoint

    @property
    def is_held(self) -> bool:
        return self._lock_file is not None

    @classmethod
    def lock_path_for(cls, endpoint: str) -> str:
        # /dev/ttyUSB0 -> /tmp/sercon-locks/_dev_ttyUSB0.lock
        safe_name = endpoint.replace("/", "_").replace("\\", "_").replace(":", "_")
        return os.path.join(cls.LOCK_DIR, f"{safe_name}.lock")

    def acquire(self) -> bool:
        """Try to take the lock. Returns False if another process holds it."""
        if self._lock_file is not None:
            return True

        Path(os.path.dirname(self._lock_path)).mkdir(parents=True, exist_ok=True)
        lock_file = open(self._lock_path, "a+")
        try:
            portalocker.lock(lock_file, portalocker.LOCK_EX | portalocker.LOCK_NB)
        except portalocker.LockException:
            lock_file.close()
            owner = self.get_owner()
            if owner:
                logger.warning(
                    "Endpoint %s locked by PID %d since %s",
                    self._endpoint, owner.pid, owner.started.isoformat(),
                )
            else:
                logger.warning("Endpoint %s locked by unknown process", self._endpoint)
            return False
        except BaseException:
            lock_file.close()
            raise

        try:
            lock_file.seek(0)
            lock_file.truncate()
            json.dump(
                {"pid": os.getpid(), "started": datetime.now().isoformat(), "endpoint": self._endpoint},
                lock_file,
            )
            lock_file.flush()
        except BaseException:
            # Closing the file also drops the lock.
            lock_file.close()
            raise
        self._lock_file = lock_file
        logger.debug("Acquired lock for %s", self._endpoint)
        return True

    def release(self) -> None:
        if self._lock_file is None:
            return
        lock_file, self._lock_file = self._lock_file, None
        try:
            lock_file.seek(0)
            lock_file.truncate()
            portalocker.unlock(lock_file)
        finally:
            lock_file.close()
        logger.debug("Released lock for %s", self._endpoint)

    def get_owner(self) -> Optional[EndpointOwner]:
        """Read owner information from the lock file, if any."""
        try:
            with open(self._lock_path, "r") as f:
                info = json.load(f)
            return EndpointOwner(
                pid=info["pid"],
                started=datetime.fromisoformat(info["started"]),
                endpoint=info["endpoint"],
            )
        except (OSError, ValueError, KeyError):
            return None

    def __enter__(self):
        if not self.acquire():
            raise RuntimeError(f"Could not acquire lock for {self._endpoint}")
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.release()
        return False
