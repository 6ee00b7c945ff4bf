# ideaforge/models/ownership.py
"""
Identity of the process that runs a job.

Several processes (the MCP server, a CLI `generate`) may share one database.
Restart recovery may only fail a job once the process that owns it is gone,
so every job row records which process wrote it.
"""

import logging
import socket
from dataclasses import dataclass

import psutil

logger = logging.getLogger(__name__)

# psutil derives create_time from boot time + start ticks; allow rounding drift
_START_TIME_TOLERANCE = 1.0


@dataclass(frozen=True)
class JobOwner:
    """
    A process identified by pid, host and start time.

    The start time guards against pid reuse: a new process that happens to
    get the old pid is not mistaken for the owner.
    """

    pid: int
    host: str
    started_at: float

    @classmethod
    def current(cls) -> "JobOwner":
        proc = psutil.Process()
        return cls(pid=proc.pid, host=socket.gethostname(), started_at=proc.create_time())

    def is_local(self) -> bool:
        return self.host == socket.gethostname()

    def is_running(self) -> bool:
        """
        Check whether this owner still exists on the local host.

        Returns:
            True if a process with the same pid and start time is alive.
            A process we are not allowed to inspect counts as alive.
        """
        try:
            proc = psutil.Process(self.pid)
            return abs(proc.create_time() - self.started_at) < _START_TIME_TOLERANCE
        except psutil.NoSuchProcess:
            return False
        except psutil.AccessDenied:
            logger.debug(f"Cannot inspect pid {self.pid}; assuming it is still running")
            return True
