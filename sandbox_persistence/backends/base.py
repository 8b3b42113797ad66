"""Abstract base classes for sandbox execution backends.

A backend is the environment the persistence code talks to: it starts shell
commands inside the sandbox and attaches buckets at local paths. Orchestration
code runs unchanged against a container, the local shell or a test fake.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Optional, Union
import logging

from ..config import BucketCredentials


# Process status values reported by backends
STATUS_STARTING = "starting"
STATUS_RUNNING = "running"
STATUS_COMPLETED = "completed"
STATUS_ERROR = "error"


class SandboxError(RuntimeError):
    """Raised by backends when a primitive (start, mount) fails."""


@dataclass
class CommandExecution:
    """Observed outcome of one shell invocation.

    Attributes:
        stdout: Captured standard output ("" when logs were unavailable)
        stderr: Captured standard error
        status: Process status at the time the logs were read
    """
    stdout: str = ""
    stderr: str = ""
    status: str = STATUS_COMPLETED

    def to_dict(self) -> dict:
        """Convert to dictionary representation."""
        return {
            "stdout": self.stdout,
            "stderr": self.stderr,
            "status": self.status,
        }


class ProcessHandle(ABC):
    """Handle to a command started inside the sandbox.

    The ``status`` attribute is a snapshot taken when the handle was created
    and may be stale. Backends that can report a fresh status also implement
    ``get_status()``.
    """

    status: str = STATUS_RUNNING

    @abstractmethod
    async def wait(self, timeout: float) -> None:
        """Suspend until the process finishes or ``timeout`` seconds pass.

        Must not raise when the timeout elapses.
        """

    @abstractmethod
    async def get_logs(self) -> Dict[str, str]:
        """Return ``{"stdout": ..., "stderr": ...}``.

        Best effort: may be empty even after the command succeeded.
        """


class SandboxBackend(ABC):
    """Abstract base class for sandbox backends.

    Example:
        class MyBackend(SandboxBackend):
            async def start_process(self, command):
                ...
            async def mount_bucket(self, bucket_name, local_path, endpoint, credentials):
                ...
    """

    def __init__(self):
        """Initialize the backend with a logger."""
        self.logger = logging.getLogger(f"{__name__}.{self.__class__.__name__}")

    @abstractmethod
    async def start_process(self, command: str) -> ProcessHandle:
        """Launch a shell command without waiting for it.

        Args:
            command: Shell command line

        Returns:
            ProcessHandle for the running command

        Raises:
            SandboxError: If the command could not be started
        """

    @abstractmethod
    async def mount_bucket(
        self,
        bucket_name: str,
        local_path: Union[str, Path],
        endpoint: str,
        credentials: BucketCredentials,
    ) -> None:
        """Attach a bucket at ``local_path``.

        Args:
            bucket_name: Bucket to attach
            local_path: Mount point inside the sandbox
            endpoint: S3-compatible endpoint URL
            credentials: Access key pair

        Raises:
            SandboxError: If the mount failed (including "already mounted")
        """


async def run_command(
    sandbox: SandboxBackend,
    command: str,
    timeout: float,
) -> CommandExecution:
    """Start a command, wait up to ``timeout`` seconds and collect its output.

    Exceptions from the backend propagate; callers decide whether a failure
    is fatal.
    """
    proc = await sandbox.start_process(command)
    await proc.wait(timeout)
    logs = await proc.get_logs() or {}

    # proc.status is a snapshot from launch time; ask for a fresh one
    get_status = getattr(proc, "get_status", None)
    status: Optional[str] = await get_status() if get_status else proc.status

    return CommandExecution(
        stdout=logs.get("stdout") or "",
        stderr=logs.get("stderr") or "",
        status=status or "",
    )
