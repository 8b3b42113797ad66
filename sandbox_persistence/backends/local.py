"""Local backend: runs sandbox commands with the host shell.

Use this when the persistence code runs inside the container it is backing
up. Commands go through ``/bin/sh -c`` via asyncio subprocesses, and buckets
are attached with s3fs.

Features:
- Non-blocking launch; output collected by a background task
- Fresh status from the child's return code
- s3fs mounts with credentials passed through the environment, never argv
"""

import asyncio
import os
import shlex
import shutil
from pathlib import Path
from typing import Dict, List, Mapping, Optional, Sequence, Tuple, Union

from .base import (
    ProcessHandle,
    SandboxBackend,
    SandboxError,
    STATUS_COMPLETED,
    STATUS_ERROR,
    STATUS_RUNNING,
)
from ..config import BucketCredentials


class LocalProcess(ProcessHandle):
    """Handle to a shell command started by LocalSandbox."""

    def __init__(self, process: asyncio.subprocess.Process, command: str):
        self._process = process
        self.command = command
        self.pid = process.pid
        self.status = STATUS_RUNNING
        self._stdout = ""
        self._stderr = ""
        self._collector = asyncio.ensure_future(self._collect())

    async def _collect(self) -> None:
        stdout, stderr = await self._process.communicate()
        self._stdout = stdout.decode("utf-8", errors="replace") if stdout else ""
        self._stderr = stderr.decode("utf-8", errors="replace") if stderr else ""

    @property
    def returncode(self) -> Optional[int]:
        return self._process.returncode

    async def wait(self, timeout: float) -> None:
        try:
            # shield: a timed-out wait must not cancel output collection
            await asyncio.wait_for(asyncio.shield(self._collector), timeout)
        except asyncio.TimeoutError:
            pass

    async def get_logs(self) -> Dict[str, str]:
        return {"stdout": self._stdout, "stderr": self._stderr}

    async def get_status(self) -> str:
        if self._process.returncode is None:
            return STATUS_RUNNING
        return STATUS_COMPLETED if self._process.returncode == 0 else STATUS_ERROR


class LocalSandbox(SandboxBackend):
    """Backend that treats the current host as the sandbox.

    Example:
        sandbox = LocalSandbox()
        proc = await sandbox.start_process("echo hello")
        await proc.wait(5)
        print((await proc.get_logs())["stdout"])
    """

    DEFAULT_SHELL = "/bin/sh"

    # s3fs reads credentials from these variables
    ACCESS_KEY_ENV = "AWSACCESSKEYID"
    SECRET_KEY_ENV = "AWSSECRETACCESSKEY"

    # Seconds to wait for s3fs to daemonize
    MOUNT_TIMEOUT = 30.0

    def __init__(self, shell: str = DEFAULT_SHELL):
        """Initialize local backend.

        Args:
            shell: Shell used to interpret commands
        """
        super().__init__()
        self.shell = shell

    def is_available(self) -> bool:
        """Check that rsync and s3fs are installed."""
        return shutil.which("rsync") is not None and shutil.which("s3fs") is not None

    def get_availability_message(self) -> str:
        """Describe which required tools are missing."""
        missing = [tool for tool in ("rsync", "s3fs") if shutil.which(tool) is None]
        if missing:
            return f"Missing required tools: {', '.join(missing)}"
        return "Backend is AVAILABLE"

    def _build_argv(self, command: str, env_names: Sequence[str] = ()) -> List[str]:
        """Argument vector that runs ``command`` in the sandbox.

        ``env_names`` lists variables that must reach the command; the local
        shell inherits them already.
        """
        return [self.shell, "-c", command]

    async def _spawn(
        self,
        command: str,
        extra_env: Optional[Mapping[str, str]] = None,
    ) -> asyncio.subprocess.Process:
        env = None
        if extra_env:
            env = dict(os.environ)
            env.update(extra_env)
        argv = self._build_argv(command, tuple(extra_env or ()))
        self.logger.debug(f"Running command: {command}")
        try:
            return await asyncio.create_subprocess_exec(
                *argv,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                env=env,
            )
        except OSError as e:
            raise SandboxError(f"Failed to start command: {e}") from e

    async def _run(
        self,
        command: str,
        extra_env: Optional[Mapping[str, str]] = None,
        timeout: float = MOUNT_TIMEOUT,
    ) -> Tuple[int, str, str]:
        """Run a command to completion.

        Returns:
            Tuple of (return_code, stdout, stderr)

        Raises:
            SandboxError: If the command could not start or timed out
        """
        process = await self._spawn(command, extra_env)
        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout)
        except asyncio.TimeoutError:
            process.kill()
            await process.wait()
            raise SandboxError(f"Command timed out after {timeout}s: {command}")
        return (
            process.returncode,
            stdout.decode("utf-8", errors="replace"),
            stderr.decode("utf-8", errors="replace"),
        )

    async def start_process(self, command: str) -> LocalProcess:
        process = await self._spawn(command)
        return LocalProcess(process, command)

    def build_mount_command(
        self,
        bucket_name: str,
        local_path: Union[str, Path],
        endpoint: str,
    ) -> str:
        """Shell command that creates the mount point and runs s3fs."""
        path = shlex.quote(str(local_path))
        return (
            f"mkdir -p {path} && "
            f"s3fs {shlex.quote(bucket_name)} {path} "
            f"-o url={shlex.quote(endpoint)} -o use_path_request_style"
        )

    async def mount_bucket(
        self,
        bucket_name: str,
        local_path: Union[str, Path],
        endpoint: str,
        credentials: BucketCredentials,
    ) -> None:
        command = self.build_mount_command(bucket_name, local_path, endpoint)
        env = {
            self.ACCESS_KEY_ENV: credentials.access_key_id,
            self.SECRET_KEY_ENV: credentials.secret_access_key,
        }
        returncode, _, stderr = await self._run(command, extra_env=env)
        if returncode != 0:
            detail = stderr.strip() or f"exit code {returncode}"
            raise SandboxError(f"s3fs mount of {bucket_name} at {local_path} failed: {detail}")
        self.logger.info(f"Mounted {bucket_name} at {local_path}")
