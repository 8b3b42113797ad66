"""Shared pytest fixtures for sandbox persistence tests.

Provides a scripted sandbox backend, storage configs and helpers for testing
the mount/sync/restore flow without touching a real container or bucket.
"""

from unittest.mock import AsyncMock, patch

import pytest

from sandbox_persistence.backends.base import ProcessHandle, SandboxBackend
from sandbox_persistence.config import StorageConfig


class FakeProcess(ProcessHandle):
    """Process handle that has already finished with fixed output."""

    def __init__(self, stdout="", stderr="", status="completed"):
        self.stdout = stdout
        self.stderr = stderr
        self.status = status
        self.wait_calls = []

    async def wait(self, timeout):
        self.wait_calls.append(timeout)

    async def get_logs(self):
        return {"stdout": self.stdout, "stderr": self.stderr}

    async def get_status(self):
        return self.status


class FakeSandbox(SandboxBackend):
    """Sandbox that replays queued outputs, one per started command.

    Queue entries may be a stdout string, a ProcessHandle, or an exception
    to raise from start_process. Once the queue is empty every command
    returns ``default``.
    """

    def __init__(self, outputs=None, default="", mount_error=None):
        super().__init__()
        self.outputs = list(outputs or [])
        self.default = default
        self.mount_error = mount_error
        self.commands = []
        self.processes = []
        self.mount_calls = []

    async def start_process(self, command):
        self.commands.append(command)
        output = self.outputs.pop(0) if self.outputs else self.default
        if isinstance(output, Exception):
            raise output
        proc = output if isinstance(output, ProcessHandle) else FakeProcess(stdout=output)
        self.processes.append(proc)
        return proc

    async def mount_bucket(self, bucket_name, local_path, endpoint, credentials):
        self.mount_calls.append({
            "bucket_name": bucket_name,
            "local_path": local_path,
            "endpoint": endpoint,
            "credentials": credentials,
        })
        if self.mount_error is not None:
            raise self.mount_error


@pytest.fixture
def make_sandbox():
    """Factory for FakeSandbox instances."""
    return FakeSandbox


@pytest.fixture
def storage_config():
    """A fully configured StorageConfig."""
    return StorageConfig(
        access_key_id="test-key-id",
        secret_access_key="test-secret",
        account_id="test-account",
    )


@pytest.fixture
def unconfigured_config():
    """A StorageConfig with no credentials."""
    return StorageConfig()


@pytest.fixture
def no_sleep():
    """Make asyncio.sleep return immediately; yields the mock."""
    with patch("asyncio.sleep", new_callable=AsyncMock) as mock_sleep:
        yield mock_sleep


@pytest.fixture
def r2_env(monkeypatch):
    """Set the R2 environment variables."""
    monkeypatch.setenv("R2_ACCESS_KEY_ID", "env-key")
    monkeypatch.setenv("R2_SECRET_ACCESS_KEY", "env-secret")
    monkeypatch.setenv("CF_ACCOUNT_ID", "env-account")
    monkeypatch.delenv("R2_BUCKET_NAME", raising=False)


@pytest.fixture
def clean_env(monkeypatch):
    """Remove the R2 environment variables."""
    for name in ("R2_ACCESS_KEY_ID", "R2_SECRET_ACCESS_KEY", "CF_ACCOUNT_ID", "R2_BUCKET_NAME"):
        monkeypatch.delenv(name, raising=False)
