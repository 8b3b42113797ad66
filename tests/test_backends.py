"""Tests for sandbox backends and run_command.

The local backend tests spawn real /bin/sh processes; s3fs is never invoked.
"""

import sys

import pytest

from sandbox_persistence.backends import get_backend, get_backend_class
from sandbox_persistence.backends.base import (
    CommandExecution,
    ProcessHandle,
    SandboxError,
    run_command,
)
from sandbox_persistence.backends.docker import DockerSandbox
from sandbox_persistence.backends.local import LocalSandbox
from sandbox_persistence.config import BucketCredentials

posix_only = pytest.mark.skipif(sys.platform == "win32", reason="requires /bin/sh")


class StaleStatusProcess(ProcessHandle):
    """Handle without get_status; only the launch-time snapshot."""

    def __init__(self, logs):
        self.status = "running"
        self._logs = logs

    async def wait(self, timeout):
        pass

    async def get_logs(self):
        return self._logs


class TestRunCommand:

    @pytest.mark.asyncio
    async def test_collects_output_and_fresh_status(self, make_sandbox):
        sandbox = make_sandbox(outputs=["hello\n"])
        result = await run_command(sandbox, "echo hello", 5)

        assert isinstance(result, CommandExecution)
        assert result.stdout == "hello\n"
        assert result.stderr == ""
        assert result.status == "completed"
        assert sandbox.processes[0].wait_calls == [5]

    @pytest.mark.asyncio
    async def test_falls_back_to_status_attribute(self, make_sandbox):
        sandbox = make_sandbox(outputs=[StaleStatusProcess({"stdout": "x"})])
        result = await run_command(sandbox, "true", 1)

        assert result.status == "running"
        assert result.stdout == "x"

    @pytest.mark.asyncio
    async def test_missing_logs_become_empty_strings(self, make_sandbox):
        sandbox = make_sandbox(outputs=[StaleStatusProcess({"stdout": None})])
        result = await run_command(sandbox, "true", 1)

        assert result.stdout == ""
        assert result.stderr == ""

    @pytest.mark.asyncio
    async def test_start_error_propagates(self, make_sandbox):
        sandbox = make_sandbox(outputs=[SandboxError("cannot start")])
        with pytest.raises(SandboxError):
            await run_command(sandbox, "true", 1)

    def test_to_dict(self):
        assert CommandExecution("a", "b", "error").to_dict() == {
            "stdout": "a", "stderr": "b", "status": "error",
        }


@posix_only
class TestLocalSandbox:
    """Test LocalSandbox against the real shell."""

    @pytest.mark.asyncio
    async def test_run_echo(self):
        result = await run_command(LocalSandbox(), "echo hello", 5)
        assert result.stdout == "hello\n"
        assert result.status == "completed"

    @pytest.mark.asyncio
    async def test_stderr_and_error_status(self):
        result = await run_command(LocalSandbox(), "echo oops >&2; exit 3", 5)
        assert result.stderr == "oops\n"
        assert result.status == "error"

    @pytest.mark.asyncio
    async def test_wait_returns_on_timeout(self):
        proc = await LocalSandbox().start_process("sleep 1; echo done")
        await proc.wait(0.05)

        assert await proc.get_status() == "running"
        assert (await proc.get_logs())["stdout"] == ""

        await proc.wait(5)
        assert await proc.get_status() == "completed"
        assert (await proc.get_logs())["stdout"] == "done\n"

    @pytest.mark.asyncio
    async def test_shell_sentinel_check(self, tmp_path):
        marker = tmp_path / "openclaw.json"
        marker.write_text("{}")
        found = await run_command(LocalSandbox(), f"test -f {marker} && echo exists", 5)
        missing = await run_command(
            LocalSandbox(), f"test -f {tmp_path / 'nope'} && echo exists", 5
        )

        assert "exists" in found.stdout
        assert missing.stdout == ""

    def test_mount_command(self):
        cmd = LocalSandbox().build_mount_command(
            "moltbot-data", "/data/moltbot", "https://acct.r2.cloudflarestorage.com"
        )
        assert cmd.startswith("mkdir -p /data/moltbot && s3fs moltbot-data /data/moltbot")
        assert "-o url=https://acct.r2.cloudflarestorage.com" in cmd
        assert "use_path_request_style" in cmd

    @pytest.mark.asyncio
    async def test_mount_passes_credentials_in_env(self, monkeypatch):
        sandbox = LocalSandbox()
        monkeypatch.setattr(
            sandbox,
            "build_mount_command",
            lambda *args: 'test "$AWSACCESSKEYID" = key1 && test "$AWSSECRETACCESSKEY" = secret1',
        )
        await sandbox.mount_bucket(
            "bucket", "/data/moltbot", "https://e", BucketCredentials("key1", "secret1")
        )

    @pytest.mark.asyncio
    async def test_mount_failure_raises(self, monkeypatch):
        sandbox = LocalSandbox()
        monkeypatch.setattr(
            sandbox, "build_mount_command", lambda *args: "echo 'bucket not found' >&2; exit 1"
        )
        with pytest.raises(SandboxError, match="bucket not found"):
            await sandbox.mount_bucket(
                "bucket", "/data/moltbot", "https://e", BucketCredentials("k", "s")
            )

    @pytest.mark.asyncio
    async def test_missing_shell_raises(self):
        with pytest.raises(SandboxError):
            await LocalSandbox(shell="/nonexistent/shell").start_process("true")


class TestDockerSandbox:

    def test_wraps_command_in_docker_exec(self):
        argv = DockerSandbox("moltbot")._build_argv("echo hi")
        assert argv == ["docker", "exec", "moltbot", "sh", "-c", "echo hi"]

    def test_forwards_env_names_only(self):
        argv = DockerSandbox("moltbot")._build_argv(
            "s3fs ...", ("AWSACCESSKEYID", "AWSSECRETACCESSKEY")
        )
        assert argv[:6] == ["docker", "exec", "-e", "AWSACCESSKEYID", "-e", "AWSSECRETACCESSKEY"]
        assert argv[6] == "moltbot"

    def test_container_required(self):
        with pytest.raises(ValueError):
            DockerSandbox("")


class TestBackendFactory:

    def test_local(self):
        assert isinstance(get_backend("local"), LocalSandbox)

    def test_docker(self):
        backend = get_backend("docker", container="moltbot")
        assert isinstance(backend, DockerSandbox)
        assert backend.container == "moltbot"

    def test_unknown(self):
        with pytest.raises(NotImplementedError):
            get_backend_class("firecracker")
