"""Tests for sandbox_persistence.mount module.

Validates idempotent mounting, the credential precondition and the
recheck after a failing mount primitive.
"""

import itertools
from pathlib import Path

import pytest

from sandbox_persistence.mount import (
    MountCoordinator,
    is_mounted_output,
    mount_check_command,
)
from sandbox_persistence.config import StorageConfig


class TestMountCheckOutput:
    """Test interpretation of the mount-table check output."""

    def test_mounted(self):
        assert is_mounted_output("mounted\n") is True

    def test_not_mounted(self):
        assert is_mounted_output("not-mounted\n") is False

    def test_empty_output(self):
        assert is_mounted_output("") is False

    def test_command_targets_mount_path(self):
        cmd = mount_check_command(Path("/data/moltbot"))
        assert 'grep -q "s3fs on /data/moltbot"' in cmd
        assert "echo mounted || echo not-mounted" in cmd


CREDENTIAL_FIELDS = ("access_key_id", "secret_access_key", "account_id")
MISSING_COMBINATIONS = [
    combo
    for size in range(1, len(CREDENTIAL_FIELDS) + 1)
    for combo in itertools.combinations(CREDENTIAL_FIELDS, size)
]


class TestEnsureMounted:
    """Test MountCoordinator.ensure_mounted."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("missing", MISSING_COMBINATIONS)
    async def test_missing_credentials_no_side_effects(self, make_sandbox, missing):
        values = {name: "value" for name in CREDENTIAL_FIELDS}
        for name in missing:
            values[name] = None
        sandbox = make_sandbox(default="not-mounted")

        result = await MountCoordinator(sandbox).ensure_mounted(StorageConfig(**values))

        assert result is False
        assert sandbox.commands == []
        assert sandbox.mount_calls == []

    @pytest.mark.asyncio
    async def test_already_mounted_skips_mount(self, make_sandbox, storage_config):
        sandbox = make_sandbox(outputs=["mounted\n"])

        assert await MountCoordinator(sandbox).ensure_mounted(storage_config) is True
        assert sandbox.mount_calls == []
        assert len(sandbox.commands) == 1

    @pytest.mark.asyncio
    async def test_mounts_when_absent(self, make_sandbox, storage_config):
        sandbox = make_sandbox(outputs=["not-mounted\n"])

        assert await MountCoordinator(sandbox).ensure_mounted(storage_config) is True
        assert len(sandbox.mount_calls) == 1
        call = sandbox.mount_calls[0]
        assert call["bucket_name"] == "moltbot-data"
        assert call["local_path"] == Path("/data/moltbot")
        assert call["endpoint"] == "https://test-account.r2.cloudflarestorage.com"
        assert call["credentials"].access_key_id == "test-key-id"
        assert call["credentials"].secret_access_key == "test-secret"

    @pytest.mark.asyncio
    async def test_mount_error_but_recheck_mounted(self, make_sandbox, storage_config):
        sandbox = make_sandbox(
            outputs=["not-mounted\n", "mounted\n"],
            mount_error=RuntimeError("already mounted"),
        )

        assert await MountCoordinator(sandbox).ensure_mounted(storage_config) is True
        assert len(sandbox.commands) == 2

    @pytest.mark.asyncio
    async def test_mount_error_and_recheck_unmounted(self, make_sandbox, storage_config):
        sandbox = make_sandbox(
            default="not-mounted\n",
            mount_error=RuntimeError("Mount failed"),
        )

        assert await MountCoordinator(sandbox).ensure_mounted(storage_config) is False
        # one check, one recheck, no retries
        assert len(sandbox.commands) == 2
        assert len(sandbox.mount_calls) == 1

    @pytest.mark.asyncio
    async def test_empty_logs_count_as_unmounted(self, make_sandbox, storage_config):
        sandbox = make_sandbox(outputs=[""])

        assert await MountCoordinator(sandbox).ensure_mounted(storage_config) is True
        assert len(sandbox.mount_calls) == 1

    @pytest.mark.asyncio
    async def test_check_error_treated_as_unmounted(self, make_sandbox, storage_config):
        sandbox = make_sandbox(outputs=[RuntimeError("sandbox gone")])

        assert await MountCoordinator(sandbox).ensure_mounted(storage_config) is True
        assert len(sandbox.mount_calls) == 1

    @pytest.mark.asyncio
    async def test_no_caching_between_calls(self, make_sandbox, storage_config):
        sandbox = make_sandbox(outputs=["mounted\n", "mounted\n"])
        coordinator = MountCoordinator(sandbox)

        await coordinator.ensure_mounted(storage_config)
        await coordinator.ensure_mounted(storage_config)

        assert len(sandbox.commands) == 2

    @pytest.mark.asyncio
    async def test_never_raises(self, make_sandbox, storage_config):
        sandbox = make_sandbox(
            outputs=[RuntimeError("boom"), RuntimeError("boom")],
            mount_error=OSError("no s3fs"),
        )

        assert await MountCoordinator(sandbox).ensure_mounted(storage_config) is False
