"""Restore sandbox state from the bucket after a container restart.

The bucket's ``.last-sync`` marker and a copy of it kept in the local config
directory decide whether a restore is needed:

1. No remote marker: there is no complete backup, nothing to restore
2. No local marker: fresh container, restore
3. Remote newer than local: restore
4. Otherwise the container already holds the latest state

The backup lands in the config directory of the layout it was taken from,
identified by the marker file it holds (``openclaw.json`` or
``clawdbot.json``). The restore command removes the local marker first and
copies the remote marker last, so the local marker matching the remote one
proves the whole chain completed.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

from ..backends.base import SandboxBackend
from ..config import ConfigLayout, LAST_SYNC_MARKER, REMOTE_CONFIG_SUBDIR, StorageConfig
from ..mount import MountCoordinator
from ..sync.commands import build_restore_command
from ..sync.layout import LayoutProbeError, probe_layout
from ..sync.marker import parse_timestamp, poll_marker, read_marker
from ..sync.orchestrator import (
    DEFAULT_MAX_POLLS,
    DEFAULT_POLL_INTERVAL,
    ERROR_MOUNT_FAILED,
    ERROR_NOT_CONFIGURED,
)

logger = logging.getLogger(__name__)

ERROR_RESTORE_LAUNCH_FAILED = "Restore error"
ERROR_RESTORE_TIMED_OUT = "Restore timed out"
ERROR_RESTORE_VERIFY_FAILED = "Failed to verify backup files"


@dataclass
class RestoreResult:
    """Result of a restore attempt.

    Attributes:
        restored: Whether files were copied back into the sandbox
        last_sync: Timestamp of the backup now in place
        error: Short failure reason
        details: Longer explanation or underlying error message
    """
    restored: bool = False
    last_sync: Optional[str] = None
    error: Optional[str] = None
    details: Optional[str] = None

    @property
    def success(self) -> bool:
        """True unless the restore failed (skipping is not a failure)."""
        return self.error is None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "success": self.success,
            "restored": self.restored,
            "last_sync": self.last_sync,
            "error": self.error,
            "details": self.details,
        }


def should_restore(remote: Optional[str], local: Optional[str]) -> bool:
    """Decide whether the remote backup should replace local state.

    An unparsable local marker counts as stale; an unparsable remote marker
    is never restored over existing local state.
    """
    if not remote:
        return False
    if not local:
        return True
    remote_time = parse_timestamp(remote)
    local_time = parse_timestamp(local)
    if remote_time is None:
        return False
    if local_time is None:
        return True
    try:
        return remote_time > local_time
    except TypeError:
        # naive vs aware timestamps
        return remote.strip() > local.strip()


class RestoreManager:
    """Copies the latest backup from the bucket back into the sandbox.

    Usage:
        manager = RestoreManager(sandbox, StorageConfig.from_env())
        result = await manager.restore()
        if result.restored:
            print(f"Restored backup from {result.last_sync}")
    """

    def __init__(
        self,
        sandbox: SandboxBackend,
        config: StorageConfig,
        mount_coordinator: Optional[MountCoordinator] = None,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        max_polls: int = DEFAULT_MAX_POLLS,
    ):
        self.sandbox = sandbox
        self.config = config
        self.mount_coordinator = mount_coordinator or MountCoordinator(sandbox)
        self.poll_interval = poll_interval
        self.max_polls = max_polls

    @property
    def remote_config_dir(self) -> Path:
        return self.config.mount_path / REMOTE_CONFIG_SUBDIR

    async def resolve_backup_layout(self) -> ConfigLayout:
        """Find which layout the backed-up config directory belongs to.

        Raises:
            LayoutProbeError: If every probe errored
        """
        return await probe_layout(self.sandbox, base_dir=self.remote_config_dir)

    async def _read_marker_safe(self, path: Path) -> Optional[str]:
        try:
            return await read_marker(self.sandbox, path)
        except Exception as e:
            logger.debug(f"Could not read {path}: {e}")
            return None

    async def restore(self, force: bool = False) -> RestoreResult:
        """Restore from the bucket if the backup is newer than local state.

        Args:
            force: Restore even if local state looks current

        Returns:
            RestoreResult
        """
        if not self.config.is_configured:
            return RestoreResult(error=ERROR_NOT_CONFIGURED)

        if not await self.mount_coordinator.ensure_mounted(self.config):
            return RestoreResult(error=ERROR_MOUNT_FAILED)

        remote = await self._read_marker_safe(self.config.last_sync_path)
        if not remote:
            logger.info("No backup found in R2, nothing to restore")
            return RestoreResult(details="No backup marker in bucket")

        try:
            layout = await self.resolve_backup_layout()
        except LayoutProbeError as e:
            logger.warning(f"Could not verify backup files: {e}")
            return RestoreResult(error=ERROR_RESTORE_VERIFY_FAILED, details=str(e))

        if layout is ConfigLayout.NOT_FOUND:
            logger.warning(f"Backup in {self.remote_config_dir} has no config file, not restoring")
            return RestoreResult(
                details="Neither openclaw.json nor clawdbot.json found in backup.",
            )

        config_dir = layout.config_dir
        local_marker = config_dir / LAST_SYNC_MARKER
        local = await self._read_marker_safe(local_marker)
        if not force and not should_restore(remote, local):
            logger.info(f"Local state is current (local: {local}, backup: {remote})")
            return RestoreResult(last_sync=local, details="Local state is up to date")

        command = build_restore_command(self.config.mount_path, config_dir, local_marker)
        try:
            await self.sandbox.start_process(command)
        except Exception as e:
            logger.error(f"Failed to start restore command: {e}")
            return RestoreResult(error=ERROR_RESTORE_LAUNCH_FAILED, details=str(e))

        logger.info(f"Restoring {layout.value} backup from {remote} into {config_dir}")
        restored = await poll_marker(
            self.sandbox,
            local_marker,
            self.poll_interval,
            self.max_polls,
            expected=remote,
        )
        if restored:
            logger.info(f"Restore complete: {restored}")
            return RestoreResult(restored=True, last_sync=restored)

        budget = self.poll_interval * self.max_polls
        return RestoreResult(
            error=ERROR_RESTORE_TIMED_OUT,
            details=f"Local marker did not match backup within {budget:.0f} seconds",
        )
