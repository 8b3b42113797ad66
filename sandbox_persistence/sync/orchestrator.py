"""SyncOrchestrator - backs up sandbox state to the mounted bucket.

Two entry points share one preparation routine (mount, layout discovery and
command construction), launch the same command, and differ only afterwards:

- fire_and_forget(): launch and return. For scheduled runs with a hard time
  limit; waiting on slow s3fs writes could blow that limit, and the next
  scheduled run picks up any failure.
- sync(): launch, then poll the ``.last-sync`` marker until it holds a
  timestamp or the attempt budget runs out.

Neither entry point raises. Blocking mode reports every failure as a
SyncResult; fire-and-forget mode logs and returns.
"""

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from ..backends.base import SandboxBackend
from ..config import ConfigLayout, StorageConfig
from ..mount import MountCoordinator
from .commands import build_sync_command
from .layout import LayoutProbeError, probe_layout
from .marker import poll_marker, read_marker

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 2.0
DEFAULT_MAX_POLLS = 90

ERROR_NOT_CONFIGURED = "R2 storage is not configured"
ERROR_MOUNT_FAILED = "Failed to mount R2 storage"
ERROR_VERIFY_FAILED = "Failed to verify source files"
ERROR_NO_CONFIG = "Sync aborted: no config file found"
ERROR_LAUNCH_FAILED = "Sync error"
ERROR_TIMED_OUT = "Sync timed out"


@dataclass(frozen=True)
class SyncResult:
    """Terminal outcome of one blocking sync.

    Attributes:
        success: Whether the marker confirmed the whole command chain
        last_sync: Timestamp read from the marker (on success)
        error: Short failure reason
        details: Longer explanation or underlying error message
    """
    success: bool
    last_sync: Optional[str] = None
    error: Optional[str] = None
    details: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary, dropping unset fields."""
        data: Dict[str, Any] = {"success": self.success}
        if self.last_sync is not None:
            data["last_sync"] = self.last_sync
        if self.error is not None:
            data["error"] = self.error
        if self.details is not None:
            data["details"] = self.details
        return data


class SyncOrchestrator:
    """Coordinates mount, layout discovery, copy and completion polling.

    Nothing is cached between calls: mount state and layout are re-discovered
    on every invocation, so concurrent callers are safe (if redundant).

    Attributes:
        sandbox: Backend commands run in
        config: Storage settings
        mount_coordinator: Mount helper sharing the same backend
        poll_interval: Default seconds between marker reads
        max_polls: Default maximum marker reads

    Example:
        orchestrator = SyncOrchestrator(sandbox, StorageConfig.from_env())
        result = await orchestrator.sync()
        if result.success:
            print(f"Backed up at {result.last_sync}")
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

    async def resolve_config_layout(self) -> ConfigLayout:
        """Find which config directory holds a config file.

        The primary layout is probed first; a probe that errors counts as
        "not found" for that layout.

        Raises:
            LayoutProbeError: If every probe errored
        """
        return await probe_layout(self.sandbox)

    async def _prepare(self) -> Tuple[Optional[str], Optional[SyncResult]]:
        """Run the steps both modes share, up to (not including) launch.

        Returns:
            (sync command, None) when ready to launch, otherwise
            (None, failure result)
        """
        if not self.config.is_configured:
            return None, SyncResult(success=False, error=ERROR_NOT_CONFIGURED)

        if not await self.mount_coordinator.ensure_mounted(self.config):
            return None, SyncResult(success=False, error=ERROR_MOUNT_FAILED)

        try:
            layout = await self.resolve_config_layout()
        except LayoutProbeError as e:
            logger.warning(f"Could not verify source files: {e}")
            return None, SyncResult(success=False, error=ERROR_VERIFY_FAILED, details=str(e))

        if layout is ConfigLayout.NOT_FOUND:
            # An empty source must never overwrite the backup
            return None, SyncResult(
                success=False,
                error=ERROR_NO_CONFIG,
                details="Neither openclaw.json nor clawdbot.json found in config directory.",
            )

        return build_sync_command(layout, self.config.mount_path), None

    async def fire_and_forget(self) -> None:
        """Start a backup without waiting for it.

        Every failure ends in a log line and an early return.
        """
        command, failure = await self._prepare()
        if failure is not None:
            if failure.error == ERROR_NOT_CONFIGURED:
                logger.info("[cron] R2 not configured, skipping")
            elif failure.error == ERROR_MOUNT_FAILED:
                logger.warning("[cron] R2 mount failed, skipping")
            elif failure.error == ERROR_NO_CONFIG:
                logger.info("[cron] No config file found, skipping")
            else:
                logger.warning(f"[cron] {failure.error}: {failure.details}, skipping")
            return

        try:
            await self.sandbox.start_process(command)
        except Exception as e:
            logger.error(f"[cron] Failed to start sync command: {e}")
            return
        logger.info("[cron] Sync command started (fire-and-forget)")

    async def sync(
        self,
        poll_interval: Optional[float] = None,
        max_polls: Optional[int] = None,
    ) -> SyncResult:
        """Back up config, workspace and skills, and wait for confirmation.

        Syncs up to three directories:
        - Config: /root/.openclaw/ (or /root/.clawdbot/) -> <mount>/openclaw/
        - Workspace: /root/clawd/ -> <mount>/workspace/ (if it exists)
        - Skills: /root/clawd/skills/ -> <mount>/skills/ (if it exists)

        Args:
            poll_interval: Seconds between marker reads (default: self.poll_interval)
            max_polls: Maximum marker reads (default: self.max_polls)

        Returns:
            SyncResult; a timeout means the copy may still finish later
        """
        poll_interval = self.poll_interval if poll_interval is None else poll_interval
        max_polls = self.max_polls if max_polls is None else max_polls

        command, failure = await self._prepare()
        if failure is not None:
            logger.warning(f"Sync failed: {failure.error}")
            return failure

        try:
            await self.sandbox.start_process(command)
        except Exception as e:
            logger.error(f"Failed to start sync command: {e}")
            return SyncResult(success=False, error=ERROR_LAUNCH_FAILED, details=str(e))

        logger.info(f"Sync command started, polling {self.config.last_sync_path}")
        last_sync = await poll_marker(
            self.sandbox, self.config.last_sync_path, poll_interval, max_polls
        )
        if last_sync:
            logger.info(f"Sync complete: {last_sync}")
            return SyncResult(success=True, last_sync=last_sync)

        budget = poll_interval * max_polls
        logger.warning(f"Sync timed out after {max_polls} polls ({budget:.0f}s)")
        return SyncResult(
            success=False,
            error=ERROR_TIMED_OUT,
            details=f"Timestamp file not created within {budget:.0f} seconds",
        )

    async def get_last_sync(self) -> Optional[str]:
        """Read the timestamp of the last completed backup.

        Mounts the bucket first if needed.

        Returns:
            Marker value, or None if unavailable
        """
        if not await self.mount_coordinator.ensure_mounted(self.config):
            return None
        try:
            return await read_marker(self.sandbox, self.config.last_sync_path)
        except Exception as e:
            logger.warning(f"Failed to read last sync marker: {e}")
            return None
