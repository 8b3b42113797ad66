"""MountCoordinator - keeps the backup bucket attached inside the sandbox.

Mount state is never cached: the mount can be created or torn down outside
this process, so every call re-reads the sandbox's mount table.

Example:
    coordinator = MountCoordinator(sandbox)
    if await coordinator.ensure_mounted(StorageConfig.from_env()):
        ...  # bucket is available at config.mount_path
"""

import logging
from pathlib import Path
from typing import Union

from .backends.base import SandboxBackend, run_command
from .config import StorageConfig


logger = logging.getLogger(__name__)

# Seconds to wait for the mount-table check
MOUNT_CHECK_TIMEOUT = 5.0

MOUNTED_SENTINEL = "mounted"
NOT_MOUNTED_SENTINEL = "not-mounted"


def mount_check_command(mount_path: Union[str, Path]) -> str:
    """Print ``mounted`` or ``not-mounted`` for an s3fs mount at ``mount_path``."""
    return (
        f'mount | grep -q "s3fs on {mount_path}" '
        f"&& echo {MOUNTED_SENTINEL} || echo {NOT_MOUNTED_SENTINEL}"
    )


def is_mounted_output(stdout: str) -> bool:
    """Interpret the output of mount_check_command."""
    return bool(stdout) and MOUNTED_SENTINEL in stdout and NOT_MOUNTED_SENTINEL not in stdout


class MountCoordinator:
    """Idempotent, best-effort bucket mounting.

    ``ensure_mounted`` never raises: storage sync is optional, so every
    failure is logged and reported as False.

    Attributes:
        sandbox: Backend the mount commands run in
    """

    def __init__(self, sandbox: SandboxBackend):
        self.sandbox = sandbox

    async def is_mounted(self, mount_path: Union[str, Path]) -> bool:
        """Check the mount table for an s3fs mount at ``mount_path``.

        Relies on the check command's own stdout (``mounted`` vs
        ``not-mounted``) because log retrieval often comes back empty.
        """
        try:
            result = await run_command(
                self.sandbox, mount_check_command(mount_path), MOUNT_CHECK_TIMEOUT
            )
        except Exception as e:
            logger.warning(f"Mount check failed: {e}")
            return False

        mounted = is_mounted_output(result.stdout)
        logger.debug(f"Mount check for {mount_path}: {mounted} (stdout: {result.stdout[:100]!r})")
        return mounted

    async def ensure_mounted(self, config: StorageConfig) -> bool:
        """Attach the bucket unless it is already mounted.

        1. Missing credentials: return False without touching the sandbox
        2. Already mounted: return True
        3. Mount; on success return True
        4. On a mount error, check once more (the primitive can fail with
           "already mounted") and return that answer

        Args:
            config: Storage settings

        Returns:
            True if the bucket is mounted at config.mount_path
        """
        if not config.is_configured:
            logger.info(
                "R2 storage not configured "
                "(missing R2_ACCESS_KEY_ID, R2_SECRET_ACCESS_KEY, or CF_ACCOUNT_ID)"
            )
            return False

        target = config.mount_target()

        if await self.is_mounted(target.mount_path):
            logger.info(f"R2 bucket already mounted at {target.mount_path}")
            return True

        try:
            logger.info(f"Mounting R2 bucket {target.bucket_name} at {target.mount_path}")
            await self.sandbox.mount_bucket(
                target.bucket_name,
                target.mount_path,
                endpoint=target.endpoint,
                credentials=target.credentials,
            )
            logger.info("R2 bucket mounted successfully - data will persist across sessions")
            return True
        except Exception as e:
            logger.warning(f"R2 mount error: {e}")

        if await self.is_mounted(target.mount_path):
            logger.info("R2 bucket is mounted despite error")
            return True

        logger.error(f"Failed to mount R2 bucket {target.bucket_name} at {target.mount_path}")
        return False
