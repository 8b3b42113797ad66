"""Sandbox Persistence - durable backups of a sandboxed container's state.

Backs up the container's configuration, workspace and skills to an
S3-compatible bucket (Cloudflare R2) mounted with s3fs, and restores them
after the container restarts.

Key Features:
    - Idempotent bucket mounting that re-checks the mount table every call
    - Discovery of the primary (/root/.openclaw) or legacy (/root/.clawdbot)
      config layout
    - One rsync chain per backup, ending in a ``.last-sync`` timestamp marker
    - Blocking backups that poll the marker, and fire-and-forget backups for
      scheduled runs
    - Restore on startup when the bucket holds a newer backup

Quick Start:
    import asyncio
    from sandbox_persistence import create_orchestrator

    orchestrator = create_orchestrator()          # local shell, env config
    result = asyncio.run(orchestrator.sync())
    print(result.to_dict())

Classes:
    SyncOrchestrator: Blocking and fire-and-forget backups
    MountCoordinator: Idempotent bucket mounting
    RestoreManager: Bucket-to-sandbox restore
    StorageConfig: Bucket settings (from environment)
    ConfigLayout: Enum for config directory layouts (PRIMARY, LEGACY, NOT_FOUND)
"""

__version__ = "1.0.0"
__license__ = "MIT"

from typing import Optional

# Core configuration classes
from .config import (
    StorageConfig,
    BucketCredentials,
    MountTarget,
    ConfigLayout,
    R2_MOUNT_PATH,
)

# Backend classes (for extension)
from .backends import (
    SandboxBackend,
    ProcessHandle,
    CommandExecution,
    SandboxError,
    get_backend,
)

from .mount import MountCoordinator
from .sync import SyncOrchestrator, SyncResult, run_periodic
from .recovery import RestoreManager, RestoreResult

# Public API
__all__ = [
    "__version__",
    "__license__",
    # Main classes
    "SyncOrchestrator",
    "MountCoordinator",
    "RestoreManager",
    # Results
    "SyncResult",
    "RestoreResult",
    # Configuration
    "StorageConfig",
    "BucketCredentials",
    "MountTarget",
    "ConfigLayout",
    "R2_MOUNT_PATH",
    # Backends
    "SandboxBackend",
    "ProcessHandle",
    "CommandExecution",
    "SandboxError",
    "get_backend",
    # Scheduling
    "run_periodic",
    "create_orchestrator",
]


def create_orchestrator(
    backend: str = "local",
    config: Optional[StorageConfig] = None,
    **backend_kwargs,
) -> SyncOrchestrator:
    """Convenience function to create a configured SyncOrchestrator.

    Args:
        backend: Backend name ("local" or "docker")
        config: Storage settings (default: read from the environment)
        **backend_kwargs: Passed to the backend (e.g. ``container="moltbot"``)

    Returns:
        SyncOrchestrator instance

    Example:
        orchestrator = create_orchestrator("docker", container="moltbot")
    """
    sandbox = get_backend(backend, **backend_kwargs)
    return SyncOrchestrator(sandbox, config or StorageConfig.from_env())
