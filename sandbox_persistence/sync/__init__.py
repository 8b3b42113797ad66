"""Backup of sandbox state to the mounted bucket.

This package provides:
- SyncOrchestrator: blocking and fire-and-forget backups
- SyncResult: outcome of a blocking backup
- run_periodic: scheduled fire-and-forget loop

Success is read from the ``.last-sync`` marker, never from exit codes.
"""

from sandbox_persistence.sync.orchestrator import SyncOrchestrator, SyncResult
from sandbox_persistence.sync.scheduler import run_periodic

__all__ = [
    "SyncOrchestrator",
    "SyncResult",
    "run_periodic",
]
