"""Recovery of sandbox state after a container restart.

This package provides:
- RestoreManager: copies the latest bucket backup back into the sandbox
- should_restore: marker comparison deciding whether a restore is needed
"""

from sandbox_persistence.recovery.restore import (
    RestoreManager,
    RestoreResult,
    should_restore,
)

__all__ = [
    "RestoreManager",
    "RestoreResult",
    "should_restore",
]
