#!/usr/bin/env python3
"""Basic usage example for Sandbox Persistence.

This example demonstrates:
1. Reading bucket settings from the environment
2. Mounting the bucket inside a running container
3. Running a blocking backup and reading the result
4. Restoring the backup when the container state is older

Requires R2_ACCESS_KEY_ID, R2_SECRET_ACCESS_KEY and CF_ACCOUNT_ID to be set,
and a container with rsync and s3fs installed.

Run this example:
    python basic_usage.py <container>
"""

import asyncio
import json
import sys

from sandbox_persistence import (
    MountCoordinator,
    RestoreManager,
    StorageConfig,
    SyncOrchestrator,
    get_backend,
)


async def run(container: str) -> int:
    print("=" * 60)
    print("Sandbox Persistence - Basic Usage Example")
    print("=" * 60)

    # -------------------------------------------------------------------------
    # Step 1: Configuration
    # -------------------------------------------------------------------------
    print("\n[1] Reading bucket settings from the environment...")
    config = StorageConfig.from_env()
    print(f"    Bucket:     {config.bucket_name}")
    print(f"    Mount path: {config.mount_path}")
    print(f"    Configured: {config.is_configured}")
    if not config.is_configured:
        print("\n    Set R2_ACCESS_KEY_ID, R2_SECRET_ACCESS_KEY and CF_ACCOUNT_ID first.")
        return 1

    sandbox = get_backend("docker", container=container)
    coordinator = MountCoordinator(sandbox)

    # -------------------------------------------------------------------------
    # Step 2: Mount (safe to repeat)
    # -------------------------------------------------------------------------
    print("\n[2] Mounting bucket...")
    if not await coordinator.ensure_mounted(config):
        print("    Mount failed, see the log output above.")
        return 1
    print(f"    Mounted: {await coordinator.is_mounted(config.mount_path)}")

    # -------------------------------------------------------------------------
    # Step 3: Blocking backup
    # -------------------------------------------------------------------------
    print("\n[3] Backing up config, workspace and skills...")
    orchestrator = SyncOrchestrator(sandbox, config, mount_coordinator=coordinator)
    layout = await orchestrator.resolve_config_layout()
    print(f"    Config layout: {layout.name}")

    result = await orchestrator.sync()
    print(f"    Result: {json.dumps(result.to_dict())}")

    # -------------------------------------------------------------------------
    # Step 4: Restore (skipped when local state is current)
    # -------------------------------------------------------------------------
    print("\n[4] Restoring if the bucket holds a newer backup...")
    restore = await RestoreManager(sandbox, config, mount_coordinator=coordinator).restore()
    print(f"    Result: {json.dumps(restore.to_dict())}")

    print("\n" + "=" * 60)
    print("Example complete!")
    print("=" * 60)
    return 0 if result.success and restore.success else 1


def main():
    if len(sys.argv) != 2:
        print(__doc__)
        return 2
    return asyncio.run(run(sys.argv[1]))


if __name__ == "__main__":
    sys.exit(main())
