"""Shell command builders.

Every probe prints its own sentinel on stdout because the sandbox's exit
status and log retrieval cannot be trusted. Callers match substrings of
stdout, never return codes.
"""

from pathlib import Path
from typing import Union

from ..config import (
    ConfigLayout,
    LAST_SYNC_MARKER,
    REMOTE_CONFIG_SUBDIR,
    REMOTE_SKILLS_SUBDIR,
    REMOTE_WORKSPACE_SUBDIR,
    SKILLS_DIR,
    WORKSPACE_DIR,
)


EXISTS_SENTINEL = "exists"

# Never mirrored between the config directory and the bucket. The local
# .last-sync is the restore marker and only the final cp may write it.
CONFIG_EXCLUDES = ("*.lock", "*.log", "*.tmp", ".git", LAST_SYNC_MARKER)

# .git holds dozens of small hook files; each one is slow over s3fs
WORKSPACE_EXCLUDES = ("skills", ".git")

RSYNC_BASE = "rsync -r --no-times --delete"

PathLike = Union[str, Path]


def _excludes(patterns) -> str:
    return " ".join(f"--exclude='{pattern}'" for pattern in patterns)


def _rsync(source: PathLike, dest: PathLike, excludes=()) -> str:
    parts = [RSYNC_BASE]
    if excludes:
        parts.append(_excludes(excludes))
    parts.append(f"{source}/")
    parts.append(f"{dest}/")
    return " ".join(parts)


def file_exists_command(path: PathLike) -> str:
    """Print the exists sentinel when ``path`` is a regular file."""
    return f"test -f {path} && echo {EXISTS_SENTINEL}"


def read_file_command(path: PathLike) -> str:
    return f"cat {path}"


def build_sync_command(
    config_dir: Union[PathLike, ConfigLayout],
    mount_path: PathLike,
) -> str:
    """Build the compound backup command.

    Steps are joined with ``&&`` so the timestamp marker is written only when
    every copy before it succeeded:

    1. Mirror the config directory to ``<mount>/openclaw/``
    2. Mirror the workspace (minus skills) to ``<mount>/workspace/`` if it exists
    3. Mirror the skills directory to ``<mount>/skills/`` if it exists
    4. Write ``date -Iseconds`` to ``<mount>/.last-sync``

    Args:
        config_dir: Local config directory, or a resolved ConfigLayout
        mount_path: Where the bucket is mounted

    Returns:
        Shell command line

    Raises:
        ValueError: If given ConfigLayout.NOT_FOUND
    """
    if isinstance(config_dir, ConfigLayout):
        if config_dir.config_dir is None:
            raise ValueError("Cannot build sync command without a config directory")
        config_dir = config_dir.config_dir

    mount = Path(mount_path)
    steps = [
        _rsync(config_dir, mount / REMOTE_CONFIG_SUBDIR, CONFIG_EXCLUDES),
        f"([ -d {WORKSPACE_DIR} ] && "
        f"{_rsync(WORKSPACE_DIR, mount / REMOTE_WORKSPACE_SUBDIR, WORKSPACE_EXCLUDES)} || true)",
        f"([ -d {SKILLS_DIR} ] && "
        f"{_rsync(SKILLS_DIR, mount / REMOTE_SKILLS_SUBDIR)} || true)",
        f"date -Iseconds > {mount / LAST_SYNC_MARKER}",
    ]
    return " && ".join(steps)


def build_restore_command(
    mount_path: PathLike,
    config_dir: PathLike,
    local_marker: PathLike,
) -> str:
    """Build the compound restore command (bucket to sandbox).

    Removes the local marker, mirrors the backed-up trees back into place
    and copies the remote timestamp marker last. The local marker matching
    the remote one therefore proves every step of this run completed.
    """
    mount = Path(mount_path)
    remote_workspace = mount / REMOTE_WORKSPACE_SUBDIR
    remote_skills = mount / REMOTE_SKILLS_SUBDIR
    steps = [
        f"rm -f {local_marker}",
        f"mkdir -p {config_dir}",
        _rsync(mount / REMOTE_CONFIG_SUBDIR, config_dir, CONFIG_EXCLUDES),
        f"([ -d {remote_workspace} ] && mkdir -p {WORKSPACE_DIR} && "
        f"{_rsync(remote_workspace, WORKSPACE_DIR, WORKSPACE_EXCLUDES)} || true)",
        f"([ -d {remote_skills} ] && mkdir -p {SKILLS_DIR} && "
        f"{_rsync(remote_skills, SKILLS_DIR)} || true)",
        f"cp {mount / LAST_SYNC_MARKER} {local_marker}",
    ]
    return " && ".join(steps)
