"""Configuration dataclasses and fixed paths for sandbox persistence."""

import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Mapping, Optional


# Where the bucket is attached inside the sandbox
R2_MOUNT_PATH = Path("/data/moltbot")
DEFAULT_BUCKET_NAME = "moltbot-data"

# Source trees inside the sandbox
PRIMARY_CONFIG_DIR = Path("/root/.openclaw")
PRIMARY_CONFIG_MARKER = "openclaw.json"
LEGACY_CONFIG_DIR = Path("/root/.clawdbot")
LEGACY_CONFIG_MARKER = "clawdbot.json"
WORKSPACE_DIR = Path("/root/clawd")
SKILLS_DIR = WORKSPACE_DIR / "skills"

# Destinations relative to the mount root
REMOTE_CONFIG_SUBDIR = "openclaw"
REMOTE_WORKSPACE_SUBDIR = "workspace"
REMOTE_SKILLS_SUBDIR = "skills"
LAST_SYNC_MARKER = ".last-sync"


class ConfigLayout(Enum):
    """Which configuration directory convention the sandbox uses."""
    PRIMARY = "primary"
    LEGACY = "legacy"
    NOT_FOUND = "not_found"

    @property
    def config_dir(self) -> Optional[Path]:
        """Local configuration directory for this layout (None if not found)."""
        return _LAYOUT_DIRS.get(self)

    @property
    def marker_file(self) -> Optional[Path]:
        """File whose presence identifies this layout."""
        return _LAYOUT_MARKERS.get(self)


_LAYOUT_DIRS = {
    ConfigLayout.PRIMARY: PRIMARY_CONFIG_DIR,
    ConfigLayout.LEGACY: LEGACY_CONFIG_DIR,
}

_LAYOUT_MARKERS = {
    ConfigLayout.PRIMARY: PRIMARY_CONFIG_DIR / PRIMARY_CONFIG_MARKER,
    ConfigLayout.LEGACY: LEGACY_CONFIG_DIR / LEGACY_CONFIG_MARKER,
}


@dataclass(frozen=True)
class BucketCredentials:
    """S3-style access key pair for the bucket."""
    access_key_id: str
    secret_access_key: str

    def __repr__(self) -> str:
        return f"BucketCredentials(access_key_id={self.access_key_id!r}, secret_access_key='***')"


@dataclass(frozen=True)
class MountTarget:
    """Everything the mount primitive needs to attach the bucket.

    Built from StorageConfig on every call; never cached or mutated.

    Attributes:
        mount_path: Local path the bucket is attached at
        bucket_name: Bucket to attach
        endpoint: S3-compatible endpoint URL
        credentials: Access key pair
    """
    mount_path: Path
    bucket_name: str
    endpoint: str
    credentials: BucketCredentials


@dataclass
class StorageConfig:
    """Bucket settings for the persistence feature.

    Storage sync is optional: when any credential is missing the feature is
    disabled rather than treated as an error.

    Attributes:
        access_key_id: R2 access key id
        secret_access_key: R2 secret access key
        account_id: Cloudflare account id (used to build the endpoint)
        bucket_name: Bucket holding the backup
        mount_path: Where the bucket is mounted inside the sandbox
    """
    access_key_id: Optional[str] = None
    secret_access_key: Optional[str] = field(default=None, repr=False)
    account_id: Optional[str] = None
    bucket_name: str = DEFAULT_BUCKET_NAME
    mount_path: Path = R2_MOUNT_PATH

    def __post_init__(self):
        """Ensure paths are Path objects and a blank bucket falls back to the default."""
        if isinstance(self.mount_path, str):
            self.mount_path = Path(self.mount_path)
        if not self.bucket_name:
            self.bucket_name = DEFAULT_BUCKET_NAME

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "StorageConfig":
        """Load settings from environment variables.

        Reads R2_ACCESS_KEY_ID, R2_SECRET_ACCESS_KEY, CF_ACCOUNT_ID and
        R2_BUCKET_NAME. Missing variables leave the field unset.

        Args:
            environ: Mapping to read from (defaults to os.environ)

        Returns:
            StorageConfig instance
        """
        env = os.environ if environ is None else environ
        return cls(
            access_key_id=env.get("R2_ACCESS_KEY_ID") or None,
            secret_access_key=env.get("R2_SECRET_ACCESS_KEY") or None,
            account_id=env.get("CF_ACCOUNT_ID") or None,
            bucket_name=env.get("R2_BUCKET_NAME") or DEFAULT_BUCKET_NAME,
        )

    @property
    def is_configured(self) -> bool:
        """True when all three credentials are present."""
        return bool(self.access_key_id and self.secret_access_key and self.account_id)

    @property
    def endpoint(self) -> str:
        """R2 endpoint URL for the configured account."""
        return f"https://{self.account_id}.r2.cloudflarestorage.com"

    @property
    def last_sync_path(self) -> Path:
        """Completion marker written by the last successful sync."""
        return self.mount_path / LAST_SYNC_MARKER

    def mount_target(self) -> MountTarget:
        """Build the MountTarget for the current settings.

        Raises:
            ValueError: If credentials are missing
        """
        if not self.is_configured:
            raise ValueError("R2 storage is not configured")
        return MountTarget(
            mount_path=self.mount_path,
            bucket_name=self.bucket_name,
            endpoint=self.endpoint,
            credentials=BucketCredentials(
                access_key_id=self.access_key_id,
                secret_access_key=self.secret_access_key,
            ),
        )
