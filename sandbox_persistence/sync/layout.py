"""Config layout discovery.

A layout is identified by its marker file (``openclaw.json`` or
``clawdbot.json``). The same probes answer two questions: which local config
directory to back up, and which directory a backup in the bucket belongs in.
"""

import logging
from pathlib import Path
from typing import List, Optional, Union

from ..backends.base import SandboxBackend, run_command
from ..config import ConfigLayout
from .commands import EXISTS_SENTINEL, file_exists_command

logger = logging.getLogger(__name__)

# Seconds to wait for a layout probe
CHECK_TIMEOUT = 5.0

# Probe order decides which layout wins when both exist
LAYOUT_PROBE_ORDER = (ConfigLayout.PRIMARY, ConfigLayout.LEGACY)


class LayoutProbeError(RuntimeError):
    """Raised when every layout probe failed, so no layout was ruled in or out."""


def layout_marker(layout: ConfigLayout, base_dir: Optional[Union[str, Path]] = None) -> Path:
    """Marker file for ``layout``, in its own config dir or in ``base_dir``."""
    if base_dir is None:
        return layout.marker_file
    return Path(base_dir) / layout.marker_file.name


async def probe_layout(
    sandbox: SandboxBackend,
    base_dir: Optional[Union[str, Path]] = None,
) -> ConfigLayout:
    """Find the first layout whose marker file exists.

    A probe that raises counts as "not found" for that layout and the next
    one is tried.

    Args:
        sandbox: Backend to probe through
        base_dir: Look for the marker file names here instead of in each
            layout's own config directory

    Returns:
        The matching ConfigLayout, or NOT_FOUND

    Raises:
        LayoutProbeError: If every probe raised
    """
    errors: List[Exception] = []
    for layout in LAYOUT_PROBE_ORDER:
        marker = layout_marker(layout, base_dir)
        try:
            result = await run_command(sandbox, file_exists_command(marker), CHECK_TIMEOUT)
        except Exception as e:
            logger.debug(f"Probe for {marker} failed: {e}")
            errors.append(e)
            continue
        if EXISTS_SENTINEL in result.stdout:
            logger.debug(f"Config layout: {layout.value} ({marker})")
            return layout

    if len(errors) == len(LAYOUT_PROBE_ORDER):
        raise LayoutProbeError(str(errors[-1])) from errors[-1]
    return ConfigLayout.NOT_FOUND
