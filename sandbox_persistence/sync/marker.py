"""Timestamp marker reading and polling.

The marker is the last step of a compound command, so a marker holding a
valid timestamp is the only evidence that the whole chain completed.
"""

import asyncio
import logging
import re
from datetime import datetime
from pathlib import Path
from typing import Optional, Union

from ..backends.base import SandboxBackend, run_command
from .commands import read_file_command

logger = logging.getLogger(__name__)

TIMESTAMP_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}")

# Seconds to wait for one marker read over the remote filesystem
MARKER_READ_TIMEOUT = 10.0


def is_timestamp(value: Optional[str]) -> bool:
    """True for a non-empty value starting with YYYY-MM-DD."""
    return bool(value) and TIMESTAMP_PATTERN.match(value) is not None


def parse_timestamp(value: str) -> Optional[datetime]:
    """Parse an ISO-8601 marker value, or None if it is not one."""
    try:
        return datetime.fromisoformat(value.strip())
    except ValueError:
        return None


async def read_marker(
    sandbox: SandboxBackend,
    path: Union[str, Path],
    timeout: float = MARKER_READ_TIMEOUT,
) -> Optional[str]:
    """Read a marker file once.

    Returns:
        The trimmed timestamp, or None if the file is missing, empty or not
        a timestamp

    Raises:
        Exception: Whatever the backend raises; callers treat it as "not yet"
    """
    result = await run_command(sandbox, read_file_command(path), timeout)
    value = result.stdout.strip()
    return value if is_timestamp(value) else None


async def poll_marker(
    sandbox: SandboxBackend,
    path: Union[str, Path],
    poll_interval: float,
    max_polls: int,
    expected: Optional[str] = None,
) -> Optional[str]:
    """Poll a marker file until it holds a timestamp.

    Each attempt sleeps ``poll_interval`` seconds first, then reads. Read
    errors count as "not yet".

    Args:
        sandbox: Backend to read through
        path: Marker file path
        poll_interval: Seconds between attempts
        max_polls: Maximum number of reads
        expected: If set, only this exact value counts as done

    Returns:
        The marker value, or None once the attempts are exhausted
    """
    for attempt in range(1, max_polls + 1):
        await asyncio.sleep(poll_interval)
        try:
            value = await read_marker(sandbox, path)
        except Exception as e:
            logger.debug(f"Marker read {attempt}/{max_polls} failed: {e}")
            continue
        if value and (expected is None or value == expected):
            logger.debug(f"Marker {path} found on attempt {attempt}: {value}")
            return value
    return None
