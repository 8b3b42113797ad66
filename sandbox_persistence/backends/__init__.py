"""Sandbox execution backends.

Each backend implements the SandboxBackend interface: start a shell command
inside the sandbox, and attach a bucket at a local path.

Available backends:
    - LocalSandbox: the current host is the sandbox (asyncio subprocess + s3fs)
    - DockerSandbox: a running container reached through ``docker exec``

Usage:
    from sandbox_persistence.backends import get_backend

    sandbox = get_backend("docker", container="moltbot")
    proc = await sandbox.start_process("echo hello")
"""

from typing import Type

from .base import (
    CommandExecution,
    ProcessHandle,
    SandboxBackend,
    SandboxError,
    run_command,
)


def get_backend(name: str = "local", **kwargs) -> SandboxBackend:
    """Get a backend instance by name.

    Args:
        name: "local" or "docker"
        **kwargs: Passed to the backend constructor (e.g. ``container``)

    Returns:
        SandboxBackend instance

    Raises:
        NotImplementedError: If the backend name is unknown
    """
    return get_backend_class(name)(**kwargs)


def get_backend_class(name: str) -> Type[SandboxBackend]:
    """Get the backend class for a name.

    Raises:
        NotImplementedError: If the backend name is unknown
    """
    if name == "local":
        from .local import LocalSandbox
        return LocalSandbox
    elif name == "docker":
        from .docker import DockerSandbox
        return DockerSandbox
    else:
        raise NotImplementedError(
            f"Backend '{name}' is not supported. "
            f"Supported backends: local, docker"
        )


__all__ = [
    "CommandExecution",
    "ProcessHandle",
    "SandboxBackend",
    "SandboxError",
    "run_command",
    "get_backend",
    "get_backend_class",
]
