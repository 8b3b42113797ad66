"""Docker backend: runs sandbox commands inside a running container.

Each command is wrapped in ``docker exec <container> sh -c '<command>'``.
Mount credentials are forwarded with ``-e NAME`` so their values come from the
docker client's environment and never appear on the command line.
"""

import shutil
from typing import List, Sequence

from .local import LocalSandbox


class DockerSandbox(LocalSandbox):
    """Backend for a container reachable through the docker CLI.

    Example:
        sandbox = DockerSandbox("moltbot")
        proc = await sandbox.start_process("ls /root/.openclaw")
    """

    def __init__(self, container: str, docker: str = "docker", shell: str = "sh"):
        """Initialize docker backend.

        Args:
            container: Container name or id
            docker: docker CLI executable
            shell: Shell inside the container
        """
        super().__init__(shell=shell)
        if not container:
            raise ValueError("container is required for the docker backend")
        self.container = container
        self.docker = docker

    def is_available(self) -> bool:
        """Check that the docker CLI is installed."""
        return shutil.which(self.docker) is not None

    def get_availability_message(self) -> str:
        if self.is_available():
            return f"Backend is AVAILABLE (container: {self.container})"
        return f"docker CLI '{self.docker}' not found"

    def _build_argv(self, command: str, env_names: Sequence[str] = ()) -> List[str]:
        argv = [self.docker, "exec"]
        for name in env_names:
            argv.extend(["-e", name])
        argv.extend([self.container, self.shell, "-c", command])
        return argv
