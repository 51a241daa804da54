"""Docker CLI adapters — container runtime and image builder.

Both shell out to the ``docker`` binary.  Handles are container IDs wrapped
in ``ContainerHandle``.
"""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path

from pydantic import BaseModel, ConfigDict

from rollgate.errors import BuildError, RollgateError
from rollgate.models.artifacts import ArtifactRef

logger = logging.getLogger(__name__)

_MISSING_MARKERS = ("No such container", "No such image", "is not running")


class DockerError(RollgateError):
    """A docker CLI invocation failed."""


class ContainerHandle(BaseModel):
    """A running (or formerly running) container."""

    model_config = ConfigDict(frozen=True)

    container_id: str
    image: str

    def __str__(self) -> str:
        return f"{self.image}@{self.container_id[:12]}"


class DockerCli:
    """Thin wrapper over ``subprocess.run`` for docker commands.

    Parameters
    ----------
    binary:
        Path or name of the docker executable.
    timeout:
        Per-command timeout in seconds (``None`` for no limit).
    """

    def __init__(self, binary: str = "docker", *, timeout: float | None = 120.0) -> None:
        self.binary = binary
        self.timeout = timeout

    def run(self, *args: str, input_text: str | None = None) -> str:
        """Run ``docker <args>`` and return stripped stdout.  Raises ``DockerError``."""
        command = [self.binary, *args]
        logger.debug("Running %s", " ".join(command))
        try:
            completed = subprocess.run(
                command,
                input=input_text,
                capture_output=True,
                text=True,
                timeout=self.timeout,
                check=False,
            )
        except (subprocess.SubprocessError, OSError) as exc:
            raise DockerError(f"{' '.join(command[:2])} failed: {exc}") from exc

        if completed.returncode != 0:
            raise DockerError(
                f"{' '.join(command[:2])} exited {completed.returncode}: "
                f"{completed.stderr.strip()}"
            )
        return completed.stdout.strip()


class DockerCliRuntime:
    """``ContainerRuntime`` backed by the docker CLI."""

    def __init__(self, cli: DockerCli | None = None) -> None:
        self._cli = cli or DockerCli()

    def start(
        self, image: str, ports: dict[int, int], shm_size: str | None = None
    ) -> ContainerHandle:
        """``docker run -d --rm`` with host->container port mappings."""
        args = ["run", "-d", "--rm"]
        for host_port, container_port in ports.items():
            args += ["-p", f"{host_port}:{container_port}"]
        if shm_size:
            args += ["--shm-size", shm_size]
        args.append(image)
        container_id = self._cli.run(*args)
        return ContainerHandle(container_id=container_id, image=image)

    def stop(self, handle: ContainerHandle) -> None:
        """``docker stop``.  An already stopped/removed container is fine."""
        try:
            self._cli.run("stop", handle.container_id)
        except DockerError as exc:
            if _is_missing(exc):
                logger.debug("Container %s already gone", handle)
                return
            raise

    def remove_image(self, image_uri: str) -> None:
        """``docker rmi``.  An absent image is fine."""
        try:
            self._cli.run("rmi", image_uri)
        except DockerError as exc:
            if _is_missing(exc):
                logger.debug("Image %s already removed", image_uri)
                return
            raise


class DockerImageBuilder:
    """Builds an image for an ``ArtifactRef`` from a local build context."""

    def __init__(self, cli: DockerCli | None = None) -> None:
        self._cli = cli or DockerCli(timeout=None)

    def build(
        self,
        context: Path,
        artifact: ArtifactRef,
        *,
        dockerfile: Path | None = None,
    ) -> ArtifactRef:
        args = ["build", "-t", artifact.image_uri]
        if dockerfile is not None:
            args += ["-f", str(dockerfile)]
        args.append(str(context))
        try:
            self._cli.run(*args)
        except DockerError as exc:
            raise BuildError(f"docker build of {artifact} failed: {exc}") from exc
        logger.info("Built %s", artifact)
        return artifact


def _is_missing(exc: DockerError) -> bool:
    return any(marker in str(exc) for marker in _MISSING_MARKERS)
