"""``rollgate deploy`` — build, push and roll out a service on ECS.

Runs one orchestrator pass: build + push the image (skipped with --tag),
register a task-definition revision, force a new deployment, wait for the
PRIMARY deployment, clean up the local image and write the report.

Exit codes: 0 succeeded, 1 unhealthy / rejected / never started,
130 cancelled.
"""

from __future__ import annotations

import signal
import subprocess
import threading
from pathlib import Path

import typer
from rich.console import Console

from rollgate.clients.docker import DockerCliRuntime, DockerImageBuilder
from rollgate.clients.ecr import EcrRegistryClient
from rollgate.clients.ecs import EcsSchedulerClient
from rollgate.config import RollgateSettings
from rollgate.core.orchestrator import DeploymentOrchestrator
from rollgate.core.rollout_controller import RolloutController
from rollgate.errors import BuildError
from rollgate.models.artifacts import ArtifactRef
from rollgate.models.run import Verdict
from rollgate.reporting import ConsoleSink, LocalFileSink, ReportDispatcher

console = Console()

_EXIT_CODES: dict[Verdict, int] = {
    Verdict.SUCCEEDED: 0,
    Verdict.UNHEALTHY: 1,
    Verdict.REJECTED: 1,
    Verdict.NEVER_STARTED: 1,
    Verdict.CANCELLED: 130,
}


def parse_env_pairs(pairs: list[str]) -> dict[str, str]:
    """Parse ``KEY=VALUE`` options, keeping their order."""
    env: dict[str, str] = {}
    for pair in pairs:
        name, sep, value = pair.partition("=")
        if not sep or not name:
            raise typer.BadParameter(f"expected KEY=VALUE, got {pair!r}")
        env[name] = value
    return env


def current_revision(context: Path) -> str:
    """``git rev-parse HEAD`` in *context*."""
    try:
        return subprocess.run(
            ["git", "rev-parse", "HEAD"],
            cwd=context,
            capture_output=True,
            text=True,
            check=True,
            timeout=10,
        ).stdout.strip()
    except (subprocess.SubprocessError, OSError) as exc:
        raise BuildError(f"cannot determine source revision: {exc}") from exc


def deploy_cmd(
    context: Path = typer.Option(
        Path("."), "--context", "-c", help="Docker build context."
    ),
    build_id: str = typer.Option(
        "local", "--build-id", "-b", envvar="BUILD_NUMBER", help="CI build identifier."
    ),
    revision: str = typer.Option(
        None, "--revision", "-r", help="Source revision (defaults to git HEAD)."
    ),
    tag: str = typer.Option(
        None, "--tag", "-t", help="Deploy an already pushed tag; skips the build."
    ),
    env: list[str] = typer.Option(
        [], "--env", "-e", help="Container environment variable, KEY=VALUE. Repeatable."
    ),
    timeout: float = typer.Option(
        None, "--timeout", help="Rollout timeout in seconds (overrides settings)."
    ),
) -> None:
    """Build, push and roll out the configured service."""
    settings = RollgateSettings()
    descriptor = settings.descriptor(parse_env_pairs(env))
    if timeout is not None:
        descriptor = descriptor.model_copy(update={"overall_timeout": timeout})

    scheduler = EcsSchedulerClient(region_name=settings.aws_region)
    runtime = DockerCliRuntime()
    dispatcher = ReportDispatcher(
        [LocalFileSink(settings.report_dir), ConsoleSink(console)]
    )
    orchestrator = DeploymentOrchestrator(
        RolloutController(scheduler, poll_interval=settings.rollout_poll_interval_seconds),
        runtime=runtime if tag is None else None,
        dispatcher=dispatcher,
    )

    def build_artifact() -> ArtifactRef:
        if tag is not None:
            return ArtifactRef(registry_uri=settings.registry_uri, tag=tag)
        artifact = ArtifactRef.from_build(
            settings.registry_uri, revision or current_revision(context), build_id
        )
        registry = EcrRegistryClient(region_name=settings.aws_region)
        registry.ensure_repository(artifact.repository_name)
        registry.login()
        DockerImageBuilder().build(context, artifact)
        registry.push(artifact.image_uri)
        return artifact

    cancel = threading.Event()
    previous = signal.signal(signal.SIGINT, lambda *_: cancel.set())
    try:
        report = orchestrator.execute(build_artifact, descriptor, cancel=cancel)
    finally:
        signal.signal(signal.SIGINT, previous)

    console.print(f"[dim]Report: {settings.report_dir}[/dim]")
    raise typer.Exit(code=_EXIT_CODES[report.verdict])
