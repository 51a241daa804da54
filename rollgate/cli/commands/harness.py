"""``rollgate harness -- CMD...`` — run a command against an ephemeral dependency.

Starts the configured dependency container (a Selenium standalone browser
by default), waits for its health endpoint, runs CMD with
``ROLLGATE_HARNESS_ENDPOINT`` set to the dependency URL, and always stops
the container.

Exit codes: CMD's own exit code, or 3 if the dependency never became ready.
"""

from __future__ import annotations

import os
import subprocess

import typer
from rich.console import Console

from rollgate.clients.docker import DockerCliRuntime
from rollgate.clients.http_probe import RequestsProbeTransport
from rollgate.config import RollgateSettings
from rollgate.core.harness import EphemeralHarness, ReadinessProbe
from rollgate.errors import HarnessError

console = Console()

NOT_READY_EXIT_CODE = 3


def run_command(command: list[str], endpoint: str) -> int:
    """Workload: run *command* with the endpoint exported.  Raises on non-zero exit."""
    env = dict(os.environ, ROLLGATE_HARNESS_ENDPOINT=endpoint)
    subprocess.run(command, env=env, check=True)
    return 0


def harness_cmd(
    command: list[str] = typer.Argument(..., help="Command to run once the dependency is ready."),
    image: str = typer.Option(None, "--image", help="Dependency image (overrides settings)."),
    ready_timeout: float = typer.Option(
        None, "--ready-timeout", help="Seconds to wait for readiness (overrides settings)."
    ),
) -> None:
    """Run CMD against a freshly started, health-checked dependency."""
    settings = RollgateSettings()
    runtime = DockerCliRuntime()
    probe = ReadinessProbe(
        settings.harness_endpoint,
        settings.harness_health_path,
        RequestsProbeTransport(),
        interval=settings.harness_probe_interval_seconds,
    )

    try:
        EphemeralHarness(runtime).run_container(
            settings.harness_image if image is None else image,
            {settings.harness_port: settings.harness_port},
            settings.harness_shm_size,
            probe,
            lambda endpoint: run_command(command, endpoint),
            settings.harness_ready_timeout_seconds if ready_timeout is None else ready_timeout,
        )
    except HarnessError as exc:
        console.print(f"[bold red]Dependency unavailable ({exc.kind.value}):[/bold red] {exc}")
        raise typer.Exit(code=NOT_READY_EXIT_CODE)
    except subprocess.CalledProcessError as exc:
        console.print(f"[bold red]Workload failed:[/bold red] exit {exc.returncode}")
        raise typer.Exit(code=exc.returncode)

    console.print("[bold green]Workload passed.[/bold green]")
