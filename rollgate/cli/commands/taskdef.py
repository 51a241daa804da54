"""``rollgate taskdef`` and ``rollgate tag`` — inspect what a deploy would send."""

from __future__ import annotations

import typer
from rich.console import Console

from rollgate.cli.commands.deploy import parse_env_pairs
from rollgate.config import RollgateSettings
from rollgate.models.artifacts import ArtifactRef, derive_tag

console = Console()


def taskdef_cmd(
    tag: str = typer.Argument(..., help="Image tag to reference."),
    env: list[str] = typer.Option(
        [], "--env", "-e", help="Container environment variable, KEY=VALUE. Repeatable."
    ),
) -> None:
    """Print the task-definition document for TAG as JSON."""
    settings = RollgateSettings()
    artifact = ArtifactRef(registry_uri=settings.registry_uri, tag=tag)
    spec = settings.descriptor(parse_env_pairs(env)).to_task_definition(artifact)
    typer.echo(spec.render_json())


def tag_cmd(
    revision: str = typer.Argument(..., help="Source revision identifier."),
    build_id: str = typer.Argument(..., help="CI build identifier."),
) -> None:
    """Print the image tag derived from REVISION and BUILD_ID."""
    try:
        typer.echo(derive_tag(revision, build_id))
    except ValueError as exc:
        console.print(f"[bold red]{exc}[/bold red]")
        raise typer.Exit(code=1)
