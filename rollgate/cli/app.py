"""Main Typer application — imports and registers all CLI commands.

Entry point: ``rollgate`` (configured via pyproject.toml scripts).
"""

from __future__ import annotations

import logging

import typer
from rich.logging import RichHandler

from rollgate.cli.commands.deploy import deploy_cmd
from rollgate.cli.commands.harness import harness_cmd
from rollgate.cli.commands.taskdef import tag_cmd, taskdef_cmd
from rollgate.config import RollgateSettings

app = typer.Typer(
    name="rollgate",
    help="rollgate: health-gated ECS rollouts and ephemeral test dependencies.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)


@app.callback()
def main_callback(
    log_level: str = typer.Option(
        None, "--log-level", help="Log level (overrides ROLLGATE_LOG_LEVEL)."
    ),
) -> None:
    """Configure logging for every command."""
    level = (log_level or RollgateSettings().log_level).upper()
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
        force=True,
    )


app.command(name="deploy", help="Build, push and roll out the service.")(deploy_cmd)
app.command(
    name="harness",
    help="Run a command against an ephemeral, health-checked dependency.",
)(harness_cmd)
app.command(name="taskdef", help="Print the task-definition document for a tag.")(taskdef_cmd)
app.command(name="tag", help="Derive an image tag from a revision and build ID.")(tag_cmd)


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
