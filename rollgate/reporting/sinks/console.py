"""Rich console sink — prints a deployment report panel.

Color scheme
------------
- green   : succeeded
- red     : rejected / never started
- yellow  : unhealthy (failed or timed out)
- magenta : cancelled
"""

from __future__ import annotations

from rich.console import Console, Group
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from rollgate.models.run import DeploymentReport, Verdict

_VERDICT_STYLES: dict[Verdict, str] = {
    Verdict.SUCCEEDED: "bold green",
    Verdict.UNHEALTHY: "bold yellow",
    Verdict.REJECTED: "bold red",
    Verdict.NEVER_STARTED: "bold red",
    Verdict.CANCELLED: "bold magenta",
}

_VERDICT_LABELS: dict[Verdict, str] = {
    Verdict.SUCCEEDED: "Deployment succeeded",
    Verdict.UNHEALTHY: "Deployment ran but did not reach healthy",
    Verdict.REJECTED: "Deployment rejected",
    Verdict.NEVER_STARTED: "Deployment never started",
    Verdict.CANCELLED: "Deployment cancelled",
}


class ConsoleSink:
    """Renders reports with Rich.

    Parameters
    ----------
    console:
        Rich Console instance.  A new one is created if not provided.
    """

    def __init__(self, console: Console | None = None) -> None:
        self.console = console or Console()

    @property
    def sink_name(self) -> str:
        return "console"

    def render(self, report: DeploymentReport) -> Panel:
        style = _VERDICT_STYLES[report.verdict]

        table = Table(show_header=True, header_style="bold", expand=True)
        table.add_column("From", style="dim")
        table.add_column("To")
        table.add_column("At (UTC)", style="dim")
        table.add_column("Note")
        for t in report.transitions:
            table.add_row(
                t.from_state.value,
                t.to_state.value,
                t.timestamp_utc.strftime("%H:%M:%S"),
                t.note,
            )

        lines = [
            f"[bold]Run:[/bold] {report.run_id}",
            f"[bold]Target:[/bold] {report.cluster}/{report.service}",
            f"[bold]Image:[/bold] {report.artifact or '-'}",
        ]
        if report.outcome is not None:
            outcome = report.outcome
            lines.append(
                f"[bold]Rollout:[/bold] {outcome.state.value} "
                f"({outcome.polls} polls, {outcome.elapsed:.1f}s)"
            )
            if outcome.revision is not None:
                lines.append(f"[bold]Revision:[/bold] {outcome.revision.revision_arn}")
        if report.error_message:
            lines.append(f"[red][bold]Error:[/bold] {report.error_message}[/red]")
        for err in report.cleanup_errors:
            lines.append(f"[yellow][bold]Cleanup:[/bold] {err}[/yellow]")

        return Panel(
            Group(table, Text(""), Text.from_markup("\n".join(lines))),
            title=f"[{style}]{_VERDICT_LABELS[report.verdict]}[/{style}]",
            border_style=style.replace("bold ", ""),
            padding=(1, 2),
        )

    def accept(self, report: DeploymentReport) -> None:
        self.console.print(self.render(report))
