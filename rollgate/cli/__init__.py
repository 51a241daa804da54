"""rollgate CLI — Typer-based command-line interface.

Provides the ``rollgate`` command with subcommands for deploying a service,
running work against an ephemeral dependency, rendering task definitions,
and deriving image tags.

All output uses Rich for formatted terminal display.
"""
