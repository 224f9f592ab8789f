"""Main Typer application — imports and registers all CLI commands.

Entry point: ``carforge`` (configured via pyproject.toml console_scripts).
"""

from __future__ import annotations

import logging

import typer
from rich.logging import RichHandler

from carforge.cli.commands.inspect_cmd import inspect_cmd
from carforge.cli.commands.ls_cmd import ls_cmd
from carforge.cli.commands.pack import pack_cmd
from carforge.config import config

app = typer.Typer(
    name="carforge",
    help="carforge: content-addressed build artifacts as CAR archives.",
    no_args_is_help=True,
    rich_markup_mode="rich",
    add_completion=False,
)

# Register subcommands
app.command(name="pack", help="Pack a directory into a CAR file.")(pack_cmd)
app.command(name="inspect", help="Show the roots and blocks of a CAR file.")(inspect_cmd)
app.command(name="ls", help="List a directory inside a CAR file.")(ls_cmd)


@app.callback()
def _configure(
    log_level: str = typer.Option(
        None, "--log-level", help="Override CARFORGE_LOG_LEVEL for this run."
    ),
) -> None:
    level = (log_level or config.log_level).upper()
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
        force=True,
    )


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
