"""``carforge inspect CAR_FILE`` — show a CAR file's roots and blocks."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from carforge.core.car import read_car
from carforge.core.errors import CarforgeError

console = Console()


def inspect_cmd(
    car_file: Path = typer.Argument(
        ...,
        help="CAR v1 file to inspect.",
    ),
    verify_blocks: bool = typer.Option(
        True,
        "--verify/--no-verify",
        help="Re-hash every block against its CID.",
    ),
) -> None:
    """Print the roots of CAR_FILE and a table of its blocks."""
    if not car_file.exists():
        console.print(f"[bold red]CAR file not found:[/bold red] {car_file}")
        raise typer.Exit(code=1)

    try:
        archive = read_car(car_file.read_bytes(), verify_blocks=verify_blocks)
    except CarforgeError as exc:
        console.print(f"[bold red]Invalid CAR:[/bold red] {exc}")
        raise typer.Exit(code=1)

    for root in archive.roots:
        console.print(f"[bold]Root:[/bold] {root}")

    table = Table(title=f"Blocks ({len(archive.blocks)})")
    table.add_column("CID", style="cyan", overflow="fold")
    table.add_column("Codec", style="green", no_wrap=True)
    table.add_column("Size", justify="right")
    for block in archive.blocks:
        table.add_row(str(block.cid), block.codec, str(len(block.data)))
    console.print(table)
