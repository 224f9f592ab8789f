"""``carforge ls CAR_FILE [PATH]`` — list a directory inside a CAR file."""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from carforge.core.block_store import MemoryBlockStore
from carforge.core.car import load_car
from carforge.core.codecs import default_registry
from carforge.core.errors import CarforgeError
from carforge.core.resolver import PathResolver

console = Console()


def ls_cmd(
    car_file: Path = typer.Argument(
        ...,
        help="CAR v1 file to read.",
    ),
    path: str = typer.Argument(
        "/",
        help="Directory path below the archive's first root.",
    ),
) -> None:
    """List the entries of PATH below the first root of CAR_FILE."""
    if not car_file.exists():
        console.print(f"[bold red]CAR file not found:[/bold red] {car_file}")
        raise typer.Exit(code=1)

    store = MemoryBlockStore()
    try:
        roots = load_car(car_file.read_bytes(), store)
        if not roots:
            console.print("[bold red]CAR file has no roots.[/bold red]")
            raise typer.Exit(code=1)
        entries = PathResolver(store, default_registry()).ls(roots[0], path)
    except CarforgeError as exc:
        console.print(f"[bold red]ls failed:[/bold red] {exc}")
        raise typer.Exit(code=1)

    if not entries:
        console.print("[dim]Empty directory.[/dim]")
        return

    table = Table(title=f"/{path.strip('/')}")
    table.add_column("Name", style="cyan", no_wrap=True)
    table.add_column("Kind")
    table.add_column("Size", justify="right")
    table.add_column("CID", style="dim", overflow="fold")
    for entry in entries:
        table.add_row(entry.name, entry.kind.value, str(entry.size), str(entry.cid))
    console.print(table)
