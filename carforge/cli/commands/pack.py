"""``carforge pack SOURCE_DIR`` — build a DAG from a directory and write a CAR.

Every regular file below SOURCE_DIR becomes a raw block at its relative
path. Files are read lazily, one at a time, as the importer reaches them.
"""

from __future__ import annotations

from pathlib import Path

import typer
from rich.console import Console
from rich.panel import Panel

from carforge.config import config
from carforge.core.errors import CarforgeError
from carforge.core.service import DagService
from carforge.models.dag import ImportCandidate

console = Console()


def collect_candidates(source_dir: Path) -> list[ImportCandidate]:
    """Import candidates for every file below ``source_dir``, by relative path."""
    files = sorted(
        (p for p in source_dir.rglob("*") if p.is_file()),
        key=lambda p: p.relative_to(source_dir).as_posix(),
    )
    return [
        ImportCandidate(path=p.relative_to(source_dir).as_posix(), content=p.read_bytes)
        for p in files
    ]


def pack_cmd(
    source_dir: Path = typer.Argument(
        ...,
        help="Directory whose files are packed.",
    ),
    output: Path = typer.Option(
        None,
        "--output",
        "-o",
        help="Where to write the CAR file (default: CARFORGE_OUTPUT_PATH).",
    ),
    path: str = typer.Option(
        "/",
        "--path",
        "-p",
        help="Archive only the sub-tree at this path.",
    ),
    sort: bool = typer.Option(
        config.sort_entries,
        "--sort/--no-sort",
        help="Sort directory entries by name instead of keeping walk order.",
    ),
) -> None:
    """Pack SOURCE_DIR into a CAR v1 archive and print its root CID."""
    if not source_dir.is_dir():
        console.print(f"[bold red]Not a directory:[/bold red] {source_dir}")
        raise typer.Exit(code=1)

    out_path = output or config.output_path
    service = DagService(config=config.model_copy(update={"sort_entries": sort}))
    candidates = collect_candidates(source_dir)

    try:
        root = service.build(candidates)
        target = service.resolve(path)
        data = service.build_archive([target])
    except CarforgeError as exc:
        console.print(f"[bold red]Pack failed:[/bold red] {exc}")
        raise typer.Exit(code=1)

    out_path.write_bytes(data)
    snapshot = service.snapshot
    console.print(
        Panel(
            "\n".join([
                f"[bold]Root:[/bold]    {root}",
                f"[bold]Archive:[/bold] {target} ({path})",
                f"[bold]Files:[/bold]   {len(candidates)}",
                f"[bold]Blocks:[/bold]  {len(snapshot.store)}",
                f"[bold]Written:[/bold] {out_path} ({len(data)} bytes)",
            ]),
            title="[bold]CAR packed[/bold]",
            border_style="green",
            padding=(1, 2),
        )
    )
