"""chorotiles polygons2tiles: Convert polygon geometries into tiles."""

import asyncio
from pathlib import Path

import typer
from rich.console import Console

from ..convert.geometry import convert_polygons_to_versatiles
from ..core.config import load_config
from ..core.errors import AppError
from ..core.logs import configure_logging

console = Console()


def polygons2tiles(
    input_path: Path = typer.Argument(..., help="Input GeoJSON file"),
    output_path: Path = typer.Argument(..., help="Output .versatiles file"),
    config: Path = typer.Option(
        None,
        "--config", "-c",
        help="Config TOML merged over the defaults",
    ),
) -> None:
    """Convert polygon geometries into a .versatiles tile container."""
    cfg = load_config(config)
    configure_logging(cfg.get("logging", {}).get("level", "INFO"), console)

    try:
        error = asyncio.run(_convert(input_path.resolve(), output_path.resolve(), cfg))
    except AppError as e:
        console.print(f"[red]{e.message}[/red]")
        raise typer.Exit(1)

    if error is not None:
        console.print(f"[red]Conversion failed:[/red] {error}")
        raise typer.Exit(1)
    console.print(f"[green]Done:[/green] {output_path}")


async def _convert(input_path: Path, output_path: Path, config: dict) -> BaseException | None:
    progress = convert_polygons_to_versatiles(input_path, output_path, config)
    try:
        await progress.log(console)
    except asyncio.CancelledError:
        # Ctrl-C: stop the running tool before the loop shuts down
        progress.abort()
        raise
    return progress.error
