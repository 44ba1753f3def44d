"""chorotiles tools: Show which external tools are available."""

from pathlib import Path

import typer
from rich.console import Console
from rich.table import Table

from ..core.config import auto_detect_tools, load_config, save_config
from ..tools.registry import get_tool, list_tools

console = Console()


def tools(
    config: Path = typer.Option(
        None,
        "--config", "-c",
        help="Config TOML merged over the defaults",
    ),
    save: bool = typer.Option(
        False,
        "--save",
        help="Write detected tool paths into the --config file",
    ),
) -> None:
    """List the external tools and whether they were found."""
    if save and config is None:
        console.print("[red]--save needs a --config file to write to[/red]")
        raise typer.Exit(2)

    cfg = load_config(config)

    if save:
        found = {name: path for name, path in auto_detect_tools(cfg).items() if path}
        cfg.setdefault("tools", {}).update(found)
        save_config(config, cfg)
        console.print(f"Saved {len(found)} tool path(s) to {config}")

    table = Table(show_header=True, header_style="bold")
    table.add_column("Tool", style="cyan")
    table.add_column("Status")
    table.add_column("Details")

    missing = 0
    for name in list_tools():
        ok, msg = get_tool(name, cfg).validate_environment()
        if not ok:
            missing += 1
        table.add_row(name, "[green]found[/green]" if ok else "[red]missing[/red]", msg)

    console.print(table)
    if missing:
        raise typer.Exit(1)
