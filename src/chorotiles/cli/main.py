"""chorotiles CLI: Typer application with subcommands."""

import typer

from .convert_cmd import polygons2tiles
from .tools_cmd import tools
from .web_cmd import web

app = typer.Typer(
    name="chorotiles",
    help="Convert polygon geometries into vector tiles with live progress.",
    no_args_is_help=True,
)

app.command(name="polygons2tiles")(polygons2tiles)
app.command()(tools)
app.command()(web)


if __name__ == "__main__":
    app()
