"""chorotiles web: Start the HTTP server."""

import os
from pathlib import Path

import typer
from rich.console import Console

from ..core.config import load_config
from ..core.logs import configure_logging
from ..core.constants import CONFIG_ENV

console = Console()


def web(
    port: int = typer.Option(
        None,
        "--port",
        help="HTTP port (default from [web] config)",
    ),
    host: str = typer.Option(
        None,
        "--host",
        help="Host to bind to (default from [web] config)",
    ),
    config: Path = typer.Option(
        None,
        "--config", "-c",
        help="Config TOML merged over the defaults",
    ),
) -> None:
    """Start the chorotiles API server (FastAPI + uvicorn)."""
    import uvicorn

    cfg = load_config(config)
    web_cfg = cfg.get("web", {})
    host = host or web_cfg.get("host", "127.0.0.1")
    port = port or int(web_cfg.get("port", 8000))
    if config:
        # create_app() in the server process reads the path from the environment
        os.environ[CONFIG_ENV] = str(config.resolve())

    configure_logging(cfg.get("logging", {}).get("level", "INFO"), console)

    console.print("[bold]Starting chorotiles server[/bold]")
    console.print(f"URL: http://{host}:{port}")
    console.print()

    uvicorn.run(
        "chorotiles.web.app:app",
        host=host,
        port=port,
        reload=False,
    )
