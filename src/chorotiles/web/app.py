"""FastAPI app for chorotiles: ndjson conversion streams and tile server control."""

import logging
import os
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from .routes import convert, tiles
from ..core.config import auto_detect_tools, load_config
from ..core.constants import CONFIG_ENV
from ..core.errors import AppError, log_error
from ..tiles.serve import TileServerRegistry

logger = logging.getLogger(__name__)


def create_app(config: dict | None = None) -> FastAPI:
    """Build the app; config defaults to $CHOROTILES_CONFIG merged over defaults."""
    if config is None:
        config_path = os.environ.get(CONFIG_ENV)
        config = load_config(Path(config_path) if config_path else None)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        # Don't leave tile server processes behind
        await app.state.tiles.stop_all()

    app = FastAPI(title="chorotiles", docs_url=None, redoc_url=None, lifespan=lifespan)
    app.state.config = config
    app.state.tiles = TileServerRegistry(config)
    app.include_router(convert.router)
    app.include_router(tiles.router)

    @app.exception_handler(AppError)
    async def app_error(request: Request, exc: AppError):
        log_error(exc, request.url.path)
        content = {"error": exc.message}
        if exc.cause is not None:
            content["cause"] = str(exc.cause)
        return JSONResponse(status_code=exc.status_code, content=content)

    @app.get("/api/tools")
    async def tools(request: Request):
        """Which external tools are available."""
        return auto_detect_tools(request.app.state.config)

    return app


app = create_app()
