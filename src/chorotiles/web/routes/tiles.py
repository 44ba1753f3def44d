"""Tile server routes: start a server, proxy its tiles, stop it."""

from pathlib import Path

from fastapi import APIRouter, Query, Request
from fastapi.responses import JSONResponse, Response

router = APIRouter(prefix="/api/tiles", tags=["tiles"])


async def _string_param(request: Request, key: str) -> str | None:
    try:
        params = await request.json()
    except ValueError:
        return None
    value = params.get(key) if isinstance(params, dict) else None
    return value if isinstance(value, str) and value else None


@router.post("/init")
async def init_tiles(request: Request):
    """Start a tile server for a .versatiles or .mbtiles file."""
    source = await _string_param(request, "input")
    if source is None:
        return JSONResponse({"error": "Invalid input parameter"}, status_code=400)
    server = await request.app.state.tiles.start(Path(source))
    return {"id": server.id, "port": server.port}


@router.get("/load")
async def load_tile(
    request: Request,
    server_id: str = Query(..., alias="id"),
    path: str = Query(...),
):
    """Proxy one tile (or index/metadata) request to a running server."""
    tile = await request.app.state.tiles.fetch(server_id, path)
    return Response(
        content=tile.content,
        status_code=tile.status_code,
        media_type=tile.content_type,
        headers={"Cache-Control": "no-cache"},
    )


@router.post("/stop")
async def stop_tiles(request: Request):
    server_id = await _string_param(request, "id")
    if server_id is None:
        return JSONResponse({"error": "Invalid id parameter"}, status_code=400)
    await request.app.state.tiles.stop(server_id)
    return {"success": True}
