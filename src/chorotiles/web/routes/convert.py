"""Conversion routes: start a pipeline and stream its progress as ndjson."""

import asyncio
import logging
from pathlib import Path
from typing import AsyncIterator

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse, StreamingResponse

from ...convert.geometry import convert_polygons_to_versatiles
from ...progress.base import Progress
from ...progress.stream import progress_to_stream

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/convert", tags=["convert"])


@router.post("/polygons")
async def convert_polygons(request: Request):
    """Convert a GeoJSON file to .versatiles, streaming progress."""
    try:
        params = await request.json()
    except ValueError:
        return JSONResponse({"error": "Request body must be JSON"}, status_code=400)

    input_path = params.get("input") if isinstance(params, dict) else None
    output_path = params.get("output") if isinstance(params, dict) else None
    if not isinstance(input_path, str) or not isinstance(output_path, str):
        return JSONResponse({"error": "Invalid input or output parameter"}, status_code=400)

    progress = convert_polygons_to_versatiles(
        Path(input_path), Path(output_path), request.app.state.config,
    )
    return stream_until_disconnect(progress)


def stream_until_disconnect(progress: Progress) -> StreamingResponse:
    """ndjson response whose abort signal fires if the body is closed early.

    Starlette stops iterating the body when the client disconnects; the
    pipeline is aborted then so no tool keeps running orphaned.
    """
    signal = asyncio.Event()
    response = progress_to_stream(progress, signal)
    response.body_iterator = _abort_on_close(response.body_iterator, progress, signal)
    return response


async def _abort_on_close(
    lines: AsyncIterator[bytes], progress: Progress, signal: asyncio.Event,
) -> AsyncIterator[bytes]:
    try:
        async for line in lines:
            yield line
    finally:
        if not progress.completed:
            logger.info("Stream closed before completion; aborting")
            signal.set()
            progress.abort()
