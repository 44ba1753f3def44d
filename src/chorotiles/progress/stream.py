"""Expose a Progress as an ndjson HTTP response.

One JSON object per line; ``progress``/``message`` lines repeat until
exactly one ``done`` or ``error`` line ends the stream. Once the abort signal
fires (client went away) nothing more is written.
"""

import asyncio
import logging
from typing import AsyncIterator

from fastapi.responses import StreamingResponse

from ..core.constants import NDJSON_MEDIA_TYPE
from ..core.events import ProgressStatus
from .base import Progress

logger = logging.getLogger(__name__)


def progress_to_stream(progress: Progress, signal: asyncio.Event) -> StreamingResponse:
    """Build a StreamingResponse that relays ``progress`` until it completes."""
    return StreamingResponse(
        iter_progress_lines(progress, signal),
        media_type=NDJSON_MEDIA_TYPE,
        headers={"Cache-Control": "no-cache"},
    )


async def iter_progress_lines(progress: Progress, signal: asyncio.Event) -> AsyncIterator[bytes]:
    """Yield encoded ndjson lines for ``progress``; subscribes on first iteration."""
    statuses: asyncio.Queue[ProgressStatus | None] = asyncio.Queue()
    finished = False
    closed = False

    def send(status: ProgressStatus) -> None:
        if finished:
            return
        statuses.put_nowait(status)

    def close() -> None:
        nonlocal finished, closed
        finished = True
        # abort listener and completion can race; close only once
        if not closed:
            closed = True
            statuses.put_nowait(None)

    async def watch_abort() -> None:
        await signal.wait()
        logger.debug("Stream consumer went away; dropping further events")
        close()

    async def watch_completion() -> None:
        try:
            await progress.done()
        except Exception as e:
            send(ProgressStatus.of_error(str(e)))
        else:
            if progress.error is not None:
                send(ProgressStatus.of_error(str(progress.error)))
            else:
                send(ProgressStatus.of_done())
        close()

    progress.on_progress(lambda p: send(ProgressStatus.of_progress(p)))
    progress.on_message(lambda m, _is_error: send(ProgressStatus.of_message(m)))

    watchers = [
        asyncio.create_task(watch_abort()),
        asyncio.create_task(watch_completion()),
    ]
    try:
        while True:
            status = await statuses.get()
            if status is None or signal.is_set():
                break
            yield status.to_line()
            if status.is_terminal:
                break
    finally:
        finished = True
        for task in watchers:
            task.cancel()
