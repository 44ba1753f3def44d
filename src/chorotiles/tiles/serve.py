"""Tile servers: one `versatiles serve` child process per opened tile file.

Each server gets an id, a port from a fixed range and a SpawnProgress that
owns the process. Tile requests are proxied to it with httpx. Stopping a
server aborts its progress, which terminates (and if needed kills) the child.
"""

import asyncio
import logging
import uuid
from dataclasses import dataclass
from pathlib import Path

import httpx

from ..convert.utils import validate_input_file
from ..core.constants import (
    DEFAULT_TILE_READY_TIMEOUT_S,
    TILE_HOST,
    TILE_PORT_MAX,
    TILE_PORT_MIN,
    TILE_READY_POLL_S,
)
from ..core.errors import AppError, ConversionError, NotFoundError
from ..progress.spawn import SpawnProgress
from ..tools.registry import get_tool

logger = logging.getLogger(__name__)


@dataclass
class TileServer:
    """A running tile server serving one source under /tiles/<id>/."""
    id: str
    port: int
    source: Path
    progress: SpawnProgress

    @property
    def base_url(self) -> str:
        return f"http://{TILE_HOST}:{self.port}"

    @property
    def index_url(self) -> str:
        return f"{self.base_url}/tiles/index.json"

    def tile_url(self, path: str) -> str:
        return f"{self.base_url}/tiles/{self.id}/{path.lstrip('/')}"


@dataclass
class TileResponse:
    status_code: int
    content: bytes
    content_type: str


class TileServerRegistry:
    """Starts, tracks, proxies to and stops tile servers."""

    def __init__(
        self,
        config: dict,
        transport: httpx.AsyncBaseTransport | None = None,
        poll_interval: float = TILE_READY_POLL_S,
    ):
        self.config = config
        self._transport = transport
        self._poll_interval = poll_interval
        self._servers: dict[str, TileServer] = {}
        self._next_port = TILE_PORT_MIN

    @property
    def servers(self) -> list[TileServer]:
        return list(self._servers.values())

    def get(self, server_id: str) -> TileServer:
        server = self._servers.get(server_id)
        if server is None:
            raise NotFoundError(f"Tile server {server_id} not found")
        return server

    async def start(self, source: Path) -> TileServer:
        """Launch a server for ``source`` and wait until it answers.

        Raises ConversionError if the process exits or does not become
        ready within ``[tiles] ready_timeout_s``.
        """
        source = Path(source)
        validate_input_file(source)

        server_id = uuid.uuid4().hex
        port = self._allocate_port()
        tool = get_tool("versatiles", self.config)
        progress = await tool.serve(source, port, server_id)

        server = TileServer(server_id, port, source, progress)
        self._servers[server_id] = server
        logger.info("Starting tile server %s on port %d for %s", server_id, port, source)
        try:
            await self._wait_ready(server)
        except BaseException:
            self._discard(server)
            raise
        logger.info("Tile server %s ready", server_id)
        return server

    async def stop(self, server_id: str) -> None:
        server = self.get(server_id)
        logger.info("Stopping tile server %s", server_id)
        self._discard(server)
        await server.progress.done()

    async def stop_all(self) -> None:
        for server_id in list(self._servers):
            await self.stop(server_id)

    async def fetch(self, server_id: str, path: str) -> TileResponse:
        """Proxy one request (tile, style, metadata) to a running server."""
        server = self.get(server_id)
        try:
            async with self._client() as client:
                response = await client.get(server.tile_url(path))
        except httpx.HTTPError as e:
            raise AppError(f"Tile server {server_id} unreachable", 502, cause=e) from e
        return TileResponse(
            status_code=response.status_code,
            content=response.content,
            content_type=response.headers.get("content-type", "application/octet-stream"),
        )

    def _allocate_port(self) -> int:
        used = {s.port for s in self._servers.values()}
        for _ in range(TILE_PORT_MAX - TILE_PORT_MIN + 1):
            port = self._next_port
            self._next_port = TILE_PORT_MIN if port >= TILE_PORT_MAX else port + 1
            if port not in used:
                return port
        raise AppError("No free port for another tile server", 503)

    def _client(self) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            transport=self._transport,
            timeout=httpx.Timeout(10.0, connect=2.0),
        )

    async def _wait_ready(self, server: TileServer) -> None:
        timeout = float(
            self.config.get("tiles", {}).get("ready_timeout_s", DEFAULT_TILE_READY_TIMEOUT_S)
        )
        loop = asyncio.get_running_loop()
        deadline = loop.time() + timeout
        async with self._client() as client:
            while True:
                if server.progress.completed:
                    raise ConversionError(
                        f"Tile server for {server.source.name} exited before it was ready",
                        server.progress.error,
                    )
                try:
                    response = await client.get(server.index_url)
                    if response.status_code < 500:
                        return
                except httpx.HTTPError as e:
                    logger.debug("Tile server %s not answering yet: %s", server.id, e)
                if loop.time() >= deadline:
                    raise ConversionError(
                        f"Tile server for {server.source.name} not ready after {timeout:g}s"
                    )
                await asyncio.sleep(self._poll_interval)

    def _discard(self, server: TileServer) -> None:
        self._servers.pop(server.id, None)
        if not server.progress.completed:
            server.progress.abort()
