"""Tests for web route endpoints using FastAPI TestClient."""

import json

import httpx
import pytest
from starlette.testclient import TestClient

from chorotiles.core.config import load_defaults
from chorotiles.core.errors import ProcessError
from chorotiles.progress.simple import SimpleProgress, StepEntry
from chorotiles.progress.spawn import SpawnProgress
from chorotiles.tiles.serve import TileServerRegistry
from chorotiles.tools.versatiles import VersatilesTool
from chorotiles.web.app import create_app
from chorotiles.web.routes.convert import stream_until_disconnect


@pytest.fixture
def client():
    return TestClient(create_app(load_defaults()))


@pytest.fixture
def fake_pipeline(monkeypatch):
    """Replace the real pipeline; returns the list of calls made to it."""
    calls = []

    def install(*steps):
        def convert(input_path, output_path, config=None):
            calls.append((input_path, output_path, config))
            return SimpleProgress(list(steps))

        monkeypatch.setattr("chorotiles.web.routes.convert.convert_polygons_to_versatiles", convert)
        return calls

    return install


def _events(response):
    return [json.loads(line) for line in response.text.splitlines() if line]


class TestConvertPolygons:
    def test_non_json_body(self, client):
        resp = client.post(
            "/api/convert/polygons", content=b"input=a",
            headers={"content-type": "application/x-www-form-urlencoded"},
        )
        assert resp.status_code == 400
        assert "error" in resp.json()

    @pytest.mark.parametrize("body", [
        {"input": "a.geojson"},
        {"output": "a.versatiles"},
        {"input": 1, "output": "a.versatiles"},
        ["a.geojson", "a.versatiles"],
    ])
    def test_invalid_parameters(self, client, body):
        resp = client.post("/api/convert/polygons", json=body)
        assert resp.status_code == 400
        assert resp.json() == {"error": "Invalid input or output parameter"}

    def test_wrong_output_extension(self, client, polygons_geojson, tmp_path):
        resp = client.post("/api/convert/polygons", json={
            "input": str(polygons_geojson), "output": str(tmp_path / "out.mbtiles"),
        })
        assert resp.status_code == 400
        assert "extension" in resp.json()["error"]

    def test_missing_input(self, client, tmp_path):
        resp = client.post("/api/convert/polygons", json={
            "input": str(tmp_path / "missing.geojson"),
            "output": str(tmp_path / "out.versatiles"),
        })
        assert resp.status_code == 500
        assert resp.json()["error"].startswith("Input file not found")

    def test_streams_progress_until_done(self, client, fake_pipeline, tmp_path):
        calls = fake_pipeline(
            StepEntry(lambda: None, "Reading regions.geojson"),
            StepEntry(lambda: None, "Building tiles"),
        )
        resp = client.post("/api/convert/polygons", json={
            "input": str(tmp_path / "regions.geojson"),
            "output": str(tmp_path / "regions.versatiles"),
        })

        assert resp.status_code == 200
        assert resp.headers["content-type"].startswith("application/x-ndjson")
        assert resp.headers["cache-control"] == "no-cache"
        events = _events(resp)
        assert events[-1] == {"event": "done"}
        assert {"event": "message", "message": "Building tiles"} in events
        assert {"event": "progress", "progress": 100} in events
        assert calls[0][1] == tmp_path / "regions.versatiles"

    def test_streams_error(self, client, fake_pipeline, tmp_path):
        def failing():
            raise ProcessError("tippecanoe", 1)

        fake_pipeline(StepEntry(failing, "Building tiles"))
        resp = client.post("/api/convert/polygons", json={
            "input": str(tmp_path / "regions.geojson"),
            "output": str(tmp_path / "regions.versatiles"),
        })

        assert resp.status_code == 200
        events = _events(resp)
        assert events[-1] == {"event": "error", "error": "tippecanoe failed with exit code 1"}
        assert [e["event"] for e in events].count("done") == 0


class TestDisconnect:
    @pytest.mark.asyncio
    async def test_closing_body_aborts_progress(self, make_manual):
        progress = make_manual()
        response = stream_until_disconnect(progress)

        body = response.body_iterator
        first = await body.__anext__()
        assert json.loads(first) == {"event": "progress", "progress": 0}
        await body.aclose()

        assert progress.aborted == 1
        assert progress.completed is True

    @pytest.mark.asyncio
    async def test_completed_stream_does_not_abort(self, make_manual):
        progress = make_manual()
        progress.set_complete()
        response = stream_until_disconnect(progress)
        lines = [line async for line in response.body_iterator]

        assert json.loads(lines[-1]) == {"event": "done"}
        assert progress.aborted == 0


class TestTools:
    def test_lists_tools(self, client, monkeypatch):
        monkeypatch.setattr(
            "chorotiles.core.config.shutil.which",
            lambda name: "/usr/bin/tippecanoe" if name == "tippecanoe" else None,
        )
        resp = client.get("/api/tools")
        assert resp.status_code == 200
        assert resp.json() == {"tippecanoe": "/usr/bin/tippecanoe", "versatiles": None}


class TestTileRoutes:
    @pytest.fixture
    def tiles_app(self, monkeypatch, tmp_path, make_process):
        """App whose tile servers are fake processes behind a mock transport."""

        async def serve(self, source, port, source_name):
            return SpawnProgress(
                make_process(exit_on_signal=True), f"versatiles serve {source_name}", self.parse_line,
            )

        def handler(request):
            if request.url.path == "/tiles/index.json":
                return httpx.Response(200, json=[])
            return httpx.Response(
                200, content=b"pbf", headers={"content-type": "application/x-protobuf"},
            )

        monkeypatch.setattr(VersatilesTool, "serve", serve)
        config = load_defaults()
        app = create_app(config)
        app.state.tiles = TileServerRegistry(
            config, transport=httpx.MockTransport(handler), poll_interval=0.01,
        )
        source = tmp_path / "regions.versatiles"
        source.write_bytes(b"versatiles")
        return app, source

    @pytest.mark.parametrize("body", [{}, {"input": ""}, {"input": 3}, ["a.versatiles"]])
    def test_init_invalid_input(self, client, body):
        resp = client.post("/api/tiles/init", json=body)
        assert resp.status_code == 400
        assert resp.json() == {"error": "Invalid input parameter"}

    def test_init_missing_file(self, client, tmp_path):
        resp = client.post("/api/tiles/init", json={"input": str(tmp_path / "nope.versatiles")})
        assert resp.status_code == 500
        assert resp.json()["error"].startswith("Input file not found")

    def test_init_load_stop(self, tiles_app):
        app, source = tiles_app
        with TestClient(app) as client:
            started = client.post("/api/tiles/init", json={"input": str(source)}).json()
            assert started["port"] == 51001

            tile = client.get("/api/tiles/load", params={"id": started["id"], "path": "0/0/0"})
            assert tile.status_code == 200
            assert tile.content == b"pbf"
            assert tile.headers["content-type"] == "application/x-protobuf"
            assert tile.headers["cache-control"] == "no-cache"

            stopped = client.post("/api/tiles/stop", json={"id": started["id"]})
            assert stopped.json() == {"success": True}
            assert app.state.tiles.servers == []

    def test_shutdown_stops_running_servers(self, tiles_app):
        app, source = tiles_app
        with TestClient(app) as client:
            client.post("/api/tiles/init", json={"input": str(source)})
            assert len(app.state.tiles.servers) == 1
        assert app.state.tiles.servers == []

    def test_load_unknown_id(self, client):
        resp = client.get("/api/tiles/load", params={"id": "nope", "path": "0/0/0"})
        assert resp.status_code == 404
        assert resp.json() == {"error": "Tile server nope not found"}

    def test_stop_invalid_id(self, client):
        resp = client.post("/api/tiles/stop", json={"id": 7})
        assert resp.status_code == 400
        assert resp.json() == {"error": "Invalid id parameter"}

    def test_stop_unknown_id(self, client):
        resp = client.post("/api/tiles/stop", json={"id": "nope"})
        assert resp.status_code == 404
        assert "not found" in resp.json()["error"]
