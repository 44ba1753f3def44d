"""Shared test fixtures."""

import asyncio
import json

import pytest

from chorotiles.progress.base import Progress


class FakeProcess:
    """Stands in for asyncio.subprocess.Process.

    Output is pushed with emit_stdout/emit_stderr; exit() closes both pipes
    and releases wait(). Signals sent are recorded instead of delivered;
    with ``exit_on_signal`` the process also exits when signalled.
    Must be created inside a running loop.
    """

    def __init__(self, exit_on_signal: bool = False):
        self.exit_on_signal = exit_on_signal
        self.pid = 4242
        self.stdout = asyncio.StreamReader()
        self.stderr = asyncio.StreamReader()
        self.returncode = None
        self.signals: list[str] = []
        self._exited = asyncio.Event()

    def emit_stdout(self, text: str) -> None:
        self.stdout.feed_data(text.encode("utf-8"))

    def emit_stderr(self, text: str) -> None:
        self.stderr.feed_data(text.encode("utf-8"))

    def exit(self, returncode: int) -> None:
        self.returncode = returncode
        self.stdout.feed_eof()
        self.stderr.feed_eof()
        self._exited.set()

    async def wait(self) -> int:
        await self._exited.wait()
        return self.returncode

    def terminate(self) -> None:
        self.signals.append("SIGTERM")
        if self.exit_on_signal:
            self.exit(-15)

    def kill(self) -> None:
        self.signals.append("SIGKILL")
        if self.exit_on_signal:
            self.exit(-9)


class ManualProgress(Progress):
    """Progress driven entirely by the test."""

    def __init__(self, message: str = "", progress: float = 0):
        self.aborted = 0
        super().__init__(message, progress)

    def aborting(self) -> None:
        self.aborted += 1


@pytest.fixture
def make_process():
    """Factory for FakeProcess; call it from inside the async test."""
    return FakeProcess


@pytest.fixture
def manual_progress():
    return ManualProgress()


@pytest.fixture
def make_manual():
    return ManualProgress


@pytest.fixture
def polygons_geojson(tmp_path):
    """A two-feature polygon FeatureCollection on disk."""
    square = [[[0, 0], [1, 0], [1, 1], [0, 1], [0, 0]]]
    data = {
        "type": "FeatureCollection",
        "features": [
            {
                "type": "Feature",
                "properties": {"id": i},
                "geometry": {"type": "Polygon", "coordinates": square},
            }
            for i in range(2)
        ],
    }
    path = tmp_path / "regions.geojson"
    path.write_text(json.dumps(data))
    return path

