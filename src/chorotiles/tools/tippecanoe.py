"""Tippecanoe: GeoJSON polygons to MBTiles vector tiles.

Progress is written to stderr and redrawn with a bare carriage return, so
SpawnProgress sees each redraw as its own line. Two phases report a
percentage:

    Reordering geometry: 42%
      37.5%  5/16/11
"""

import re
from pathlib import Path

from ..progress.spawn import LineResult
from .base import Tool, options_to_args


class TippecanoeTool(Tool):
    name = "tippecanoe"

    _REORDER_RE = re.compile(r"^Reordering geometry:\s*(\d+)%")
    # "  37.5%  5/16/11": percent followed by the tile being written
    _TILES_RE = re.compile(r"^\s+(\d+(?:\.\d+)?)%\s+\d+/\d+/\d+")
    _READ_RE = re.compile(r"^Read\s+([\d.]+)\s+million features")

    def build_command(self, input_path: Path, output_path: Path, **options) -> list[str]:
        return [
            "-o", str(output_path),
            *options_to_args(self.tool_options(**options)),
            str(input_path),
        ]

    def parse_line(self, line: str) -> LineResult | None:
        m = self._REORDER_RE.match(line)
        if m:
            return LineResult(
                progress=float(m.group(1)), message="Reordering geometry", is_error=False,
            )
        m = self._TILES_RE.match(line)
        if m:
            return LineResult(
                progress=float(m.group(1)), message="Building tiles", is_error=False,
            )
        m = self._READ_RE.match(line)
        if m:
            return LineResult(message=f"Read {m.group(1)} million features", is_error=False)
        if line.lower().startswith(("error", "fatal")):
            return LineResult(message=line.strip(), is_error=True)
        return None
