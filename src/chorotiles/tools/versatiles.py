"""VersaTiles: convert MBTiles into a .versatiles container.

CLI: versatiles convert [--compress brotli] [--min-zoom N] <input> <output>
     versatiles serve --ip 127.0.0.1 --port N [name]<file>

Progress output varies between releases; both forms are recognised:
    converting tiles  1234/5678  21%
    [00:00:03] 42%
"""

import re
from pathlib import Path

from ..progress.spawn import LineResult, SpawnProgress
from .base import Tool, options_to_args


class VersatilesTool(Tool):
    name = "versatiles"

    _PERCENT_RE = re.compile(r"(\d+(?:\.\d+)?)\s*%")
    _COUNT_RE = re.compile(r"(\d+)\s*/\s*(\d+)")
    _LEVEL_RE = re.compile(r"^\s*(error|warning|warn)\s*[:\]]\s*(.*)$", re.IGNORECASE)

    def build_command(self, input_path: Path, output_path: Path, **options) -> list[str]:
        return [
            "convert",
            *options_to_args(self.tool_options(**options)),
            str(input_path),
            str(output_path),
        ]

    def build_serve_command(
        self, source: Path, port: int, source_name: str, ip: str = "127.0.0.1",
    ) -> list[str]:
        """`versatiles serve` for one source, reachable under /tiles/<source_name>/."""
        return ["serve", "--ip", ip, "--port", str(port), f"[{source_name}]{source}"]

    async def serve(self, source: Path, port: int, source_name: str) -> SpawnProgress:
        """Start a tile server child process for ``source``."""
        return await self.spawn(
            self.build_serve_command(source, port, source_name),
            name=f"versatiles serve {source_name}",
        )

    def parse_line(self, line: str) -> LineResult | None:
        m = self._LEVEL_RE.match(line)
        if m:
            # Warnings are surfaced as errors, like the library's message callback does
            return LineResult(message=m.group(2).strip() or line.strip(), is_error=True)

        m = self._PERCENT_RE.search(line)
        if m:
            return LineResult(progress=float(m.group(1)), message="Converting tiles", is_error=False)

        m = self._COUNT_RE.search(line)
        if m:
            position, total = int(m.group(1)), int(m.group(2))
            if total > 0:
                return LineResult(
                    progress=min(position / total, 1.0) * 100,
                    message="Converting tiles",
                    is_error=False,
                )
        return None
