"""Abstract interface for external command-line tools driven as progresses."""

from abc import ABC, abstractmethod
from pathlib import Path

from ..core.config import progress_settings, resolve_tool
from ..progress.spawn import LineResult, SpawnProgress


class Tool(ABC):
    """Abstract base for wrapped executables (tippecanoe, versatiles, ...)."""

    def __init__(self, config: dict):
        self.config = config

    @property
    @abstractmethod
    def name(self) -> str:
        """Short identifier for this tool, also its key under [tools]."""

    @abstractmethod
    def build_command(self, input_path: Path, output_path: Path, **options) -> list[str]:
        """Arguments (without the executable) for one conversion run.

        ``options`` override the tool's config section.
        """

    def parse_line(self, line: str) -> LineResult | None:
        """Parse one output line for progress information.

        Returns None if the line carries nothing of interest.
        Override in subclasses for tool-specific parsing.
        """
        return None

    def executable(self) -> Path:
        return resolve_tool(self.config, self.name)

    def validate_environment(self) -> tuple[bool, str]:
        """Check that the tool is available.

        Returns:
            (ok, message): ok=True if ready, message explains why not
        """
        try:
            path = self.executable()
            return True, f"Found at {path}"
        except (ValueError, FileNotFoundError) as e:
            return False, str(e)

    def tool_options(self, **overrides) -> dict:
        """Config section for this tool with per-call overrides applied."""
        options = dict(self.config.get(self.name, {}))
        options.update(overrides)
        return options

    async def run(self, input_path: Path, output_path: Path, **options) -> SpawnProgress:
        """Start the tool and return a progress supervising it."""
        return await self.spawn(self.build_command(input_path, output_path, **options))

    async def spawn(self, args: list[str], name: str | None = None) -> SpawnProgress:
        """Run the executable with ``args`` under a SpawnProgress."""
        kill_timeout, buffer_lines = progress_settings(self.config)
        try:
            program = self.executable()
        except FileNotFoundError:
            # Let the spawn itself fail so the error travels through the progress
            program = Path(self.name)
        return await SpawnProgress.spawn(
            name or self.name,
            program,
            *args,
            line_filter=self.parse_line,
            kill_timeout=kill_timeout,
            buffer_lines=buffer_lines,
        )


def options_to_args(options: dict) -> list[str]:
    """Turn {"force": True, "maximum-zoom": "g"} into ["--force", "--maximum-zoom", "g"].

    False and None values are dropped.
    """
    args: list[str] = []
    for key, value in options.items():
        if value is None or value is False:
            continue
        if value is True:
            args.append(f"--{key}")
        else:
            args.extend([f"--{key}", str(value)])
    return args
