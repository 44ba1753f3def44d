"""TOML config loader: packaged defaults + user file merge."""

import shutil
import tomllib
from pathlib import Path

import tomli_w

from .constants import DEFAULT_BUFFER_LINES, DEFAULT_KILL_TIMEOUT_S

DEFAULTS_PATH = Path(__file__).parent / "defaults.toml"

# Executable names looked up on PATH when tools.<name> is empty
TOOL_EXECUTABLES: dict[str, str] = {
    "tippecanoe": "tippecanoe",
    "versatiles": "versatiles",
}


def load_defaults() -> dict:
    """Load the packaged defaults.toml."""
    with open(DEFAULTS_PATH, "rb") as f:
        return tomllib.load(f)


def load_config(config_toml: Path | None = None) -> dict:
    """Load a user config file, merged over defaults."""
    defaults = load_defaults()
    if config_toml is not None and config_toml.exists():
        with open(config_toml, "rb") as f:
            overrides = tomllib.load(f)
        _deep_merge(defaults, overrides)
    return defaults


def save_config(config_toml: Path, config: dict) -> None:
    """Write a config file."""
    config_toml.parent.mkdir(parents=True, exist_ok=True)
    with open(config_toml, "wb") as f:
        tomli_w.dump(config, f)


def get_tool_path(config: dict, tool_name: str) -> Path:
    """Get a tool path from config, raising if not found or nonexistent."""
    path_str = config.get("tools", {}).get(tool_name)
    if not path_str:
        raise ValueError(f"Tool path not configured: tools.{tool_name}")
    path = Path(path_str)
    if not path.exists():
        raise FileNotFoundError(f"Tool not found at configured path: {path}")
    return path


def resolve_tool(config: dict, tool_name: str) -> Path:
    """Configured tool path, falling back to a PATH lookup.

    Raises FileNotFoundError if neither yields an executable.
    """
    try:
        return get_tool_path(config, tool_name)
    except ValueError:
        pass
    which_result = shutil.which(TOOL_EXECUTABLES.get(tool_name, tool_name))
    if which_result is None:
        raise FileNotFoundError(f"{tool_name} not configured and not found on PATH")
    return Path(which_result)


def auto_detect_tools(config: dict | None = None) -> dict[str, str | None]:
    """Locate every known tool.

    Returns dict of {tool_name: found_path_or_None}.
    """
    config = config if config is not None else load_defaults()
    found: dict[str, str | None] = {}
    for tool_name in TOOL_EXECUTABLES:
        try:
            found[tool_name] = str(resolve_tool(config, tool_name))
        except FileNotFoundError:
            found[tool_name] = None
    return found


def progress_settings(config: dict) -> tuple[float, int]:
    """(kill_timeout_s, buffer_lines) for SpawnProgress."""
    cfg = config.get("progress", {})
    return (
        float(cfg.get("kill_timeout_s", DEFAULT_KILL_TIMEOUT_S)),
        int(cfg.get("buffer_lines", DEFAULT_BUFFER_LINES)),
    )


def _deep_merge(base: dict, override: dict) -> None:
    """Merge override into base in-place, recursing into dicts."""
    for key, value in override.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _deep_merge(base[key], value)
        else:
            base[key] = value
