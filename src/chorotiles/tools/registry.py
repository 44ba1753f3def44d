"""Tool registry: maps tool names to implementations."""

from .base import Tool
from .tippecanoe import TippecanoeTool
from .versatiles import VersatilesTool

TOOLS: dict[str, type[Tool]] = {
    "tippecanoe": TippecanoeTool,
    "versatiles": VersatilesTool,
}


def get_tool(name: str, config: dict) -> Tool:
    """Get a tool instance by name.

    Raises KeyError if the tool name is unknown.
    """
    cls = TOOLS.get(name)
    if cls is None:
        available = ", ".join(TOOLS.keys())
        raise KeyError(f"Unknown tool: {name!r}. Available: {available}")
    return cls(config)


def list_tools() -> list[str]:
    """Return available tool names."""
    return list(TOOLS.keys())
