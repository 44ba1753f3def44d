"""Path checks and cleanup shared by conversion pipelines."""

import json
import logging
from pathlib import Path
from typing import Callable

from ..core.errors import FileSystemError, ValidationError

logger = logging.getLogger(__name__)

_READ_CHUNK = 1024 * 1024


def validate_input_file(path: Path) -> None:
    """Raise FileSystemError if ``path`` is not an existing file."""
    if not Path(path).is_file():
        raise FileSystemError(f"Input file not found: {path}")


def validate_output_extension(path: Path, extension: str) -> None:
    """Raise ValidationError unless ``path`` ends with ``extension``."""
    if not str(path).endswith(extension):
        raise ValidationError(f"Output file must have a {extension} extension")


def safe_delete(path: Path) -> None:
    """Delete a file, logging instead of raising on failure."""
    try:
        Path(path).unlink()
    except FileNotFoundError:
        logger.debug("Nothing to delete at %s", path)
    except OSError as e:
        logger.warning("Failed to delete %s: %s", path, e)


def inspect_geojson(
    path: Path,
    *,
    report_progress: Callable[[float], None],
    report_message: Callable[[str, bool], None],
) -> int:
    """Read and sanity-check a GeoJSON file; returns its feature count.

    Blocking; meant for CallbackProgress.from_thread(). Progress is the
    share of bytes read.
    """
    path = Path(path)
    total = path.stat().st_size
    report_message(f"Reading {path.name}", False)

    chunks: list[bytes] = []
    read = 0
    with open(path, "rb") as f:
        while True:
            chunk = f.read(_READ_CHUNK)
            if not chunk:
                break
            chunks.append(chunk)
            read += len(chunk)
            if total:
                report_progress(100 * read / total)

    try:
        data = json.loads(b"".join(chunks))
    except json.JSONDecodeError as e:
        raise ValidationError(f"{path.name} is not valid JSON: {e}") from e

    if not isinstance(data, dict) or "type" not in data:
        raise ValidationError(f"{path.name} is not a GeoJSON object")

    if data["type"] == "FeatureCollection":
        count = len(data.get("features") or [])
    elif data["type"] == "Feature":
        count = 1
    else:
        raise ValidationError(f"{path.name}: unsupported GeoJSON type {data['type']!r}")

    if count == 0:
        report_message(f"{path.name} contains no features", True)
    else:
        report_message(f"{path.name}: {count} features", False)
    return count
