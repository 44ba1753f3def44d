"""Polygons to tiles: GeoJSON -> MBTiles (tippecanoe) -> .versatiles."""

import logging
from pathlib import Path

from ..core.config import load_defaults
from ..core.constants import EXT_MBTILES, EXT_VERSATILES
from ..progress.callback import CallbackProgress
from ..progress.concatenate import ConcatenatedProgress
from ..progress.simple import SimpleProgress, StepEntry
from ..tools.registry import get_tool
from .utils import inspect_geojson, safe_delete, validate_input_file, validate_output_extension

logger = logging.getLogger(__name__)


def convert_polygons_to_versatiles(
    input_path: Path,
    output_path: Path,
    config: dict | None = None,
) -> ConcatenatedProgress:
    """Build the conversion pipeline; it starts running immediately.

    Raises ValidationError / FileSystemError for bad paths before anything
    is started. Must be called with an event loop running.
    """
    input_path = Path(input_path)
    output_path = Path(output_path)
    validate_output_extension(output_path, EXT_VERSATILES)
    validate_input_file(input_path)

    config = config if config is not None else load_defaults()
    tippecanoe = get_tool("tippecanoe", config)
    versatiles = get_tool("versatiles", config)
    mbtiles_path = output_path.with_suffix(EXT_MBTILES)

    logger.info("Converting %s -> %s", input_path, output_path)
    return ConcatenatedProgress([
        lambda: CallbackProgress.from_thread(inspect_geojson, input_path),
        lambda: tippecanoe.run(input_path, mbtiles_path),
        lambda: versatiles.run(mbtiles_path, output_path),
        lambda: SimpleProgress(
            StepEntry(lambda: safe_delete(mbtiles_path), "Cleaning up temporary files"),
        ),
    ])
