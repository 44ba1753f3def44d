"""Constants for the chorotiles pipeline."""


# Wire event names for the ndjson progress stream
EVENT_PROGRESS = "progress"
EVENT_MESSAGE = "message"
EVENT_DONE = "done"
EVENT_ERROR = "error"

NDJSON_MEDIA_TYPE = "application/x-ndjson"

# Message published by SimpleProgress once its queue is drained
FINISHED_MESSAGE = "Finished"

# SpawnProgress defaults (overridable via [progress] in defaults.toml)
DEFAULT_KILL_TIMEOUT_S = 5.0
DEFAULT_BUFFER_LINES = 100

# File extensions used by the conversion pipeline
EXT_VERSATILES = ".versatiles"
EXT_MBTILES = ".mbtiles"

# Environment variable pointing the web app at a config TOML
CONFIG_ENV = "CHOROTILES_CONFIG"

# Tile servers: ports handed out round-robin from this range
TILE_PORT_MIN = 51001
TILE_PORT_MAX = 52000
TILE_HOST = "127.0.0.1"
DEFAULT_TILE_READY_TIMEOUT_S = 30.0
TILE_READY_POLL_S = 0.5
