"""Progress status protocol for the ndjson stream."""

import json
from dataclasses import dataclass

from .constants import EVENT_DONE, EVENT_ERROR, EVENT_MESSAGE, EVENT_PROGRESS


@dataclass(frozen=True)
class ProgressStatus:
    """One line of the ndjson progress stream.

    Serialises to exactly one of:
        {"event": "progress", "progress": 42}
        {"event": "message", "message": "Building tiles"}
        {"event": "done"}
        {"event": "error", "error": "tippecanoe failed ..."}
    """
    event: str
    progress: int | None = None
    message: str | None = None
    error: str | None = None

    @classmethod
    def of_progress(cls, progress: int) -> "ProgressStatus":
        return cls(EVENT_PROGRESS, progress=progress)

    @classmethod
    def of_message(cls, message: str) -> "ProgressStatus":
        return cls(EVENT_MESSAGE, message=message)

    @classmethod
    def of_done(cls) -> "ProgressStatus":
        return cls(EVENT_DONE)

    @classmethod
    def of_error(cls, error: str) -> "ProgressStatus":
        return cls(EVENT_ERROR, error=error)

    @property
    def is_terminal(self) -> bool:
        return self.event in (EVENT_DONE, EVENT_ERROR)

    def to_dict(self) -> dict:
        data: dict = {"event": self.event}
        if self.event == EVENT_PROGRESS:
            data["progress"] = self.progress
        elif self.event == EVENT_MESSAGE:
            data["message"] = self.message
        elif self.event == EVENT_ERROR:
            data["error"] = self.error
        return data

    def to_line(self) -> bytes:
        """Encode as one ndjson line (UTF-8, newline-terminated)."""
        return (json.dumps(self.to_dict()) + "\n").encode("utf-8")
