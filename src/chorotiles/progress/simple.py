"""SimpleProgress: run a queue of callbacks one at a time."""

import asyncio
import inspect
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Union

from ..core.constants import FINISHED_MESSAGE
from ..core.errors import log_error
from .base import Progress

logger = logging.getLogger(__name__)

StepCallback = Callable[[], Union[None, Awaitable[Any]]]


@dataclass
class StepEntry:
    """One queued step: a callback plus the message published when it starts."""
    callback: StepCallback
    message: str | None = None


StepInput = Union[StepCallback, StepEntry, list[Union[StepCallback, StepEntry]]]


class SimpleProgress(Progress):
    """Runs callbacks in order, publishing ``100 * position / total`` before each.

    Must be created while an event loop is running. The first callback runs
    on a later loop iteration, never inside the constructor.
    """

    def __init__(self, steps: StepInput, message: str = ""):
        super().__init__(message)
        entries = steps if isinstance(steps, list) else [steps]
        self._queue: list[StepEntry] = [_to_entry(e) for e in entries]
        self._total = len(self._queue)
        self._position = 0
        self._task = asyncio.get_running_loop().create_task(self._run())

    @property
    def total(self) -> int:
        return self._total

    @property
    def position(self) -> int:
        return self._position

    async def _run(self) -> None:
        while True:
            # Yield between steps so intermediate progress is observable
            await asyncio.sleep(0)
            if self.completed:
                return
            if not self._queue:
                self.set_message(FINISHED_MESSAGE)
                self.set_progress(100)
                self.set_complete()
                return

            entry = self._queue.pop(0)
            if entry.message:
                self.set_message(entry.message)
            self.set_progress(100 * self._position / self._total)
            self._position += 1

            try:
                result = entry.callback()
                if inspect.isawaitable(result):
                    await result
            except Exception as e:
                log_error(e, "SimpleProgress")
                self.fail(e)
                return

    def aborting(self) -> None:
        if self._queue:
            logger.debug("Discarding %d queued steps", len(self._queue))
        self._queue.clear()


def _to_entry(step: StepCallback | StepEntry) -> StepEntry:
    if isinstance(step, StepEntry):
        return step
    if callable(step):
        return StepEntry(callback=step)
    raise TypeError(f"Expected a callable or StepEntry, got {type(step).__name__}")
