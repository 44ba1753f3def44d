"""ConcatenatedProgress: run sub-progresses strictly one after another."""

import asyncio
import inspect
import logging
from typing import Awaitable, Callable, Union

from ..core.errors import log_error
from .base import Progress

logger = logging.getLogger(__name__)

ProgressFactory = Callable[[], Union[Progress, Awaitable[Progress]]]


class ConcatenatedProgress(Progress):
    """Drives factories in order, relaying the active sub-progress's events.

    Factories are only called when their turn comes, so a later stage can
    depend on files produced by an earlier one. Exactly one sub-progress is
    active at a time. A sub-progress that ends with an error fails the
    whole chain; remaining factories are never called.
    """

    def __init__(self, factories: list[ProgressFactory]):
        super().__init__()
        self._factories = list(factories)
        self._current: Progress | None = None
        self._aborted = False
        self._task: asyncio.Task | None = None
        self._loop = asyncio.get_running_loop()
        self._schedule_next()

    @property
    def current(self) -> Progress | None:
        return self._current

    @property
    def remaining(self) -> int:
        return len(self._factories)

    def _schedule_next(self) -> None:
        self._task = self._loop.create_task(self._run_next())

    async def _run_next(self) -> None:
        if self.completed:
            return
        if not self._factories:
            self.set_complete()
            return

        factory = self._factories.pop(0)
        try:
            sub = factory()
            if inspect.isawaitable(sub):
                sub = await sub
        except Exception as e:
            log_error(e, "ConcatenatedProgress")
            self.fail(e)
            return

        if self.completed:
            # Aborted while the factory was being awaited
            sub.abort()
            return

        self._current = sub
        sub.on_progress(lambda p, sub=sub: self._relay_progress(sub, p))
        sub.on_message(lambda m, e, sub=sub: self._relay_message(sub, m, e))
        sub.on_complete(lambda sub=sub: self._on_sub_complete(sub))

    def _relay_progress(self, sub: Progress, progress: int) -> None:
        if sub is self._current and not self.completed:
            self.set_progress(progress)

    def _relay_message(self, sub: Progress, message: str, is_error: bool) -> None:
        if sub is self._current and not self.completed:
            self.set_message(message, is_error)

    def _on_sub_complete(self, sub: Progress) -> None:
        if sub is not self._current or self._aborted or self.completed:
            return
        if sub.error is not None:
            self.fail(sub.error)
            return
        self._schedule_next()

    def aborting(self) -> None:
        self._aborted = True
        self._factories.clear()
        if self._current is not None and not self._current.completed:
            self._current.abort()
