"""Abstract progress contract shared by every long-running operation.

A Progress carries a percentage (0-100), a message with a sticky error
flag, and a completion signal. Progress and message subscribers are single
slot: subscribing replaces the previous subscriber and immediately replays
the current value. Composers rely on this to re-point the slot when they
chain sub-progresses. Completion subscribers accumulate.

Concrete variants implement ``aborting()``; ``abort()`` always forces
completion afterwards so ``done()`` resolves even if cleanup cannot fully
unwind its resource.
"""

import asyncio
import logging
import math
from abc import ABC, abstractmethod
from typing import Callable

logger = logging.getLogger(__name__)

ProgressCb = Callable[[int], None]
MessageCb = Callable[[str, bool], None]
CompleteCb = Callable[[], None]


class Progress(ABC):
    """Base class for SimpleProgress, CallbackProgress, SpawnProgress, ConcatenatedProgress."""

    def __init__(self, message: str = "", progress: float = 0):
        self._progress = 0
        self._message = ""
        self._is_error = False
        self._error: BaseException | None = None
        self._completed = False
        self._on_progress_cb: ProgressCb | None = None
        self._on_message_cb: MessageCb | None = None
        self._on_complete_cbs: list[CompleteCb] = []
        self.set_message(message)
        self.set_progress(progress)

    # ── State ─────────────────────────────────────────────────────

    @property
    def progress(self) -> int:
        return self._progress

    @property
    def message(self) -> str:
        return self._message

    @property
    def is_error(self) -> bool:
        return self._is_error

    @property
    def error(self) -> BaseException | None:
        """The failure that ended this progress, if any."""
        return self._error

    @property
    def completed(self) -> bool:
        return self._completed

    def set_progress(self, progress: float) -> None:
        # Ties round up (12.5 -> 13), not to even
        value = min(100, max(0, math.floor(progress + 0.5)))
        if value == self._progress:
            return
        self._progress = value
        if self._on_progress_cb is not None:
            _notify(self._on_progress_cb, value)

    def set_message(self, message: str, is_error: bool = False) -> None:
        sticky = self._is_error or is_error
        if message == self._message and sticky == self._is_error:
            return
        self._message = message
        self._is_error = sticky
        if self._on_message_cb is not None:
            _notify(self._on_message_cb, message, sticky)

    def set_complete(self) -> None:
        if self._completed:
            return
        self._completed = True
        self.set_progress(100)
        for cb in list(self._on_complete_cbs):
            _notify(cb)

    def fail(self, error: BaseException) -> None:
        """Report ``error`` and drive this progress to its terminal state."""
        if self._completed:
            logger.debug("Ignoring failure after completion: %s", error)
            return
        self._error = error
        self.set_message(str(error), True)
        self.aborting()
        self.set_complete()

    # ── Subscriptions ─────────────────────────────────────────────

    def on_progress(self, cb: ProgressCb) -> None:
        self._on_progress_cb = cb
        _notify(cb, self._progress)

    def on_message(self, cb: MessageCb) -> None:
        self._on_message_cb = cb
        _notify(cb, self._message, self._is_error)

    def on_complete(self, cb: CompleteCb) -> None:
        self._on_complete_cbs.append(cb)
        if self._completed:
            _notify(cb)

    # ── Lifecycle ─────────────────────────────────────────────────

    @abstractmethod
    def aborting(self) -> None:
        """Variant-specific cleanup run by abort() before completion."""

    def abort(self) -> None:
        self.aborting()
        self.set_complete()

    async def done(self) -> None:
        """Wait until set_complete() has run. Never raises on failure; see ``error``."""
        if self._completed:
            return
        future = asyncio.get_running_loop().create_future()

        def _resolve() -> None:
            if not future.done():
                future.set_result(None)

        self.on_complete(_resolve)
        await future

    async def log(self, console=None) -> None:
        """Render this progress on the terminal until it completes."""
        from .render import log_progress
        await log_progress(self, console)


def _notify(cb: Callable, *args) -> None:
    """Invoke a subscriber; a failing subscriber must not break the notifier."""
    try:
        cb(*args)
    except Exception:
        logger.exception("Progress subscriber %r raised", cb)
