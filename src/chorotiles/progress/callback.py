"""CallbackProgress: adapt an awaitable plus push-style progress callbacks."""

import asyncio
import logging
from functools import partial
from typing import Any, Awaitable, Callable

from .base import MessageCb, Progress, ProgressCb

logger = logging.getLogger(__name__)

RegisterProgress = Callable[[ProgressCb], None]
RegisterMessage = Callable[[MessageCb], None]


class CallbackProgress(Progress):
    """Wraps one externally-driven operation.

    ``register_progress``/``register_message`` receive a relay the operation
    calls to push live updates. Aborting only stops relaying: the wrapped
    awaitable cannot be cancelled from here and keeps running to its own end.
    """

    def __init__(
        self,
        awaitable: Awaitable[Any],
        register_progress: RegisterProgress | None = None,
        register_message: RegisterMessage | None = None,
    ):
        super().__init__()
        self._aborted = False

        if register_progress is not None:
            register_progress(self._relay_progress)
        if register_message is not None:
            register_message(self._relay_message)

        self._future = asyncio.ensure_future(awaitable)
        self._future.add_done_callback(self._on_settled)

    @property
    def aborted(self) -> bool:
        return self._aborted

    def _relay_progress(self, progress: float) -> None:
        if not self._aborted:
            self.set_progress(progress)

    def _relay_message(self, message: str, is_error: bool = False) -> None:
        if not self._aborted:
            self.set_message(message, is_error)

    def _on_settled(self, future: asyncio.Future) -> None:
        if future.cancelled():
            error: BaseException | None = asyncio.CancelledError("operation was cancelled")
        else:
            error = future.exception()
        if self._aborted:
            if error is not None:
                logger.debug("Ignoring result of aborted operation: %s", error)
            return
        if error is None:
            self.set_complete()
        else:
            self.fail(error)

    def aborting(self) -> None:
        self._aborted = True

    @classmethod
    def from_thread(cls, func: Callable[..., Any], *args, **kwargs) -> "CallbackProgress":
        """Run blocking ``func`` in a worker thread.

        ``func`` is called with extra ``report_progress`` and ``report_message``
        keyword arguments; calls to them are marshalled back onto the loop.
        """
        loop = asyncio.get_running_loop()
        relays: dict[str, Callable] = {}

        def report_progress(progress: float) -> None:
            if "progress" in relays:
                loop.call_soon_threadsafe(relays["progress"], progress)

        def report_message(message: str, is_error: bool = False) -> None:
            if "message" in relays:
                loop.call_soon_threadsafe(relays["message"], message, is_error)

        call = partial(
            func, *args,
            report_progress=report_progress, report_message=report_message, **kwargs,
        )
        return cls(
            asyncio.to_thread(call),
            partial(relays.__setitem__, "progress"),
            partial(relays.__setitem__, "message"),
        )
