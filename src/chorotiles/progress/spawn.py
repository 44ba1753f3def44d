"""SpawnProgress: supervise a child process and report its output as progress.

stdout and stderr are read in chunks and split on \\r and \\n (tippecanoe
redraws its progress line with a bare carriage return). Each non-blank line
is kept in a bounded per-stream buffer and passed to a tool-specific line
filter that may extract a percentage and/or a message.

Aborting is two-phase: terminate() immediately, then kill() after
``kill_timeout`` seconds if the process still has not exited.
"""

import asyncio
import codecs
import enum
import logging
import re
import signal
from collections import deque
from dataclasses import dataclass
from pathlib import Path
from typing import Callable

from ..core.constants import DEFAULT_BUFFER_LINES, DEFAULT_KILL_TIMEOUT_S
from ..core.errors import ProcessError, log_error
from .base import Progress

logger = logging.getLogger(__name__)

_LINE_SPLIT_RE = re.compile(r"\r\n|\r|\n")
_CHUNK_SIZE = 64 * 1024


@dataclass
class LineResult:
    """What a line filter extracted from one output line."""
    progress: float | None = None
    message: str | None = None
    is_error: bool | None = None  # None = default for the stream (stderr -> True)


LineFilter = Callable[[str], LineResult | None]


class ProcessState(enum.Enum):
    RUNNING = "running"
    TERMINATING = "terminating"  # terminate() sent
    KILLING = "killing"          # kill() sent after timeout
    EXITED = "exited"


class SpawnProgress(Progress):
    """Progress backed by an ``asyncio.subprocess.Process``.

    The process is owned exclusively by this object. Any object exposing
    ``stdout``/``stderr`` stream readers, ``wait()``, ``terminate()`` and
    ``kill()`` works, which is how the tests drive it.
    """

    def __init__(
        self,
        process,
        name: str,
        line_filter: LineFilter,
        *,
        kill_timeout: float = DEFAULT_KILL_TIMEOUT_S,
        buffer_lines: int = DEFAULT_BUFFER_LINES,
    ):
        super().__init__()
        self.name = name
        self._process = process
        self._line_filter = line_filter
        self._kill_timeout = kill_timeout
        self._stdout_lines: deque[str] = deque(maxlen=buffer_lines)
        self._stderr_lines: deque[str] = deque(maxlen=buffer_lines)
        self._kill_handle: asyncio.TimerHandle | None = None
        self._loop = asyncio.get_running_loop()
        self._task: asyncio.Task | None = None
        if process is None:
            self._state = ProcessState.EXITED
        else:
            self._state = ProcessState.RUNNING
            self._task = self._loop.create_task(self._supervise())

    @classmethod
    async def spawn(
        cls,
        name: str,
        program: str | Path,
        *args,
        line_filter: LineFilter,
        kill_timeout: float = DEFAULT_KILL_TIMEOUT_S,
        buffer_lines: int = DEFAULT_BUFFER_LINES,
        cwd: str | Path | None = None,
    ) -> "SpawnProgress":
        """Start ``program`` and supervise it.

        A launch failure (e.g. executable not found) does not raise; it is
        reported through the returned progress as an error.
        """
        cmd = [str(program), *(str(a) for a in args)]
        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=cwd,
            )
        except OSError as e:
            progress = cls(
                None, name, line_filter,
                kill_timeout=kill_timeout, buffer_lines=buffer_lines,
            )
            progress._on_error(e)
            return progress

        logger.info("Started %s (pid %s): %s", name, process.pid, " ".join(cmd))
        return cls(
            process, name, line_filter,
            kill_timeout=kill_timeout, buffer_lines=buffer_lines,
        )

    @property
    def state(self) -> ProcessState:
        return self._state

    @property
    def stdout_tail(self) -> str:
        return "\n".join(self._stdout_lines)

    @property
    def stderr_tail(self) -> str:
        return "\n".join(self._stderr_lines)

    # ── Supervision ───────────────────────────────────────────────

    async def _supervise(self) -> None:
        try:
            await asyncio.gather(
                self._read_stream(self._process.stdout, is_stderr=False),
                self._read_stream(self._process.stderr, is_stderr=True),
            )
            returncode = await self._process.wait()
        except Exception as e:
            self._on_error(e)
            return
        self._on_exit(returncode)

    async def _read_stream(self, stream: asyncio.StreamReader | None, is_stderr: bool) -> None:
        if stream is None:
            return
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        pending = ""
        while True:
            chunk = await stream.read(_CHUNK_SIZE)
            if not chunk:
                break
            parts = _LINE_SPLIT_RE.split(pending + decoder.decode(chunk))
            pending = parts.pop()
            for line in parts:
                self._handle_line(line, is_stderr)
        pending += decoder.decode(b"", final=True)
        if pending:
            self._handle_line(pending, is_stderr)

    def _handle_line(self, line: str, is_stderr: bool) -> None:
        if not line.strip():
            return
        (self._stderr_lines if is_stderr else self._stdout_lines).append(line)
        if self.completed:
            return

        try:
            result = self._line_filter(line)
        except Exception:
            logger.exception("%s: line filter failed on %r", self.name, line)
            return
        if result is None:
            return

        if result.progress is not None:
            self.set_progress(result.progress)
        if result.message is not None:
            is_error = result.is_error if result.is_error is not None else is_stderr
            self.set_message(result.message, is_error)

    def _on_exit(self, returncode: int | None) -> None:
        previous = self._state
        self._state = ProcessState.EXITED
        self._cancel_kill_timer()

        if returncode == 0:
            logger.info("%s exited cleanly", self.name)
            self.set_complete()
            return

        exit_code, signal_name = _decode_returncode(returncode)
        if previous in (ProcessState.TERMINATING, ProcessState.KILLING):
            logger.info(
                "%s stopped after abort (exit code %s, signal %s)",
                self.name, exit_code, signal_name,
            )
            self.set_complete()
            return

        error = ProcessError(self.name, exit_code, signal_name, self.stderr_tail)
        log_error(error, "SpawnProgress")
        self.fail(error)

    def _on_error(self, error: BaseException) -> None:
        log_error(error, f"SpawnProgress:{self.name}")
        self.fail(error)

    # ── Termination ───────────────────────────────────────────────

    def aborting(self) -> None:
        if self._state is not ProcessState.RUNNING:
            return
        self._state = ProcessState.TERMINATING
        logger.info("Terminating %s", self.name)
        self._signal(self._process.terminate)
        self._kill_handle = self._loop.call_later(self._kill_timeout, self._force_kill)

    def _force_kill(self) -> None:
        self._kill_handle = None
        if self._state is not ProcessState.TERMINATING:
            return
        self._state = ProcessState.KILLING
        logger.warning("%s ignored terminate for %.1fs, killing", self.name, self._kill_timeout)
        self._signal(self._process.kill)

    def _cancel_kill_timer(self) -> None:
        if self._kill_handle is not None:
            self._kill_handle.cancel()
            self._kill_handle = None

    def _signal(self, send: Callable[[], None]) -> None:
        try:
            send()
        except ProcessLookupError:
            # Already gone; the exit is picked up by _supervise
            pass


def _decode_returncode(returncode: int | None) -> tuple[int | None, str | None]:
    """Split an asyncio returncode into (exit_code, signal_name)."""
    if returncode is None or returncode >= 0:
        return returncode, None
    try:
        return None, signal.Signals(-returncode).name
    except ValueError:
        return None, f"signal {-returncode}"
