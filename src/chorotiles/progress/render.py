"""Single-line terminal renderer for a Progress."""

from rich.console import Console
from rich.control import Control
from rich.segment import ControlType
from rich.text import Text

from .base import Progress


async def log_progress(progress: Progress, console: Console | None = None) -> None:
    """Redraw one status line until ``progress`` completes.

    The line is `` 42% - message``, green until any error is seen, red after.
    A new message moves to a fresh line so earlier messages stay visible.
    """
    console = console or Console()
    state = {"position": 0, "message": "", "has_errors": False}

    def redraw() -> None:
        line = f"{state['position']:>3d}%"
        if state["message"]:
            line += f" - {state['message']}"
        style = "red" if state["has_errors"] else "green"
        console.control(Control(ControlType.CARRIAGE_RETURN, (ControlType.ERASE_IN_LINE, 2)))
        console.print(Text(line, style=style), end="", soft_wrap=True)

    def on_progress(position: int) -> None:
        state["position"] = position
        redraw()

    def on_message(message: str, is_error: bool) -> None:
        if is_error:
            state["has_errors"] = True
        if not message or message == state["message"]:
            return
        if state["message"]:
            console.print()
        state["message"] = message
        redraw()

    progress.on_progress(on_progress)
    progress.on_message(on_message)
    await progress.done()
    console.print()
