"""Full-screen dashboard for memtop.

Textual owns the terminal: it delivers key and resize events and paints the
screen. The Scheduler owns everything else. Key presses and resizes are
forwarded into the Scheduler's input queue; the Scheduler draws into a
TerminalSurface, and the app exits once the Scheduler's loop returns.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from rich.style import Style
from rich.text import Text
from textual import events
from textual.app import App, ComposeResult
from textual.binding import Binding
from textual.message import Message
from textual.widget import Widget

from memtop.config import Config
from memtop.sampler import StatsClient
from memtop.scheduler import KeyInput, ResizeInput, Scheduler
from memtop.surface import CellBuffer

if TYPE_CHECKING:
    from textual.app import RenderResult

FORWARDED_KEYS = ("q", "Q", "escape", "ctrl+c", "r", "R")


class TerminalSurface(Widget):
    """Widget that displays a CellBuffer and exposes it as a Surface."""

    DEFAULT_CSS = """
    TerminalSurface {
        width: 100%;
        height: 100%;
    }
    """

    class Resized(Message):
        """Posted when the surface's on-screen size changes."""

        def __init__(self, width: int, height: int) -> None:
            super().__init__()
            self.width = width
            self.height = height

    def __init__(self, **kwargs) -> None:
        super().__init__(**kwargs)
        self.buffer = CellBuffer()

    def on_resize(self, event: events.Resize) -> None:
        """Tell the app the drawable area changed."""
        self.post_message(self.Resized(event.size.width, event.size.height))

    def _current_size(self) -> tuple[int, int]:
        # Before the first layout pass the widget has no size; fall back to the terminal
        size = self.size if self.size.area else self.app.size
        return size.width, size.height

    def dimensions(self) -> tuple[int, int]:
        """Return (width, height), following the widget if it was resized."""
        if self.buffer.dimensions() != self._current_size():
            self.sync()
        return self.buffer.dimensions()

    def clear(self) -> None:
        """Blank the buffer."""
        self.buffer.clear()

    def put(self, x: int, y: int, char: str, style: Style | None = None) -> None:
        """Write a cell into the buffer."""
        self.buffer.put(x, y, char, style)

    def show(self) -> None:
        """Schedule a repaint of the buffer."""
        self.refresh()

    def sync(self) -> None:
        """Resize the buffer to the widget's current size."""
        width, height = self._current_size()
        self.buffer.resize(width, height)

    def render(self) -> RenderResult:
        """Render buffer rows as styled text."""
        result = Text(no_wrap=True, overflow="crop")
        for i, runs in enumerate(self.buffer.rows()):
            if i > 0:
                result.append("\n")
            for text, style in runs:
                result.append(text, style=style)
        return result


class MemtopApp(App):
    """Live stats dashboard for one memcached server."""

    CSS = """
    Screen {
        layout: vertical;
    }
    """

    ENABLE_COMMAND_PALETTE = False

    BINDINGS = [
        Binding(key, f"forward_key({key!r})", show=False, priority=True)
        for key in FORWARDED_KEYS
    ]

    def __init__(self, config: Config | None = None, client: StatsClient | None = None):
        super().__init__()
        self.config = config or Config.load()
        self.client = client or StatsClient(
            self.config.server.host,
            self.config.server.port,
            timeout=self.config.server.timeout,
        )
        self.scheduler: Scheduler | None = None

    def compose(self) -> ComposeResult:
        """Create the single full-screen surface."""
        yield TerminalSurface(id="surface")

    def on_mount(self) -> None:
        """Start the sampling loop."""
        self.title = "memtop"
        self.sub_title = self.client.address
        surface = self.query_one("#surface", TerminalSurface)
        self.scheduler = Scheduler(
            self.client.sample,
            surface,
            self.client.address,
            self.config.display.interval,
        )
        self.run_worker(self._run_scheduler(), name="scheduler", exclusive=True)

    def on_unmount(self) -> None:
        """Stop the loop if the app is shutting down for another reason."""
        if self.scheduler and self.scheduler.running:
            self.scheduler.close_input()

    async def _run_scheduler(self) -> None:
        """Run the loop, then leave the app once it returns."""
        assert self.scheduler is not None
        await self.scheduler.run()
        self.exit()

    async def action_forward_key(self, key: str) -> None:
        """Hand a recognised key to the Scheduler."""
        if self.scheduler and self.scheduler.running:
            await self.scheduler.post(KeyInput(key))

    async def on_terminal_surface_resized(self, message: TerminalSurface.Resized) -> None:
        """Hand a resize of the drawable area to the Scheduler."""
        if self.scheduler and self.scheduler.running:
            await self.scheduler.post(ResizeInput(message.width, message.height))


def run_tui(config: Config | None = None) -> int:
    """Run the TUI application and return its exit code."""
    app = MemtopApp(config)
    app.run()
    return app.return_code or 0
