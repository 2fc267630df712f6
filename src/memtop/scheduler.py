# src/memtop/scheduler.py
"""Sampling/rate/render event loop.

One coroutine owns all dashboard state and services one occurrence at a time:
a timer tick, a queued input event, or the input stream closing. Every state
change is followed by exactly one render before the next occurrence is taken.
"""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from enum import Enum

import structlog

from memtop.rates import RateTable, compute_rates
from memtop.render import draw_screen
from memtop.sampler import SampleError
from memtop.snapshot import Snapshot
from memtop.surface import Surface

log = structlog.get_logger()

INPUT_QUEUE_SIZE = 8

QUIT_KEYS = frozenset({"q", "Q", "escape", "ctrl+c"})
RESET_KEYS = frozenset({"r", "R"})


@dataclass(frozen=True)
class KeyInput:
    """A key press, named as Textual names keys ("q", "escape", "ctrl+c")."""

    key: str


@dataclass(frozen=True)
class ResizeInput:
    """The terminal changed size."""

    width: int
    height: int


# None on the queue means the input source has closed
InputEvent = KeyInput | ResizeInput | None


class Action(Enum):
    """What an input event asks the loop to do."""

    QUIT = "quit"
    RESET = "reset"
    RESIZE = "resize"
    IGNORE = "ignore"


def classify(event: InputEvent) -> Action:
    """Map a raw input event to the action it requests."""
    if event is None:
        return Action.QUIT
    if isinstance(event, ResizeInput):
        return Action.RESIZE
    if event.key in QUIT_KEYS:
        return Action.QUIT
    if event.key in RESET_KEYS:
        return Action.RESET
    return Action.IGNORE


@dataclass
class RenderState:
    """Everything the renderer needs. Only the Scheduler mutates it."""

    address: str
    interval: float
    snapshot: Snapshot | None = None
    rates: RateTable = field(default_factory=dict)
    error: SampleError | None = None


Sampler = Callable[[], Awaitable[Snapshot]]
Renderer = Callable[
    [Surface, str, float, Snapshot | None, Mapping[str, float] | None, SampleError | None],
    None,
]


class Scheduler:
    """Drives sampling, baseline resets and redraws for one server."""

    def __init__(
        self,
        sampler: Sampler,
        surface: Surface,
        address: str,
        interval: float,
        render: Renderer = draw_screen,
    ):
        if interval <= 0:
            raise ValueError(f"interval must be > 0, got {interval}")
        self._sampler = sampler
        self._surface = surface
        self._render_fn = render
        self.state = RenderState(address=address, interval=interval)
        self._previous: Snapshot | None = None
        self._events: asyncio.Queue[InputEvent] = asyncio.Queue(maxsize=INPUT_QUEUE_SIZE)
        self._running = False

    @property
    def running(self) -> bool:
        """Whether run() is currently looping."""
        return self._running

    @property
    def previous(self) -> Snapshot | None:
        """Baseline snapshot the next rate computation compares against."""
        return self._previous

    async def post(self, event: InputEvent) -> None:
        """Queue an input event, waiting while the queue is full."""
        await self._events.put(event)

    def close_input(self) -> None:
        """Signal that the input source is gone; the loop treats this as quit."""
        try:
            self._events.put_nowait(None)
        except asyncio.QueueFull:
            # A full queue is still drained by run(); drop the oldest to make room
            self._events.get_nowait()
            self._events.put_nowait(None)

    def render(self) -> None:
        """Draw the current state."""
        s = self.state
        self._render_fn(self._surface, s.address, s.interval, s.snapshot, s.rates, s.error)

    async def tick(self) -> None:
        """Take one sample, update rates and redraw."""
        try:
            snapshot = await self._sampler()
        except SampleError as e:
            # Keep showing the last good data alongside the error
            self.state.error = e
            log.warning("sample_failed", address=self.state.address, error=str(e))
        else:
            self.state.error = None
            if self._previous is not None:
                self.state.rates = compute_rates(snapshot, self._previous)
            else:
                self.state.rates = {}
            self._previous = snapshot
            self.state.snapshot = snapshot
        self.render()

    def handle(self, event: InputEvent) -> bool:
        """Apply one input event. Returns False when the loop should stop."""
        action = classify(event)

        if action is Action.QUIT:
            return False
        if action is Action.RESET:
            self.reset_baseline()
            self.render()
        elif action is Action.RESIZE:
            self._surface.sync()
            self.render()
        return True

    def reset_baseline(self) -> None:
        """Forget the previous snapshot so rates restart from the next sample.

        The latest snapshot and any error stay on screen.
        """
        self._previous = None
        self.state.rates = {}
        log.info("baseline_reset", address=self.state.address)

    async def run(self) -> None:
        """Loop until a quit key or the input source closes.

        The first tick fires one interval after entry. Ticks missed while a
        slow sample was in flight are dropped rather than queued up.
        """
        loop = asyncio.get_running_loop()
        interval = self.state.interval
        self._running = True
        log.info("scheduler_started", address=self.state.address, interval=interval)

        try:
            self.render()
            next_tick = loop.time() + interval

            while True:
                remaining = next_tick - loop.time()
                if remaining > 0:
                    try:
                        event = await asyncio.wait_for(self._events.get(), timeout=remaining)
                    except TimeoutError:
                        pass
                    else:
                        if not self.handle(event):
                            return
                        continue

                await self.tick()
                now = loop.time()
                while next_tick <= now:
                    next_tick += interval
        finally:
            self._running = False
            log.info("scheduler_stopped", address=self.state.address)
