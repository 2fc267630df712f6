# tests/test_scheduler.py
"""Tests for the sampling/render event loop."""

import asyncio

import pytest

from memtop.render import WAITING_TEXT
from memtop.sampler import SampleError
from memtop.scheduler import (
    INPUT_QUEUE_SIZE,
    Action,
    KeyInput,
    ResizeInput,
    Scheduler,
    classify,
)
from memtop.surface import CellBuffer
from tests.conftest import make_snapshot


class FakeSampler:
    """Async sampler that replays a script of snapshots and errors."""

    def __init__(self, results):
        self.results = list(results)
        self.calls = 0

    async def __call__(self):
        self.calls += 1
        result = self.results.pop(0)
        if isinstance(result, BaseException):
            raise result
        return result


class RenderRecorder:
    """Renderer stub that records what it was asked to draw."""

    def __init__(self):
        self.calls = []

    def __call__(self, surface, address, interval, snapshot, rates, error):
        self.calls.append((snapshot, dict(rates), error))

    @property
    def count(self):
        return len(self.calls)


class SyncCountingSurface(CellBuffer):
    def __init__(self):
        super().__init__(80, 20)
        self.syncs = 0

    def sync(self):
        self.syncs += 1


def _scheduler(results=(), interval=2.0, surface=None):
    sampler = FakeSampler(results)
    recorder = RenderRecorder()
    scheduler = Scheduler(
        sampler,
        surface or CellBuffer(80, 20),
        "127.0.0.1:11211",
        interval,
        render=recorder,
    )
    return scheduler, sampler, recorder


class TestClassify:
    """Tests for classify."""

    @pytest.mark.parametrize("key", ["q", "Q", "escape", "ctrl+c"])
    def test_quit_keys(self, key):
        assert classify(KeyInput(key)) is Action.QUIT

    @pytest.mark.parametrize("key", ["r", "R"])
    def test_reset_keys(self, key):
        assert classify(KeyInput(key)) is Action.RESET

    def test_resize(self):
        assert classify(ResizeInput(100, 40)) is Action.RESIZE

    def test_closed_input_quits(self):
        assert classify(None) is Action.QUIT

    @pytest.mark.parametrize("key", ["x", "space", "enter", "ctrl+r"])
    def test_other_keys_ignored(self, key):
        assert classify(KeyInput(key)) is Action.IGNORE


def test_interval_must_be_positive():
    with pytest.raises(ValueError):
        Scheduler(FakeSampler([]), CellBuffer(), "x:1", 0)
    with pytest.raises(ValueError):
        Scheduler(FakeSampler([]), CellBuffer(), "x:1", -1.0)


class TestTick:
    """Tests for a single sampling tick."""

    @pytest.mark.asyncio
    async def test_first_sample_has_no_rates(self):
        snap = make_snapshot({"cmd_get": 10}, monotonic=1.0)
        scheduler, sampler, recorder = _scheduler([snap])

        await scheduler.tick()

        assert scheduler.state.snapshot is snap
        assert scheduler.state.rates == {}
        assert scheduler.state.error is None
        assert scheduler.previous is snap
        assert recorder.count == 1

    @pytest.mark.asyncio
    async def test_second_sample_computes_rates(self):
        first = make_snapshot({"cmd_get": 10}, monotonic=1.0)
        second = make_snapshot({"cmd_get": 30}, monotonic=3.0)
        scheduler, _, recorder = _scheduler([first, second])

        await scheduler.tick()
        await scheduler.tick()

        assert scheduler.state.rates == {"cmd_get": pytest.approx(10.0)}
        assert scheduler.previous is second
        assert recorder.count == 2

    @pytest.mark.asyncio
    async def test_failure_keeps_last_good_data(self):
        snap = make_snapshot({"cmd_get": 10}, monotonic=1.0)
        failure = SampleError("connection refused")
        scheduler, _, recorder = _scheduler([snap, failure])

        await scheduler.tick()
        await scheduler.tick()

        assert scheduler.state.error is failure
        assert scheduler.state.snapshot is snap
        assert scheduler.previous is snap
        assert recorder.calls[-1] == (snap, {}, failure)

    @pytest.mark.asyncio
    async def test_failure_before_any_data(self):
        failure = SampleError("connection refused")
        scheduler, _, recorder = _scheduler([failure])

        await scheduler.tick()

        assert scheduler.state.snapshot is None
        assert recorder.calls == [(None, {}, failure)]

    @pytest.mark.asyncio
    async def test_success_clears_error(self):
        first = make_snapshot({"cmd_get": 10}, monotonic=1.0)
        second = make_snapshot({"cmd_get": 20}, monotonic=3.0)
        scheduler, _, _ = _scheduler([first, SampleError("boom"), second])

        for _ in range(3):
            await scheduler.tick()

        assert scheduler.state.error is None
        # rates bridge the failed tick, measured against the last good sample
        assert scheduler.state.rates == {"cmd_get": pytest.approx(5.0)}

    @pytest.mark.asyncio
    async def test_other_exceptions_propagate(self):
        scheduler, _, _ = _scheduler([RuntimeError("bug")])

        with pytest.raises(RuntimeError):
            await scheduler.tick()


class TestHandle:
    """Tests for input handling."""

    @pytest.mark.asyncio
    async def test_reset_clears_baseline_and_redraws(self):
        first = make_snapshot({"cmd_get": 10}, monotonic=1.0)
        second = make_snapshot({"cmd_get": 30}, monotonic=3.0)
        scheduler, _, recorder = _scheduler([first, second])
        await scheduler.tick()
        await scheduler.tick()

        assert scheduler.handle(KeyInput("r")) is True

        assert scheduler.previous is None
        assert scheduler.state.rates == {}
        assert scheduler.state.snapshot is second
        assert recorder.count == 3

    @pytest.mark.asyncio
    async def test_tick_after_reset_has_no_rates(self):
        snaps = [
            make_snapshot({"cmd_get": 10}, monotonic=1.0),
            make_snapshot({"cmd_get": 30}, monotonic=3.0),
            make_snapshot({"cmd_get": 50}, monotonic=5.0),
        ]
        scheduler, _, _ = _scheduler(snaps)
        await scheduler.tick()
        await scheduler.tick()
        scheduler.handle(KeyInput("R"))

        await scheduler.tick()

        assert scheduler.state.rates == {}
        assert scheduler.previous is snaps[2]

    def test_reset_keeps_error(self):
        scheduler, _, _ = _scheduler()
        failure = SampleError("boom")
        scheduler.state.error = failure

        scheduler.handle(KeyInput("r"))

        assert scheduler.state.error is failure

    def test_resize_syncs_and_redraws(self):
        surface = SyncCountingSurface()
        scheduler, _, recorder = _scheduler(surface=surface)

        assert scheduler.handle(ResizeInput(120, 40)) is True

        assert surface.syncs == 1
        assert recorder.count == 1

    def test_quit_stops_without_render(self):
        scheduler, _, recorder = _scheduler()

        assert scheduler.handle(KeyInput("q")) is False
        assert scheduler.handle(None) is False
        assert recorder.count == 0

    def test_ignored_key_does_nothing(self):
        scheduler, sampler, recorder = _scheduler()

        assert scheduler.handle(KeyInput("x")) is True
        assert recorder.count == 0
        assert sampler.calls == 0


class TestRun:
    """Tests for the run loop."""

    @pytest.mark.asyncio
    async def test_quit_before_first_tick(self):
        """An initial frame is drawn, then a queued quit ends the loop untouched."""
        scheduler, sampler, recorder = _scheduler(interval=10.0)
        await scheduler.post(KeyInput("q"))

        await asyncio.wait_for(scheduler.run(), timeout=1.0)

        assert recorder.count == 1
        assert sampler.calls == 0
        assert scheduler.running is False

    @pytest.mark.asyncio
    async def test_closed_input_ends_loop(self):
        scheduler, sampler, _ = _scheduler(interval=10.0)
        scheduler.close_input()

        await asyncio.wait_for(scheduler.run(), timeout=1.0)

        assert sampler.calls == 0

    @pytest.mark.asyncio
    async def test_close_input_when_queue_full(self):
        scheduler, _, recorder = _scheduler(interval=10.0)
        for _ in range(INPUT_QUEUE_SIZE):
            await scheduler.post(KeyInput("x"))

        scheduler.close_input()
        await asyncio.wait_for(scheduler.run(), timeout=1.0)

        assert recorder.count == 1

    @pytest.mark.asyncio
    async def test_ticks_until_quit(self):
        snaps = [
            make_snapshot({"cmd_get": 10}, monotonic=1.0),
            make_snapshot({"cmd_get": 20}, monotonic=2.0),
        ]
        scheduler = None

        class QuittingSampler(FakeSampler):
            async def __call__(self):
                result = await super().__call__()
                if self.calls == 2:
                    await scheduler.post(KeyInput("q"))
                return result

        sampler = QuittingSampler(snaps)
        recorder = RenderRecorder()
        scheduler = Scheduler(sampler, CellBuffer(80, 20), "127.0.0.1:11211", 0.05, render=recorder)

        await asyncio.wait_for(scheduler.run(), timeout=2.0)

        assert sampler.calls == 2
        # initial frame plus one per tick
        assert recorder.count == 3
        assert scheduler.state.rates == {"cmd_get": pytest.approx(10.0)}

    @pytest.mark.asyncio
    async def test_running_flag(self):
        scheduler, _, _ = _scheduler(interval=10.0)
        task = asyncio.create_task(scheduler.run())
        await asyncio.sleep(0)

        assert scheduler.running is True

        await scheduler.post(KeyInput("escape"))
        await asyncio.wait_for(task, timeout=1.0)
        assert scheduler.running is False

    @pytest.mark.asyncio
    async def test_renders_waiting_screen_on_real_surface(self):
        surface = CellBuffer(80, 20)
        scheduler = Scheduler(FakeSampler([]), surface, "127.0.0.1:11211", 10.0)
        scheduler.close_input()

        await asyncio.wait_for(scheduler.run(), timeout=1.0)

        assert surface.row_text(2) == WAITING_TEXT
        assert surface.frames == 1
