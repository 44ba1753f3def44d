"""Tests for SimpleProgress: sequential callback queues."""

import asyncio

import pytest

from chorotiles.progress.simple import SimpleProgress, StepEntry


def _record(progress):
    """Subscribe and collect every progress value and non-empty message."""
    values, messages = [], []
    progress.on_progress(values.append)
    progress.on_message(lambda m, e: m and messages.append(m))
    return values, messages


class TestOrdering:
    @pytest.mark.asyncio
    async def test_steps_run_in_order_with_messages(self):
        calls = []
        progress = SimpleProgress([
            StepEntry(lambda: calls.append("a"), "stepA"),
            StepEntry(lambda: calls.append("b"), "stepB"),
        ])
        values, messages = _record(progress)

        await asyncio.wait_for(progress.done(), 1)

        assert calls == ["a", "b"]
        assert messages == ["stepA", "stepB", "Finished"]
        assert values == [0, 50, 100]
        assert progress.error is None

    @pytest.mark.asyncio
    async def test_constructor_returns_before_first_step(self):
        calls = []
        progress = SimpleProgress(lambda: calls.append(1))
        assert calls == []
        await asyncio.wait_for(progress.done(), 1)
        assert calls == [1]

    @pytest.mark.asyncio
    async def test_async_steps_are_awaited(self):
        calls = []

        async def slow(tag):
            await asyncio.sleep(0.01)
            calls.append(tag)

        progress = SimpleProgress([lambda: slow("first"), lambda: slow("second")])
        await asyncio.wait_for(progress.done(), 1)
        assert calls == ["first", "second"]

    @pytest.mark.asyncio
    async def test_empty_queue_finishes(self):
        progress = SimpleProgress([])
        await asyncio.wait_for(progress.done(), 1)
        assert progress.message == "Finished"
        assert progress.progress == 100
        assert progress.total == 0

    @pytest.mark.asyncio
    async def test_eighths_round_half_up(self):
        progress = SimpleProgress([lambda: None] * 8)
        seen = []
        progress.on_progress(seen.append)
        await asyncio.wait_for(progress.done(), 1)
        assert seen == [0, 13, 25, 38, 50, 63, 75, 88, 100]

    @pytest.mark.asyncio
    async def test_position_advances(self):
        progress = SimpleProgress([lambda: None] * 4)
        await asyncio.wait_for(progress.done(), 1)
        assert progress.total == 4
        assert progress.position == 4

    @pytest.mark.asyncio
    async def test_rejects_non_callable(self):
        with pytest.raises(TypeError, match="Expected a callable"):
            SimpleProgress([42])


class TestAbort:
    @pytest.mark.asyncio
    async def test_abort_skips_remaining_steps(self):
        gate = asyncio.Event()
        calls = []

        async def first():
            calls.append("first")
            await gate.wait()

        progress = SimpleProgress([first, lambda: calls.append("second")])
        await asyncio.sleep(0.01)
        assert calls == ["first"]

        progress.abort()
        assert progress.completed is True
        gate.set()
        await asyncio.sleep(0.01)

        assert calls == ["first"]
        assert progress.error is None
        await asyncio.wait_for(progress.done(), 1)

    @pytest.mark.asyncio
    async def test_abort_before_start_runs_nothing(self):
        calls = []
        progress = SimpleProgress(lambda: calls.append(1))
        progress.abort()
        await asyncio.sleep(0.01)
        assert calls == []


class TestFailure:
    @pytest.mark.asyncio
    async def test_step_exception_fails_progress(self):
        calls = []

        def broken():
            raise RuntimeError("step exploded")

        progress = SimpleProgress([
            StepEntry(broken, "breaking"),
            StepEntry(lambda: calls.append("after"), "never"),
        ])
        await asyncio.wait_for(progress.done(), 1)

        assert calls == []
        assert isinstance(progress.error, RuntimeError)
        assert progress.is_error is True
        assert progress.message == "step exploded"

    @pytest.mark.asyncio
    async def test_async_step_exception_fails_progress(self):
        async def broken():
            raise ValueError("async failure")

        progress = SimpleProgress(broken)
        await asyncio.wait_for(progress.done(), 1)
        assert isinstance(progress.error, ValueError)
