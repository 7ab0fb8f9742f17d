from __future__ import annotations

import asyncio

import pytest

from chefscript.services.scheduler import RateLimitedScheduler


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def monotonic(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += max(0.0, seconds)
        await asyncio.sleep(0)


def _recording(clock: FakeClock, starts: list[float], value: int):
    async def operation() -> int:
        starts.append(clock.now)
        return value

    return operation


class TestRateLimitedScheduler:
    def test_rejects_zero_capacity(self) -> None:
        with pytest.raises(ValueError):
            RateLimitedScheduler(capacity=0)

    def test_window_capacity(self) -> None:
        async def scenario() -> tuple[list[int], list[float]]:
            clock = FakeClock()
            scheduler = RateLimitedScheduler(capacity=3, window_seconds=60, spacing_seconds=0, clock=clock)
            starts: list[float] = []
            results = await asyncio.gather(
                *(scheduler.submit(_recording(clock, starts, index)) for index in range(5))
            )
            await scheduler.stop()
            return list(results), starts

        results, starts = asyncio.run(scenario())

        assert results == [0, 1, 2, 3, 4]
        assert starts == [0, 0, 0, 60, 60]

    def test_spacing_between_operations(self) -> None:
        async def scenario() -> list[float]:
            clock = FakeClock()
            scheduler = RateLimitedScheduler(capacity=10, window_seconds=60, spacing_seconds=0.5, clock=clock)
            starts: list[float] = []
            await asyncio.gather(*(scheduler.submit(_recording(clock, starts, index)) for index in range(3)))
            await scheduler.stop()
            return starts

        assert asyncio.run(scenario()) == [0, 0.5, 1.0]

    def test_failure_reaches_caller_and_queue_continues(self) -> None:
        async def boom() -> int:
            raise RuntimeError("upstream down")

        async def scenario() -> tuple[BaseException | int, int, int]:
            clock = FakeClock()
            scheduler = RateLimitedScheduler(capacity=5, spacing_seconds=0, clock=clock)
            starts: list[float] = []
            failed, ok = await asyncio.gather(
                scheduler.submit(boom),
                scheduler.submit(_recording(clock, starts, 7)),
                return_exceptions=True,
            )
            in_window = scheduler.operations_in_window()
            await scheduler.stop()
            return failed, ok, in_window

        failed, ok, in_window = asyncio.run(scenario())

        assert isinstance(failed, RuntimeError)
        assert ok == 7
        assert in_window == 2

    def test_window_rolls_over(self) -> None:
        async def scenario() -> int:
            clock = FakeClock()
            scheduler = RateLimitedScheduler(capacity=2, window_seconds=60, spacing_seconds=0, clock=clock)
            starts: list[float] = []
            await scheduler.submit(_recording(clock, starts, 1))
            clock.now = 61.0
            count = scheduler.operations_in_window()
            await scheduler.stop()
            return count

        assert asyncio.run(scenario()) == 0
