"""Tests for the brew stopwatch."""

import asyncio

import pytest

from espressobox.services.brew_timer import BrewTimer, format_elapsed


class FakeClock:
    def __init__(self):
        self.now = 100.0

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


class TestFormatElapsed:
    @pytest.mark.parametrize(
        "seconds,expected",
        [
            (0, "00.0"),
            (5.24, "05.2"),
            (12.3, "12.3"),
            (27.9, "27.9"),
            (59.9, "59.9"),
            (59.96, "1:00.0"),
            (60, "1:00.0"),
            (83.5, "1:23.5"),
        ],
    )
    def test_format(self, seconds, expected):
        assert format_elapsed(seconds) == expected


class TestBrewTimer:
    def test_rejects_non_positive_interval(self):
        with pytest.raises(ValueError):
            BrewTimer(tick_interval=0)

    def test_idle_timer(self, clock):
        timer = BrewTimer(clock=clock)
        assert not timer.is_running
        assert timer.elapsed == 0.0
        assert timer.started_at is None


async def test_start_and_stop_freezes_elapsed(clock):
    timer = BrewTimer(clock=clock)
    timer.start()
    assert timer.is_running
    assert timer.started_at is not None

    clock.advance(27.5)
    assert timer.elapsed == pytest.approx(27.5)

    timer.stop()
    clock.advance(10)
    assert not timer.is_running
    assert timer.elapsed == pytest.approx(27.5)
    assert timer.elapsed_label == "27.5"


async def test_start_while_running_is_ignored(clock):
    timer = BrewTimer(clock=clock)
    timer.start()
    clock.advance(5)
    timer.start()
    assert timer.elapsed == pytest.approx(5)
    timer.stop()


async def test_restart_measures_from_zero(clock):
    timer = BrewTimer(clock=clock)
    timer.start()
    clock.advance(12)
    timer.stop()

    timer.start()
    clock.advance(3)
    assert timer.elapsed == pytest.approx(3)
    timer.stop()


async def test_reset_stops_and_zeroes(clock):
    timer = BrewTimer(clock=clock)
    timer.start()
    clock.advance(8)
    timer.reset()
    assert not timer.is_running
    assert timer.elapsed == 0.0
    assert timer.started_at is None


async def test_toggle(clock):
    timer = BrewTimer(clock=clock)
    timer.toggle()
    assert timer.is_running
    timer.toggle()
    assert not timer.is_running


async def test_on_tick_receives_elapsed(clock):
    ticks = []
    timer = BrewTimer(tick_interval=0.01, on_tick=ticks.append, clock=clock)
    timer.start()
    clock.advance(1.5)
    await asyncio.sleep(0.05)
    timer.stop()

    assert ticks
    assert ticks[0] == pytest.approx(1.5)

    count = len(ticks)
    await asyncio.sleep(0.05)
    assert len(ticks) == count


def test_start_requires_running_loop(clock):
    timer = BrewTimer(clock=clock)
    with pytest.raises(RuntimeError):
        timer.start()


async def test_failing_callback_keeps_ticking(clock, caplog):
    calls = []

    def on_tick(elapsed):
        calls.append(elapsed)
        raise ValueError("display failed")

    timer = BrewTimer(tick_interval=0.01, on_tick=on_tick, clock=clock)
    timer.start()
    await asyncio.sleep(0.05)

    assert timer.is_running
    assert not timer._task.done()
    assert len(calls) > 1
    assert "Timer tick callback failed" in caplog.text

    timer.stop()
    assert not timer.is_running
