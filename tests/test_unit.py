"""Tests for the ServiceUnit start/stop coordinator."""

import asyncio
import threading
import time

import pytest

from servicekit.service.errors import InvalidTransitionError, StopTimeoutError
from servicekit.service.unit import DEFAULT_STOP_TIMEOUT, ServiceUnit, UnitState


@pytest.fixture
def release() -> threading.Event:
    """Event that unblocks functions left running after a timed-out stop."""
    event = threading.Event()
    yield event
    event.set()


class TestStartStop:
    def test_defaults(self):
        unit = ServiceUnit(lambda: None)
        assert unit.state is UnitState.NOT_STARTED
        assert unit.status is False
        assert unit.stop_timeout == DEFAULT_STOP_TIMEOUT == 30.0

    @pytest.mark.asyncio
    async def test_stop_before_start_returns_immediately(self):
        unit = ServiceUnit(lambda: None)

        started = time.monotonic()
        await unit.stop()

        assert time.monotonic() - started < 0.05
        assert unit.state is UnitState.NOT_STARTED
        assert unit.status is False

    @pytest.mark.asyncio
    async def test_start_marks_running(self, release):
        unit = ServiceUnit(release.wait)

        await unit.start()

        assert unit.state is UnitState.RUNNING
        assert unit.status is True
        release.set()
        await unit.stop()

    @pytest.mark.asyncio
    async def test_stop_waits_for_function(self):
        state = {"done": False}

        def work():
            time.sleep(0.1)
            state["done"] = True

        unit = ServiceUnit(work, stop_timeout=5)
        started = time.monotonic()
        await unit.start()
        await unit.stop()
        elapsed = time.monotonic() - started

        assert state["done"] is True
        assert 0.09 <= elapsed < 5
        assert unit.state is UnitState.STOPPED
        assert unit.timed_out is False

    @pytest.mark.asyncio
    async def test_stop_observes_final_side_effect(self):
        counter = []

        def work():
            time.sleep(0.05)
            counter.append(1)

        unit = ServiceUnit(work)
        await unit.start()
        await unit.stop()

        assert counter == [1]
        assert unit.finished is True

    @pytest.mark.asyncio
    async def test_stop_times_out_without_error(self, release):
        unit = ServiceUnit(lambda: release.wait(10), stop_timeout=0.2)

        await unit.start()
        started = time.monotonic()
        await unit.stop()
        elapsed = time.monotonic() - started

        assert 0.15 <= elapsed < 1.0
        assert unit.timed_out is True
        assert unit.state is UnitState.STOPPED
        # Still running in the background; stop never cancels it
        assert unit.finished is False

    @pytest.mark.asyncio
    async def test_stop_raises_on_timeout_when_configured(self, release):
        unit = ServiceUnit(
            lambda: release.wait(10), stop_timeout=0.1, raise_on_timeout=True
        )

        await unit.start()
        with pytest.raises(StopTimeoutError):
            await unit.stop()

        assert unit.state is UnitState.STOPPED

    @pytest.mark.asyncio
    async def test_stop_is_idempotent(self):
        unit = ServiceUnit(lambda: None)
        await unit.start()
        await unit.stop()

        started = time.monotonic()
        await unit.stop()

        assert time.monotonic() - started < 0.05
        assert unit.state is UnitState.STOPPED


class TestTransitions:
    @pytest.mark.asyncio
    async def test_start_while_running_is_rejected(self, release):
        unit = ServiceUnit(release.wait)
        await unit.start()

        with pytest.raises(InvalidTransitionError, match="running"):
            await unit.start()

        release.set()
        await unit.stop()

    @pytest.mark.asyncio
    async def test_restart_cycle(self):
        runs = []
        unit = ServiceUnit(lambda: runs.append(1))

        await unit.start()
        await unit.stop()
        await unit.start()
        await unit.stop()

        assert runs == [1, 1]
        assert unit.state is UnitState.STOPPED

    @pytest.mark.asyncio
    async def test_concurrent_stop_is_rejected(self, release):
        unit = ServiceUnit(release.wait, stop_timeout=5)
        await unit.start()

        first = asyncio.create_task(unit.stop())
        await asyncio.sleep(0.01)
        with pytest.raises(InvalidTransitionError, match="already stopping"):
            await unit.stop()

        release.set()
        await first

    @pytest.mark.asyncio
    async def test_wait_before_start(self):
        unit = ServiceUnit(lambda: None)
        with pytest.raises(InvalidTransitionError):
            await unit.wait()


class TestFunctionKinds:
    @pytest.mark.asyncio
    async def test_coroutine_function(self):
        state = {"done": False}

        async def work():
            await asyncio.sleep(0.05)
            state["done"] = True

        unit = ServiceUnit(work)
        await unit.start()
        await unit.stop()

        assert state["done"] is True

    @pytest.mark.asyncio
    async def test_exception_is_recorded(self):
        def work():
            raise RuntimeError("boom")

        unit = ServiceUnit(work)
        await unit.start()
        await unit.stop()

        assert isinstance(unit.exception, RuntimeError)
        assert unit.timed_out is False
        assert unit.state is UnitState.STOPPED

    @pytest.mark.asyncio
    async def test_exception_is_cleared_on_next_start(self):
        calls = []

        def work():
            calls.append(1)
            if len(calls) == 1:
                raise RuntimeError("first run fails")

        unit = ServiceUnit(work)
        await unit.start()
        await unit.stop()
        assert unit.exception is not None

        await unit.start()
        await unit.stop()
        assert unit.exception is None

    @pytest.mark.asyncio
    async def test_timed_out_run_does_not_report_into_next_run(self, release):
        calls = []

        def work():
            calls.append(1)
            if len(calls) == 1:
                release.wait()
                raise RuntimeError("late failure")

        unit = ServiceUnit(work, stop_timeout=0.1)
        await unit.start()
        first = unit._thread
        await unit.stop()
        assert unit.timed_out is True

        await unit.start()
        await unit.stop()
        release.set()
        await asyncio.to_thread(first.join, 5)

        assert not first.is_alive()
        assert unit.timed_out is False
        assert unit.exception is None

    def test_name_defaults_to_function_name(self):
        def crawl():
            pass

        assert ServiceUnit(crawl).name == "crawl"
        assert ServiceUnit(crawl, name="crawler").name == "crawler"
