"""Start/stop coordination for a single wrapped function.

A ServiceUnit adapts an arbitrary long-running callable to the start/stop
contract a service manager expects:

- start() launches the callable concurrently and returns immediately
- stop() waits for the callable to return, bounded by a deadline

The callable is never cancelled. It stops only by returning on its own; the
deadline in stop() just stops waiting for it.

Example:
    unit = ServiceUnit(serve_forever, name="worker")
    await unit.start()
    ...
    await unit.stop()
"""

import asyncio
import inspect
import logging
import threading
from collections.abc import Callable
from enum import Enum
from typing import TYPE_CHECKING, Any

from servicekit.service.errors import InvalidTransitionError, StopTimeoutError

if TYPE_CHECKING:
    from servicekit.service.manager import ServiceManager

logger = logging.getLogger(__name__)

DEFAULT_STOP_TIMEOUT = 30.0

ServiceFunc = Callable[[], Any]


class UnitState(Enum):
    """Lifecycle state of a wrapped function."""

    NOT_STARTED = "not_started"
    STARTING = "starting"
    RUNNING = "running"
    STOPPING = "stopping"
    STOPPED = "stopped"


class ServiceUnit:
    """Runs one user-supplied function per start/stop cycle.

    Plain functions run on a daemon thread, coroutine functions run as a task
    on the current event loop. Each run gets its own completion event, set
    once the function has fully returned (or raised).
    """

    def __init__(
        self,
        run: ServiceFunc,
        *,
        name: str = "",
        stop_timeout: float = DEFAULT_STOP_TIMEOUT,
        raise_on_timeout: bool = False,
    ):
        self.run = run
        self.name = name or getattr(run, "__name__", "service")
        self.stop_timeout = stop_timeout
        self.raise_on_timeout = raise_on_timeout

        self.state = UnitState.NOT_STARTED
        self.timed_out = False
        self.exception: Exception | None = None

        self._done: asyncio.Event | None = None
        self._task: asyncio.Task[None] | None = None
        self._thread: threading.Thread | None = None
        # Guards exception against runs that outlive their stop()
        self._run_lock = threading.Lock()

    @property
    def status(self) -> bool:
        """True once the unit has been started."""
        return self.state is not UnitState.NOT_STARTED

    @property
    def finished(self) -> bool:
        """True if the most recent run has returned."""
        return self._done is not None and self._done.is_set()

    async def start(self, manager: "ServiceManager | None" = None) -> None:
        """Launch the wrapped function without waiting for it.

        Raises:
            InvalidTransitionError: If a previous run has not been stopped.
        """
        if self.state not in (UnitState.NOT_STARTED, UnitState.STOPPED):
            raise InvalidTransitionError(
                f"Cannot start {self.name}: unit is {self.state.value}"
            )

        self.state = UnitState.STARTING
        self.timed_out = False
        done = asyncio.Event()
        with self._run_lock:
            self.exception = None
            self._done = done
        loop = asyncio.get_running_loop()

        try:
            if inspect.iscoroutinefunction(self.run):
                self._thread = None
                self._task = loop.create_task(self._run_async(done))
            else:
                self._task = None
                self._thread = threading.Thread(
                    target=self._run_sync,
                    args=(loop, done),
                    name=f"servicekit-{self.name}",
                    daemon=True,
                )
                self._thread.start()
        except Exception:
            self.state = UnitState.STOPPED
            raise

        self.state = UnitState.RUNNING
        logger.info("Started %s", self.name)

    async def stop(self, manager: "ServiceManager | None" = None) -> None:
        """Wait for the wrapped function to return, up to stop_timeout.

        A unit that was never started (or is already stopped) returns
        immediately. When the deadline passes the function keeps running in
        the background and the unit is marked stopped with ``timed_out``.

        Raises:
            StopTimeoutError: On deadline, only if raise_on_timeout is set.
            InvalidTransitionError: If another stop is already waiting.
        """
        if self.state in (UnitState.NOT_STARTED, UnitState.STOPPED):
            return
        if self.state is UnitState.STOPPING:
            raise InvalidTransitionError(f"{self.name} is already stopping")

        assert self._done is not None
        self.state = UnitState.STOPPING
        try:
            await asyncio.wait_for(self._done.wait(), timeout=self.stop_timeout)
        except TimeoutError:
            self.timed_out = True
        finally:
            self.state = UnitState.STOPPED

        if not self.timed_out:
            logger.info("Stopped %s", self.name)
            return

        logger.warning(
            "%s did not return within %.1fs, no longer waiting for it",
            self.name,
            self.stop_timeout,
        )
        if self.raise_on_timeout:
            raise StopTimeoutError(
                f"{self.name} did not return within {self.stop_timeout:.1f}s"
            )

    async def wait(self) -> None:
        """Wait until the current run returns."""
        if self._done is None:
            raise InvalidTransitionError(f"{self.name} has not been started")
        await self._done.wait()

    def _record_failure(self, exc: Exception, done: asyncio.Event) -> None:
        with self._run_lock:
            # Only the current run reports its failure
            if done is self._done:
                self.exception = exc
        logger.error("%s raised %s", self.name, type(exc).__name__, exc_info=exc)

    def _run_sync(self, loop: asyncio.AbstractEventLoop, done: asyncio.Event) -> None:
        try:
            self.run()
        except Exception as e:
            self._record_failure(e, done)
        finally:
            try:
                loop.call_soon_threadsafe(done.set)
            except RuntimeError:
                # Loop already closed, nothing is waiting on this run
                logger.debug("Event loop closed before %s returned", self.name)

    async def _run_async(self, done: asyncio.Event) -> None:
        try:
            await self.run()
        except Exception as e:
            self._record_failure(e, done)
        finally:
            done.set()
