"""Schedulers that invoke read callbacks at a fixed interval."""

from __future__ import annotations

import abc
import logging
import threading
from dataclasses import dataclass, field
from typing import Callable

from ..errors import SchedulerError

logger = logging.getLogger(__name__)

ReadCallback = Callable[[], object]
Teardown = Callable[[], None]


@dataclass
class Registration:
    """A periodic read callback and the teardown that releases its data."""

    name: str
    interval: float
    callback: ReadCallback
    teardown: Teardown | None = None
    stop_event: threading.Event = field(default_factory=threading.Event, repr=False)
    thread: threading.Thread | None = field(default=None, repr=False)

    def run_once(self) -> bool:
        """Invoke the callback, logging any exception it raises."""
        try:
            return self.callback() is not False
        except Exception:
            logger.exception("Read callback %s failed", self.name)
            return False

    def release(self) -> None:
        if self.teardown is None:
            return
        teardown, self.teardown = self.teardown, None
        try:
            teardown()
        except Exception:
            logger.exception("Teardown of %s failed", self.name)


class Scheduler(abc.ABC):
    """Port through which read callbacks are registered.

    Implementations must never run the same registration concurrently
    with itself.
    """

    def __init__(self) -> None:
        self._registrations: dict[str, Registration] = {}
        self._lock = threading.Lock()
        self._closed = False

    def register_periodic(
        self,
        name: str,
        interval: float,
        callback: ReadCallback,
        teardown: Teardown | None = None,
    ) -> None:
        """Register *callback* to run every *interval* seconds."""
        if interval <= 0:
            raise SchedulerError(f"interval for {name} must be positive")
        reg = Registration(name=name, interval=interval, callback=callback, teardown=teardown)
        with self._lock:
            if self._closed:
                raise SchedulerError("scheduler has been shut down")
            if name in self._registrations:
                raise SchedulerError(f"a read callback named {name} is already registered")
            self._registrations[name] = reg
            start_now = self._is_running()
        self._on_register(reg, start_now)
        logger.debug("Registered read callback %s (interval=%.1fs)", name, interval)

    def unregister(self, name: str) -> None:
        """Stop and tear down the registration called *name*."""
        with self._lock:
            reg = self._registrations.pop(name, None)
        if reg is None:
            raise SchedulerError(f"no read callback named {name}")
        self._on_unregister(reg)
        reg.release()

    def shutdown(self) -> None:
        """Stop every registration and run each teardown exactly once."""
        with self._lock:
            self._closed = True
            regs = list(self._registrations.values())
            self._registrations.clear()
        for reg in regs:
            self._on_unregister(reg)
            reg.release()

    @property
    def names(self) -> list[str]:
        with self._lock:
            return list(self._registrations)

    def _is_running(self) -> bool:
        return False

    def _on_register(self, reg: Registration, start_now: bool) -> None:
        pass

    def _on_unregister(self, reg: Registration) -> None:
        pass


class ThreadedScheduler(Scheduler):
    """Runs each registration on its own background thread.

    Registrations made before :meth:`start` are started with it; later ones
    start immediately.
    """

    def __init__(self) -> None:
        super().__init__()
        self._started = False

    def _run(self, reg: Registration) -> None:
        """Background thread loop."""
        while not reg.stop_event.is_set():
            reg.run_once()
            reg.stop_event.wait(reg.interval)

    def _start_thread(self, reg: Registration) -> None:
        if reg.thread is not None:
            return
        reg.thread = threading.Thread(target=self._run, args=(reg,), name=reg.name, daemon=True)
        reg.thread.start()

    def _is_running(self) -> bool:
        return self._started

    def _on_register(self, reg: Registration, start_now: bool) -> None:
        # start() picks up registrations that were inserted before it ran
        if start_now:
            self._start_thread(reg)

    def _on_unregister(self, reg: Registration) -> None:
        reg.stop_event.set()
        if reg.thread is not None and reg.thread is not threading.current_thread():
            reg.thread.join(timeout=5)
        reg.thread = None

    def start(self) -> None:
        """Start all registered callbacks in the background."""
        with self._lock:
            if self._started:
                return
            self._started = True
            regs = list(self._registrations.values())
        for reg in regs:
            self._start_thread(reg)
        logger.info("ThreadedScheduler started (%d read callbacks)", len(regs))

    def shutdown(self) -> None:
        super().shutdown()
        self._started = False
        logger.info("ThreadedScheduler stopped")


class ManualScheduler(Scheduler):
    """Records registrations and runs them only when :meth:`tick` is called."""

    def tick(self, name: str | None = None) -> dict[str, bool]:
        """Run one registration, or all of them, synchronously.

        Returns the success flag of each callback that ran.
        """
        with self._lock:
            if name is None:
                regs = list(self._registrations.values())
            elif name in self._registrations:
                regs = [self._registrations[name]]
            else:
                raise SchedulerError(f"no read callback named {name}")
        return {reg.name: reg.run_once() for reg in regs}
