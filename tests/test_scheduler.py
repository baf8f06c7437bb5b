"""Tests for the periodic schedulers."""

import threading
import time

import pytest

from snort_perfmon.collector.manager import ManualScheduler, ThreadedScheduler
from snort_perfmon.errors import SchedulerError


class TestManualScheduler:

    def test_tick_runs_callbacks(self):
        scheduler = ManualScheduler()
        calls = []
        scheduler.register_periodic("a", 1, lambda: calls.append("a"))
        scheduler.register_periodic("b", 1, lambda: False)
        assert scheduler.tick() == {"a": True, "b": False}
        assert scheduler.tick("a") == {"a": True}
        assert calls == ["a", "a"]

    def test_callback_exception_is_a_failed_tick(self):
        scheduler = ManualScheduler()

        def boom():
            raise RuntimeError("boom")

        scheduler.register_periodic("a", 1, boom)
        assert scheduler.tick() == {"a": False}
        assert scheduler.names == ["a"]

    def test_rejects_bad_registrations(self):
        scheduler = ManualScheduler()
        with pytest.raises(SchedulerError):
            scheduler.register_periodic("a", 0, lambda: True)
        scheduler.register_periodic("a", 1, lambda: True)
        with pytest.raises(SchedulerError):
            scheduler.register_periodic("a", 1, lambda: True)
        with pytest.raises(SchedulerError):
            scheduler.tick("missing")
        with pytest.raises(SchedulerError):
            scheduler.unregister("missing")

    def test_teardown_runs_once(self):
        scheduler = ManualScheduler()
        torn = []
        scheduler.register_periodic("a", 1, lambda: True, lambda: torn.append("a"))
        scheduler.register_periodic("b", 1, lambda: True, lambda: torn.append("b"))
        scheduler.unregister("a")
        scheduler.shutdown()
        scheduler.shutdown()
        assert torn == ["a", "b"]

    def test_no_registration_after_shutdown(self):
        scheduler = ManualScheduler()
        scheduler.shutdown()
        with pytest.raises(SchedulerError):
            scheduler.register_periodic("a", 1, lambda: True)


class TestThreadedScheduler:

    def test_runs_in_background_until_shutdown(self):
        scheduler = ThreadedScheduler()
        ticked = threading.Event()
        torn = []
        scheduler.register_periodic("a", 0.05, ticked.set, lambda: torn.append("a"))
        scheduler.start()
        try:
            assert ticked.wait(2)
        finally:
            scheduler.shutdown()
        assert torn == ["a"]
        assert scheduler.names == []

    def test_registration_after_start_runs_immediately(self):
        scheduler = ThreadedScheduler()
        scheduler.start()
        ticked = threading.Event()
        try:
            scheduler.register_periodic("late", 0.05, ticked.set)
            assert ticked.wait(2)
        finally:
            scheduler.shutdown()

    def test_same_registration_never_overlaps(self):
        scheduler = ThreadedScheduler()
        active = []
        overlaps = []
        lock = threading.Lock()

        def slow():
            with lock:
                active.append(1)
                if len(active) > 1:
                    overlaps.append(len(active))
            time.sleep(0.02)
            with lock:
                active.pop()

        scheduler.register_periodic("slow", 0.001, slow)
        scheduler.start()
        time.sleep(0.2)
        scheduler.shutdown()
        assert overlaps == []

    def test_not_started_without_start(self):
        scheduler = ThreadedScheduler()
        ticked = threading.Event()
        scheduler.register_periodic("a", 0.01, ticked.set)
        assert not ticked.wait(0.1)
        scheduler.shutdown()

    def test_start_between_insert_and_register_hook_starts_one_thread(self):
        """start() running after the insert but before the hook owns the thread."""
        started = []

        class Interleaved(ThreadedScheduler):
            def _on_register(self, reg, start_now):
                self.start()
                super()._on_register(reg, start_now)

            def _start_thread(self, reg):
                started.append(reg.name)
                super()._start_thread(reg)

        scheduler = Interleaved()
        ticked = threading.Event()
        try:
            scheduler.register_periodic("a", 0.05, ticked.set)
            assert ticked.wait(2)
        finally:
            scheduler.shutdown()
        assert started == ["a"]

    def test_thread_is_started_once_per_registration(self):
        scheduler = ThreadedScheduler()
        scheduler.register_periodic("a", 10, lambda: True)
        scheduler.start()
        try:
            reg = scheduler._registrations["a"]
            first = reg.thread
            scheduler._start_thread(reg)
            assert reg.thread is first
        finally:
            scheduler.shutdown()
