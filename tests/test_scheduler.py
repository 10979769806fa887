from __future__ import annotations

import threading
import time

import pytest

from services.scheduler import EvaluationScheduler


class CountingPass:
    def __init__(self, hold: threading.Event | None = None) -> None:
        self.calls = 0
        self.active = 0
        self.max_active = 0
        self.hold = hold
        self._lock = threading.Lock()
        self.first_call = threading.Event()

    def __call__(self) -> None:
        with self._lock:
            self.calls += 1
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        self.first_call.set()
        try:
            if self.hold is not None:
                self.hold.wait(timeout=2)
        finally:
            with self._lock:
                self.active -= 1


def _wait_for(predicate, timeout: float = 2.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


def test_start_runs_a_pass_before_the_first_interval() -> None:
    run_pass = CountingPass()
    scheduler = EvaluationScheduler(run_pass, interval_seconds=60)

    scheduler.start()
    try:
        assert run_pass.first_call.wait(timeout=1)
    finally:
        scheduler.stop(wait_for_pass=True)

    assert run_pass.calls == 1


def test_ticks_repeat_on_the_interval() -> None:
    run_pass = CountingPass()
    scheduler = EvaluationScheduler(run_pass, interval_seconds=0.02)

    scheduler.start()
    try:
        assert _wait_for(lambda: run_pass.calls >= 3)
    finally:
        scheduler.stop(wait_for_pass=True)


def test_stop_cancels_future_ticks() -> None:
    run_pass = CountingPass()
    scheduler = EvaluationScheduler(run_pass, interval_seconds=0.02)
    scheduler.start()
    assert _wait_for(lambda: run_pass.calls >= 2)

    scheduler.stop(wait_for_pass=True)
    calls_at_stop = run_pass.calls
    time.sleep(0.1)

    assert run_pass.calls == calls_at_stop
    assert scheduler.running is False


def test_stop_does_not_interrupt_a_pass_in_progress() -> None:
    hold = threading.Event()
    run_pass = CountingPass(hold=hold)
    scheduler = EvaluationScheduler(run_pass, interval_seconds=60)
    scheduler.start()
    assert run_pass.first_call.wait(timeout=1)

    scheduler.stop()
    assert run_pass.active == 1

    hold.set()
    assert _wait_for(lambda: run_pass.active == 0)
    assert run_pass.calls == 1


def test_single_flight_skips_ticks_while_a_pass_is_running() -> None:
    hold = threading.Event()
    run_pass = CountingPass(hold=hold)
    scheduler = EvaluationScheduler(run_pass, interval_seconds=0.02, single_flight=True)

    scheduler.start()
    try:
        assert _wait_for(lambda: scheduler.skipped_ticks >= 2)
        assert run_pass.max_active == 1
        assert run_pass.calls == 1
    finally:
        hold.set()
        scheduler.stop(wait_for_pass=True)

    assert scheduler.ticks == run_pass.calls + scheduler.skipped_ticks


def test_without_single_flight_passes_overlap() -> None:
    hold = threading.Event()
    run_pass = CountingPass(hold=hold)
    scheduler = EvaluationScheduler(
        run_pass, interval_seconds=0.02, single_flight=False, workers=4
    )

    scheduler.start()
    try:
        assert _wait_for(lambda: run_pass.max_active >= 2)
    finally:
        hold.set()
        scheduler.stop(wait_for_pass=True)

    assert scheduler.skipped_ticks == 0


def test_pass_exceptions_do_not_stop_the_schedule() -> None:
    calls = []

    def failing_pass() -> None:
        calls.append(1)
        raise RuntimeError("boom")

    scheduler = EvaluationScheduler(failing_pass, interval_seconds=0.02)
    scheduler.start()
    try:
        assert _wait_for(lambda: len(calls) >= 2)
    finally:
        scheduler.stop(wait_for_pass=True)


def test_start_is_idempotent() -> None:
    run_pass = CountingPass()
    scheduler = EvaluationScheduler(run_pass, interval_seconds=60)

    scheduler.start()
    scheduler.start()
    try:
        assert run_pass.first_call.wait(timeout=1)
        assert scheduler.wait_idle(timeout=1)
    finally:
        scheduler.stop(wait_for_pass=True)

    assert run_pass.calls == 1


def test_interval_must_be_positive() -> None:
    with pytest.raises(ValueError):
        EvaluationScheduler(lambda: None, interval_seconds=0)
