"""Fixed-cadence scheduler for alarm evaluation passes."""

from __future__ import annotations

import logging
from concurrent.futures import Future, ThreadPoolExecutor, wait
from functools import lru_cache
from threading import Event, Lock, Thread
from typing import Callable, Optional, Set

from services.monitor import build_default_monitor
from settings import get_settings

logger = logging.getLogger(__name__)


class EvaluationScheduler:
    """Fires ``run_pass`` once on ``start()`` and then every ``interval_seconds``.

    Each tick runs on a worker thread. With ``single_flight`` a tick that
    arrives while a pass is still running is skipped; without it, passes may
    overlap. ``stop()`` cancels future ticks and leaves an in-flight pass to
    finish on its own.
    """

    def __init__(
        self,
        run_pass: Callable[[], object],
        interval_seconds: float = 60.0,
        single_flight: bool = True,
        workers: int = 4,
        name: str = "alarm-check",
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError("Scheduler interval must be positive.")
        self.run_pass = run_pass
        self.interval_seconds = interval_seconds
        self.single_flight = single_flight
        self.name = name
        self._workers = max(2, workers)
        self._executor: Optional[ThreadPoolExecutor] = None
        self._timer: Optional[Thread] = None
        self._stop_event = Event()
        self._state_lock = Lock()
        self._run_lock = Lock()
        self._futures: Set[Future[None]] = set()
        self._futures_lock = Lock()
        self._counter_lock = Lock()
        self.ticks = 0
        self.skipped_ticks = 0

    @property
    def running(self) -> bool:
        return self._timer is not None

    def start(self) -> None:
        with self._state_lock:
            if self._timer is not None:
                return
            self._stop_event.clear()
            self._executor = ThreadPoolExecutor(
                max_workers=self._workers, thread_name_prefix=self.name
            )
            self._timer = Thread(target=self._loop, name=f"{self.name}-timer", daemon=True)
            self._fire()
            self._timer.start()
        logger.info("Scheduler %r started, checking every %ss", self.name, self.interval_seconds)

    def stop(self, wait_for_pass: bool = False) -> None:
        with self._state_lock:
            timer, executor = self._timer, self._executor
            if timer is None:
                return
            self._stop_event.set()
            self._timer = None
            self._executor = None
        timer.join()
        if executor is not None:
            executor.shutdown(wait=wait_for_pass)
        logger.info("Scheduler %r stopped", self.name)

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """Block until every submitted pass has finished; returns False on timeout."""
        with self._futures_lock:
            pending = list(self._futures)
        _, not_done = wait(pending, timeout=timeout)
        return not not_done

    def _loop(self) -> None:
        while not self._stop_event.wait(self.interval_seconds):
            with self._state_lock:
                if self._stop_event.is_set():
                    break
                self._fire()

    def _fire(self) -> None:
        executor = self._executor
        if executor is None:
            return
        with self._counter_lock:
            self.ticks += 1
        future = executor.submit(self._guarded_run)
        with self._futures_lock:
            self._futures.add(future)
        future.add_done_callback(self._discard)

    def _discard(self, future: Future[None]) -> None:
        with self._futures_lock:
            self._futures.discard(future)

    def _guarded_run(self) -> None:
        if not self.single_flight:
            self._invoke()
            return
        if not self._run_lock.acquire(blocking=False):
            with self._counter_lock:
                self.skipped_ticks += 1
            logger.warning("Previous evaluation pass still running; skipping tick")
            return
        try:
            self._invoke()
        finally:
            self._run_lock.release()

    def _invoke(self) -> None:
        try:
            self.run_pass()
        except Exception:
            logger.exception("Scheduled evaluation pass raised")


@lru_cache
def build_default_scheduler() -> EvaluationScheduler:
    settings = get_settings()
    monitor = build_default_monitor()
    return EvaluationScheduler(
        run_pass=monitor.run_evaluation_pass,
        interval_seconds=settings.check_interval_seconds,
        single_flight=settings.single_flight,
    )
