"""Fixed-interval background trigger for weather ticks."""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable, Optional

from settings import OVERLAP_POLICIES

logger = logging.getLogger(__name__)


class IntervalScheduler:
    """Runs ``job`` every ``interval_seconds`` on a background thread.

    Each tick gets its own thread. With the ``skip`` policy a tick that comes
    due while the previous one is still running is dropped; with ``allow``
    ticks may overlap.
    """

    def __init__(
        self,
        job: Callable[[], Any],
        interval_seconds: float,
        overlap_policy: str = "skip",
        name: str = "weather-scheduler",
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive.")
        if overlap_policy not in OVERLAP_POLICIES:
            raise ValueError(
                f"Unknown overlap policy {overlap_policy!r}; expected one of {OVERLAP_POLICIES}."
            )
        self.job = job
        self.interval_seconds = interval_seconds
        self.overlap_policy = overlap_policy
        self.name = name
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._running = 0
        self._running_lock = threading.Lock()
        self._tick_threads: list[threading.Thread] = []

    @property
    def is_running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    @property
    def active_ticks(self) -> int:
        with self._running_lock:
            return self._running

    def start(self) -> None:
        if self.is_running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._loop, name=self.name, daemon=True)
        self._thread.start()
        logger.info(
            "Scheduler started with %ss interval",
            self.interval_seconds,
            extra={"policy": self.overlap_policy},
        )

    def stop(self, timeout: Optional[float] = None) -> None:
        """Stop the timer and wait for in-flight ticks to finish."""
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
        with self._running_lock:
            ticks = list(self._tick_threads)
        for tick in ticks:
            tick.join(timeout)
        with self._running_lock:
            self._tick_threads = [tick for tick in self._tick_threads if tick.is_alive()]

    def run_tick(self) -> Optional[threading.Thread]:
        """Start one tick now, honouring the overlap policy.

        Returns the tick thread, or ``None`` when the tick was skipped.
        """
        with self._running_lock:
            if self.overlap_policy == "skip" and self._running:
                logger.warning(
                    "Previous tick still running; skipping",
                    extra={"policy": self.overlap_policy},
                )
                return None
            self._running += 1
            # Started under the lock so stop() never sees an unstarted thread.
            tick = threading.Thread(target=self._run_job, name=f"{self.name}-tick", daemon=True)
            self._tick_threads = [t for t in self._tick_threads if t.is_alive()]
            self._tick_threads.append(tick)
            tick.start()
        return tick

    def _loop(self) -> None:
        while not self._stop.wait(self.interval_seconds):
            self.run_tick()

    def _run_job(self) -> None:
        try:
            self.job()
        except Exception as exc:  # noqa: BLE001 - the timer outlives a failed tick
            logger.exception("Scheduled tick failed", extra={"reason": str(exc)})
        finally:
            with self._running_lock:
                self._running -= 1
