from __future__ import annotations

import logging
import threading

import pytest

from services.scheduler import IntervalScheduler


def test_scheduler_runs_job_repeatedly_until_stopped() -> None:
    calls: list[int] = []
    reached = threading.Event()

    def job() -> None:
        calls.append(1)
        if len(calls) >= 3:
            reached.set()

    scheduler = IntervalScheduler(job, interval_seconds=0.01)
    scheduler.start()
    try:
        assert reached.wait(timeout=5)
    finally:
        scheduler.stop(timeout=5)

    assert scheduler.is_running is False
    settled = len(calls)
    threading.Event().wait(0.05)
    assert len(calls) == settled


def test_skip_policy_drops_tick_while_previous_runs(caplog) -> None:
    release = threading.Event()
    started = threading.Event()

    def job() -> None:
        started.set()
        release.wait(timeout=5)

    scheduler = IntervalScheduler(job, interval_seconds=60, overlap_policy="skip")
    first = scheduler.run_tick()
    assert first is not None
    assert started.wait(timeout=5)

    with caplog.at_level(logging.WARNING):
        second = scheduler.run_tick()

    release.set()
    first.join(timeout=5)
    assert second is None
    assert any("skipping" in record.getMessage() for record in caplog.records)
    assert scheduler.active_ticks == 0


def test_allow_policy_lets_ticks_overlap() -> None:
    barrier = threading.Barrier(2)
    overlapped: list[bool] = []

    def job() -> None:
        try:
            barrier.wait(timeout=2)
            overlapped.append(True)
        except threading.BrokenBarrierError:
            overlapped.append(False)

    scheduler = IntervalScheduler(job, interval_seconds=60, overlap_policy="allow")
    ticks = [scheduler.run_tick(), scheduler.run_tick()]
    for tick in ticks:
        assert tick is not None
        tick.join(timeout=5)

    assert overlapped == [True, True]


def test_stop_waits_for_ticks_started_from_many_threads() -> None:
    release = threading.Event()
    finished: list[int] = []
    finished_lock = threading.Lock()

    def job() -> None:
        release.wait(timeout=5)
        with finished_lock:
            finished.append(1)

    scheduler = IntervalScheduler(job, interval_seconds=60, overlap_policy="allow")
    start = threading.Barrier(8)

    def trigger() -> None:
        start.wait(timeout=5)
        scheduler.run_tick()

    callers = [threading.Thread(target=trigger) for _ in range(8)]
    for caller in callers:
        caller.start()
    for caller in callers:
        caller.join(timeout=5)

    assert scheduler.active_ticks == 8
    release.set()
    scheduler.stop(timeout=5)

    assert len(finished) == 8
    assert scheduler.active_ticks == 0


def test_failed_tick_is_logged_and_next_tick_runs(caplog) -> None:
    outcomes: list[str] = []

    def job() -> None:
        outcomes.append("run")
        if len(outcomes) == 1:
            raise RuntimeError("collector exploded")

    scheduler = IntervalScheduler(job, interval_seconds=60)
    with caplog.at_level(logging.ERROR):
        scheduler.run_tick().join(timeout=5)  # type: ignore[union-attr]
    scheduler.run_tick().join(timeout=5)  # type: ignore[union-attr]

    assert outcomes == ["run", "run"]
    assert any("Scheduled tick failed" in record.getMessage() for record in caplog.records)


@pytest.mark.parametrize("kwargs", [{"interval_seconds": 0}, {"interval_seconds": 1, "overlap_policy": "queue"}])
def test_scheduler_rejects_invalid_configuration(kwargs) -> None:
    with pytest.raises(ValueError):
        IntervalScheduler(lambda: None, **kwargs)
