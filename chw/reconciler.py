from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from threading import Event, Lock
from typing import Callable

from . import db
from .health import Verdict, probe
from .remediation import RemediationCoordinator, RemediationOutcome
from .runtime import FailureCounter, Transition
from .settings import ProbeConfig, Settings

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CycleReport:
    verdict: Verdict
    transition: Transition
    outcomes: list[RemediationOutcome] | None = None

    @property
    def remediated(self) -> bool:
        return self.outcomes is not None


@dataclass
class WatchdogSnapshot:
    cycles: int = 0
    last_check_ts: str | None = None
    last_verdict: Verdict | None = None
    last_remediation_ts: str | None = None
    last_outcomes: list[RemediationOutcome] = field(default_factory=list)
    remediations: int = 0


class Watchdog:
    """Probe, count, remediate; once now and then every interval.

    Cycles run strictly one after another on the calling thread. If a cycle
    overruns the interval, the missed ticks collapse into one immediate
    cycle and the schedule restarts from there.
    """

    def __init__(
        self,
        settings: Settings,
        coordinator: RemediationCoordinator,
        probe_fn: Callable[[ProbeConfig], Verdict] = probe,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.settings = settings
        self.coordinator = coordinator
        self.counter = FailureCounter(settings.failure_threshold)
        self._probe = probe_fn
        self._clock = clock
        self._lock = Lock()
        self._snapshot = WatchdogSnapshot()

    def snapshot(self) -> WatchdogSnapshot:
        with self._lock:
            s = self._snapshot
            return WatchdogSnapshot(
                cycles=s.cycles,
                last_check_ts=s.last_check_ts,
                last_verdict=s.last_verdict,
                last_remediation_ts=s.last_remediation_ts,
                last_outcomes=list(s.last_outcomes),
                remediations=s.remediations,
            )

    def run_cycle(self, stop: Event | None = None) -> CycleReport:
        threshold = self.counter.threshold
        verdict = self._probe(self.settings.probe)
        t = self.counter.record(verdict.ok)

        with self._lock:
            self._snapshot.cycles += 1
            self._snapshot.last_check_ts = db.utc_now()
            self._snapshot.last_verdict = verdict

        if verdict.ok:
            if t.previous > 0:
                db.log_event("INFO", f"Health check OK ({verdict.detail}); failure count reset from {t.previous}")
            else:
                logger.info("Health check OK (%s, %sms)", verdict.detail, verdict.latency_ms)
            return CycleReport(verdict, t)

        db.log_event("WARN", f"Health check failed ({verdict.detail}); consecutive failures {t.current}/{threshold}")
        if not t.remediate:
            logger.warning("Waiting for %d more failure(s) before restarting", threshold - t.current)
            return CycleReport(verdict, t)

        db.log_event("ERROR", f"Failure threshold {threshold} reached; restarting containers")
        outcomes: list[RemediationOutcome] = []
        try:
            outcomes = self.coordinator.remediate(self.settings.containers, stop=stop)
        finally:
            # One remediation per crossing, whatever happened to each container.
            self.counter.reset()
            with self._lock:
                self._snapshot.remediations += 1
                self._snapshot.last_remediation_ts = db.utc_now()
                self._snapshot.last_outcomes = list(outcomes)
        return CycleReport(verdict, t, outcomes)

    def run_forever(self, stop: Event) -> None:
        interval = self.settings.check_interval_s
        db.log_event(
            "INFO",
            f"Watchdog started: {self.settings.probe.url} every {interval:g}s, "
            f"threshold {self.counter.threshold}, containers {', '.join(self.settings.containers) or '-'}",
        )
        next_due = self._clock()
        while not stop.is_set():
            try:
                self.run_cycle(stop)
            except Exception as e:
                db.log_event("ERROR", f"Watchdog cycle failed: {type(e).__name__}: {e}")

            next_due += interval
            now = self._clock()
            if next_due < now:
                logger.warning("Cycle overran the %gs interval; running the next one now", interval)
                next_due = now
            stop.wait(max(0.0, next_due - now))
        db.log_event("INFO", "Watchdog stopped")
