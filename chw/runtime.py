from __future__ import annotations

from dataclasses import dataclass
from threading import Lock

HEALTHY = "healthy"
DEGRADED = "degraded"
EXCEEDED = "exceeded"


@dataclass(frozen=True)
class Transition:
    previous: int
    current: int
    state: str

    @property
    def remediate(self) -> bool:
        return self.state == EXCEEDED


class FailureCounter:
    """Consecutive-failure count for one endpoint.

    healthy (0) -> degraded (1..threshold-1) -> exceeded (threshold).
    Once exceeded, the caller remediates and then calls `reset()`; the count
    never goes past the threshold.
    """

    def __init__(self, threshold: int) -> None:
        if int(threshold) < 1:
            raise ValueError("threshold must be >= 1")
        self.threshold = int(threshold)
        self._lock = Lock()
        self._failures = 0

    @property
    def failures(self) -> int:
        with self._lock:
            return self._failures

    @property
    def state(self) -> str:
        with self._lock:
            return self._state(self._failures)

    def _state(self, n: int) -> str:
        if n == 0:
            return HEALTHY
        if n >= self.threshold:
            return EXCEEDED
        return DEGRADED

    def record(self, ok: bool) -> Transition:
        with self._lock:
            prev = self._failures
            if ok:
                self._failures = 0
            else:
                self._failures = min(prev + 1, self.threshold)
            return Transition(previous=prev, current=self._failures, state=self._state(self._failures))

    def reset(self) -> int:
        """Back to healthy. Returns the count that was cleared."""
        with self._lock:
            prev = self._failures
            self._failures = 0
            return prev
