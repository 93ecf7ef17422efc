from __future__ import annotations

from dataclasses import dataclass
from threading import Event
from typing import Iterable, Protocol, Sequence

from docker.errors import DockerException, NotFound

from . import db
from .docker_ops import ContainerRef

NOT_FOUND = "not_found"
RESTARTED = "restarted"
FAILED = "failed"

SHUTDOWN_REASON = "shutdown requested"


class ContainerRuntime(Protocol):
    def list_containers(self) -> list[ContainerRef]: ...

    def restart(self, container_id: str) -> None: ...


@dataclass(frozen=True)
class RemediationOutcome:
    target: str
    result: str  # not_found|restarted|failed
    container_id: str | None = None
    reason: str | None = None

    @property
    def ok(self) -> bool:
        return self.result == RESTARTED


def resolve(name: str, containers: Iterable[ContainerRef]) -> ContainerRef | None:
    for c in containers:
        if c.matches(name):
            return c
    return None


class RemediationCoordinator:
    """Restarts the configured containers one after another.

    Every target gets exactly one outcome. Lookup and restart errors are
    recorded against that target and the loop moves on. Once `stop` is set,
    the targets not yet started are recorded as failed without touching them.
    """

    def __init__(self, runtime: ContainerRuntime):
        self.runtime = runtime

    def remediate(self, targets: Sequence[str], stop: Event | None = None) -> list[RemediationOutcome]:
        db.log_event("WARN", f"Remediation started for {len(targets)} container(s): {', '.join(targets) or '-'}")
        outcomes: list[RemediationOutcome] = []
        for name in targets:
            if stop is not None and stop.is_set():
                outcomes.append(self._failed(name, None, SHUTDOWN_REASON))
                continue
            outcomes.append(self._remediate_one(name))
        restarted = sum(1 for o in outcomes if o.ok)
        db.log_event("INFO", f"Remediation finished: {restarted}/{len(outcomes)} restarted")
        return outcomes

    def _remediate_one(self, name: str) -> RemediationOutcome:
        try:
            # Resolved on every run: containers may have been recreated since the last one.
            ref = resolve(name, self.runtime.list_containers())
        except Exception as e:
            return self._failed(name, None, f"Could not list containers: {_describe(e)}")

        if ref is None:
            db.log_event("ERROR", "Container not found", target=name)
            return RemediationOutcome(target=name, result=NOT_FOUND)

        db.log_event("INFO", f"Restarting container {ref.id[:12]} ({ref.state or 'unknown state'})", target=name)
        try:
            self.runtime.restart(ref.id)
        except NotFound as e:
            return self._failed(name, ref.id, f"Container disappeared before restart: {_describe(e)}")
        except Exception as e:
            return self._failed(name, ref.id, _describe(e))

        db.log_event("INFO", "Container restarted", target=name)
        return RemediationOutcome(target=name, result=RESTARTED, container_id=ref.id)

    def _failed(self, name: str, container_id: str | None, reason: str) -> RemediationOutcome:
        db.log_event("ERROR", f"Restart failed: {reason}", target=name)
        return RemediationOutcome(target=name, result=FAILED, container_id=container_id, reason=reason)


def _describe(e: Exception) -> str:
    if isinstance(e, DockerException):
        return f"{type(e).__name__}: {e}"
    return f"Unexpected {type(e).__name__}: {e}"
