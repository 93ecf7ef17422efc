from __future__ import annotations

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Iterator

import docker
from docker.errors import DockerException


@dataclass(frozen=True)
class ContainerRef:
    id: str
    names: tuple[str, ...]
    state: str | None = None

    def matches(self, name: str) -> bool:
        """Exact match on the bare name or the name with one leading '/'."""
        return any(n == name or n == f"/{name}" for n in self.names)


class DockerRuntime:
    """Docker Engine access for remediation: list everything, restart by id.

    A fresh client is opened for every call so a daemon restart between
    cycles is picked up without keeping a stale connection around.
    """

    def __init__(self, base_url: str, timeout_s: int = 60, restart_timeout_s: int = 10):
        self.base_url = base_url
        self.timeout_s = timeout_s
        self.restart_timeout_s = restart_timeout_s

    def _client(self) -> docker.DockerClient:
        return docker.DockerClient(base_url=self.base_url, timeout=self.timeout_s)

    @contextmanager
    def _connect(self) -> Iterator[docker.DockerClient]:
        c = self._client()
        try:
            yield c
        finally:
            c.close()

    def available(self) -> bool:
        try:
            with self._connect() as c:
                c.ping()
            return True
        except DockerException:
            return False

    def list_containers(self) -> list[ContainerRef]:
        """All containers the daemon knows about, stopped ones included.

        Uses the low-level API so names come back as stored by the daemon
        (with their leading '/').
        """
        with self._connect() as c:
            rows = c.api.containers(all=True)
        return [ContainerRef(id=r["Id"], names=tuple(r.get("Names") or ()), state=r.get("State")) for r in rows]

    def restart(self, container_id: str) -> None:
        with self._connect() as c:
            c.api.restart(container_id, timeout=self.restart_timeout_s)
