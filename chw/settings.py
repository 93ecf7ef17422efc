from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from typing import Mapping, Union
from urllib.parse import urlparse


class ConfigError(ValueError):
    """Raised when the environment does not describe a usable watchdog."""


@dataclass(frozen=True)
class NoAuth:
    pass


@dataclass(frozen=True)
class BasicAuth:
    username: str
    password: str


@dataclass(frozen=True)
class BearerAuth:
    token: str


Credential = Union[NoAuth, BasicAuth, BearerAuth]

AUTH_TYPES = ("none", "basic", "bearer")


@dataclass(frozen=True)
class ProbeConfig:
    url: str
    timeout_s: float = 10.0
    credential: Credential = field(default_factory=NoAuth)
    expected_status: int = 200


@dataclass(frozen=True)
class Settings:
    probe: ProbeConfig
    check_interval_ms: int = 60000
    failure_threshold: int = 3
    containers: tuple[str, ...] = ()
    docker_socket: str = ""
    log_level: str = "INFO"
    events_db_path: str | None = None
    status_host: str = "127.0.0.1"
    status_port: int | None = None

    @property
    def check_interval_s(self) -> float:
        return self.check_interval_ms / 1000.0


def _env_str(env: Mapping[str, str], name: str) -> str | None:
    raw = env.get(name)
    if raw is None:
        return None
    raw = raw.strip()
    return raw or None


def _env_int(env: Mapping[str, str], name: str, default: int, minimum: int = 0) -> int:
    raw = _env_str(env, name)
    if raw is None:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer (got {raw!r}).") from None
    if value < minimum:
        raise ConfigError(f"{name} must be >= {minimum} (got {value}).")
    return value


def parse_containers(raw: str | None) -> tuple[str, ...]:
    """Split the comma-separated container list, keeping order and dropping blanks."""
    if not raw:
        return ()
    return tuple(name.strip() for name in raw.split(",") if name.strip())


def default_docker_socket(platform: str | None = None) -> str:
    if (platform or sys.platform) == "win32":
        return "npipe:////./pipe/docker_engine"
    return "unix:///var/run/docker.sock"


def docker_base_url(path: str) -> str:
    """Turn a socket path into a docker-py base_url.

    Accepts a full URL (unix://, npipe://, tcp://, ...), a Windows pipe path
    such as //./pipe/docker_engine, or a plain unix socket path.
    """
    if "://" in path:
        return path
    if path.startswith("//./pipe/") or path.startswith("\\\\.\\pipe\\"):
        return "npipe://" + path.replace("\\", "/")
    return "unix://" + path


def load_credential(env: Mapping[str, str]) -> Credential:
    auth_type = (_env_str(env, "AUTH_TYPE") or "none").lower()
    if auth_type not in AUTH_TYPES:
        raise ConfigError(f"AUTH_TYPE must be one of {', '.join(AUTH_TYPES)} (got {auth_type!r}).")

    # Secrets are used exactly as given; only an empty value counts as missing.
    if auth_type == "basic":
        username = env.get("AUTH_USERNAME")
        password = env.get("AUTH_PASSWORD")
        if not username or not password:
            raise ConfigError("AUTH_TYPE=basic requires AUTH_USERNAME and AUTH_PASSWORD.")
        return BasicAuth(username=username, password=password)
    if auth_type == "bearer":
        token = env.get("AUTH_TOKEN")
        if not token:
            raise ConfigError("AUTH_TYPE=bearer requires AUTH_TOKEN.")
        return BearerAuth(token=token)
    return NoAuth()


def load_settings(env: Mapping[str, str] | None = None) -> Settings:
    """Build and validate settings from the environment.

    Raises ConfigError on the first problem found; nothing is probed or
    restarted before this succeeds.
    """
    env = os.environ if env is None else env

    url = _env_str(env, "ENDPOINT_URL")
    if not url:
        raise ConfigError("ENDPOINT_URL is not set.")
    parsed = urlparse(url)
    if parsed.scheme not in {"http", "https"} or not parsed.netloc:
        raise ConfigError(f"ENDPOINT_URL must be an http(s) URL (got {url!r}).")

    timeout_ms = _env_int(env, "REQUEST_TIMEOUT_MS", 10000, minimum=1)
    probe = ProbeConfig(url=url, timeout_s=timeout_ms / 1000.0, credential=load_credential(env))

    status_port = _env_int(env, "STATUS_PORT", 0, minimum=0) or None
    if status_port is not None and status_port > 65535:
        raise ConfigError(f"STATUS_PORT must be <= 65535 (got {status_port}).")

    socket_path = _env_str(env, "DOCKER_SOCKET_PATH")

    return Settings(
        probe=probe,
        check_interval_ms=_env_int(env, "CHECK_INTERVAL_MS", 60000, minimum=1),
        failure_threshold=_env_int(env, "MAX_FAILURES_BEFORE_RESTART", 3, minimum=1),
        containers=parse_containers(env.get("CONTAINERS_TO_RESTART")),
        docker_socket=docker_base_url(socket_path) if socket_path else default_docker_socket(),
        log_level=(_env_str(env, "LOG_LEVEL") or "INFO").upper(),
        events_db_path=_env_str(env, "EVENTS_DB_PATH"),
        status_host=_env_str(env, "STATUS_HOST") or "127.0.0.1",
        status_port=status_port,
    )
