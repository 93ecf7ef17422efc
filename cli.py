from __future__ import annotations

import argparse
import json
import logging
import signal
import sys
import threading
from dataclasses import asdict

import requests
from dotenv import find_dotenv, load_dotenv

from chw import db
from chw.docker_ops import DockerRuntime
from chw.health import probe
from chw.reconciler import Watchdog
from chw.remediation import RemediationCoordinator
from chw.settings import ConfigError, Settings, load_settings

logger = logging.getLogger("chw")

API_HELP = "Status API base URL; the port must match the STATUS_PORT the watchdog was started with"


def _print(obj) -> None:
    print(json.dumps(obj, indent=2, ensure_ascii=False))


def _setup_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def _log_thread_exception(args: threading.ExceptHookArgs) -> None:
    logger.error(
        "Unhandled error in thread %s",
        args.thread.name if args.thread else "?",
        exc_info=(args.exc_type, args.exc_value, args.exc_traceback),
    )


def _load(env_file: str | None) -> Settings | None:
    load_dotenv(env_file or find_dotenv(usecwd=True), override=False)
    try:
        settings = load_settings()
    except ConfigError as e:
        _setup_logging("INFO")
        logger.error("Configuration error: %s", e)
        return None
    _setup_logging(settings.log_level)
    return settings


def build_coordinator(settings: Settings) -> RemediationCoordinator:
    return RemediationCoordinator(DockerRuntime(settings.docker_socket))


def cmd_run(settings: Settings) -> int:
    db.init_db(settings.events_db_path)
    if not settings.containers:
        db.log_event("WARN", "CONTAINERS_TO_RESTART is empty; failures will be reported but nothing restarted")

    runtime = DockerRuntime(settings.docker_socket)
    logger.info("Platform: %s, docker endpoint: %s", sys.platform, settings.docker_socket)
    if not runtime.available():
        db.log_event("WARN", f"Docker is not reachable at {settings.docker_socket}; restarts will fail until it is")

    watchdog = Watchdog(settings, RemediationCoordinator(runtime), probe_fn=probe)

    if settings.status_port:
        from chw.api import serve_in_background

        serve_in_background(watchdog, settings.status_host, settings.status_port)

    stop = threading.Event()

    def _handle_shutdown(signum: int, frame: object) -> None:
        logger.info("Received %s, shutting down", signal.Signals(signum).name)
        stop.set()

    signal.signal(signal.SIGTERM, _handle_shutdown)
    signal.signal(signal.SIGINT, _handle_shutdown)
    threading.excepthook = _log_thread_exception

    watchdog.run_forever(stop)
    return 0


def cmd_check(settings: Settings) -> int:
    verdict = probe(settings.probe)
    _print(asdict(verdict))
    return 0 if verdict.ok else 1


def cmd_restart(settings: Settings) -> int:
    outcomes = build_coordinator(settings).remediate(settings.containers)
    _print([asdict(o) for o in outcomes])
    return 0 if all(o.ok for o in outcomes) else 1


def main(argv: list[str] | None = None) -> int:
    p = argparse.ArgumentParser(description="Container Health Watchdog")
    p.add_argument("--env-file", default=None, help="Read settings from this .env file (default: ./.env if present)")
    sub = p.add_subparsers(dest="cmd", required=True)

    sub.add_parser("run", help="Probe the endpoint forever and restart containers on repeated failure")
    sub.add_parser("check", help="Probe the endpoint once and print the verdict")
    sub.add_parser("restart", help="Restart the configured containers now")

    s_status = sub.add_parser("status", help="Show status of a running watchdog")
    s_status.add_argument("--api", default="http://localhost:8080", help=API_HELP)

    s_ev = sub.add_parser("events", help="Show recent watchdog events")
    s_ev.add_argument("--api", default="http://localhost:8080", help=API_HELP)
    s_ev.add_argument("--limit", type=int, default=20)

    args = p.parse_args(argv)

    if args.cmd in {"status", "events"}:
        base = args.api.rstrip("/")
        try:
            if args.cmd == "status":
                r = requests.get(f"{base}/status", timeout=10)
            else:
                r = requests.get(f"{base}/events", params={"limit": args.limit}, timeout=10)
        except requests.RequestException as e:
            print(f"Could not reach {base}: {e}", file=sys.stderr)
            return 1
        _print(r.json())
        return 0 if r.ok else 1

    settings = _load(args.env_file)
    if settings is None:
        return 1

    if args.cmd == "run":
        return cmd_run(settings)
    if args.cmd == "check":
        return cmd_check(settings)
    if args.cmd == "restart":
        return cmd_restart(settings)
    return 2


if __name__ == "__main__":
    raise SystemExit(main(sys.argv[1:]))
