from __future__ import annotations

import logging
from dataclasses import asdict
from threading import Thread
from typing import Any

from fastapi import FastAPI, Query

from . import db
from .api_models import OutcomeModel, StatusResponse, VerdictModel
from .reconciler import Watchdog

logger = logging.getLogger(__name__)


def create_app(watchdog: Watchdog) -> FastAPI:
    """Read-only view of a running watchdog."""
    app = FastAPI(title="Container Health Watchdog")

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "healthy"}

    @app.get("/status", response_model=StatusResponse)
    def status() -> StatusResponse:
        snap = watchdog.snapshot()
        s = watchdog.settings
        return StatusResponse(
            endpoint=s.probe.url,
            state=watchdog.counter.state,
            consecutive_failures=watchdog.counter.failures,
            threshold=watchdog.counter.threshold,
            check_interval_ms=s.check_interval_ms,
            containers=list(s.containers),
            cycles=snap.cycles,
            remediations=snap.remediations,
            last_check_ts=snap.last_check_ts,
            last_verdict=VerdictModel(**asdict(snap.last_verdict)) if snap.last_verdict else None,
            last_remediation_ts=snap.last_remediation_ts,
            last_outcomes=[OutcomeModel(**asdict(o)) for o in snap.last_outcomes],
        )

    @app.get("/events")
    def events(limit: int = Query(50, ge=1, le=1000)) -> list[dict[str, Any]]:
        return db.latest_events(limit)

    return app


def serve_in_background(watchdog: Watchdog, host: str, port: int) -> Thread:
    import uvicorn

    config = uvicorn.Config(create_app(watchdog), host=host, port=port, log_level="warning", access_log=False)
    server = uvicorn.Server(config)
    thr = Thread(target=server.run, name="chw-status-api", daemon=True)
    thr.start()
    logger.info("Status API listening on http://%s:%d", host, port)
    return thr
