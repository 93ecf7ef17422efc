from __future__ import annotations

from pydantic import BaseModel, Field


class VerdictModel(BaseModel):
    ok: bool
    detail: str
    status_code: int | None = None
    kind: str | None = Field(None, description="status|no_response|request_error on failure")
    latency_ms: float | None = None


class OutcomeModel(BaseModel):
    target: str = Field(..., description="Configured container name")
    result: str = Field(..., description="not_found|restarted|failed")
    container_id: str | None = None
    reason: str | None = None


class StatusResponse(BaseModel):
    endpoint: str
    state: str = Field(..., description="healthy|degraded|exceeded")
    consecutive_failures: int = Field(..., ge=0)
    threshold: int = Field(..., ge=1)
    check_interval_ms: int
    containers: list[str]
    cycles: int
    remediations: int
    last_check_ts: str | None = None
    last_verdict: VerdictModel | None = None
    last_remediation_ts: str | None = None
    last_outcomes: list[OutcomeModel] = []
