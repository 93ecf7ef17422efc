from __future__ import annotations

import time
from dataclasses import dataclass

import httpx

from .settings import BasicAuth, BearerAuth, Credential, NoAuth, ProbeConfig

# Failure kinds, for diagnostics only.
STATUS = "status"
NO_RESPONSE = "no_response"
REQUEST_ERROR = "request_error"


@dataclass(frozen=True)
class Verdict:
    ok: bool
    detail: str
    status_code: int | None = None
    kind: str | None = None
    latency_ms: float | None = None


def _auth_options(credential: Credential) -> tuple[httpx.Auth | None, dict[str, str]]:
    if isinstance(credential, BasicAuth):
        return httpx.BasicAuth(credential.username, credential.password), {}
    if isinstance(credential, BearerAuth):
        return None, {"Authorization": f"Bearer {credential.token}"}
    if isinstance(credential, NoAuth):
        return None, {}
    raise TypeError(f"Unsupported credential: {credential!r}")


def probe(config: ProbeConfig, transport: httpx.BaseTransport | None = None) -> Verdict:
    """Call the health endpoint once.

    Only `config.expected_status` (200) counts as healthy. Anything else,
    including redirects, timeouts and connection errors, is a failure whose
    `kind` says whether the server answered, went silent, or the request
    never left.
    """
    auth, headers = _auth_options(config.credential)
    start = time.monotonic()

    def elapsed() -> float:
        return round((time.monotonic() - start) * 1000.0, 2)

    try:
        with httpx.Client(timeout=config.timeout_s, follow_redirects=False, transport=transport) as client:
            resp = client.get(config.url, auth=auth, headers=headers)
    except (httpx.InvalidURL, httpx.UnsupportedProtocol, httpx.LocalProtocolError) as e:
        return Verdict(False, f"Request could not be sent: {type(e).__name__}: {e}", kind=REQUEST_ERROR, latency_ms=elapsed())
    except httpx.TransportError as e:
        return Verdict(False, f"No response: {type(e).__name__}: {e}", kind=NO_RESPONSE, latency_ms=elapsed())
    except Exception as e:
        return Verdict(False, f"Error: {type(e).__name__}: {e}", kind=REQUEST_ERROR, latency_ms=elapsed())

    latency_ms = elapsed()
    if resp.status_code != config.expected_status:
        reason = resp.reason_phrase or "unexpected status"
        return Verdict(False, f"HTTP {resp.status_code} {reason}", status_code=resp.status_code, kind=STATUS, latency_ms=latency_ms)
    return Verdict(True, f"HTTP {resp.status_code}", status_code=resp.status_code, latency_ms=latency_ms)
