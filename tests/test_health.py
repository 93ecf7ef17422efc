import base64

import httpx

from chw.health import NO_RESPONSE, REQUEST_ERROR, STATUS, probe
from chw.settings import BasicAuth, BearerAuth, ProbeConfig

URL = "http://service.local/health"


def _transport(handler):
    return httpx.MockTransport(handler)


def test_200_is_success():
    v = probe(ProbeConfig(url=URL), transport=_transport(lambda req: httpx.Response(200, json={"ok": True})))
    assert v.ok is True
    assert v.status_code == 200
    assert v.kind is None
    assert v.latency_ms is not None


def test_other_statuses_fail():
    for code in (201, 204, 301, 404, 500, 503):
        v = probe(ProbeConfig(url=URL), transport=_transport(lambda req, c=code: httpx.Response(c)))
        assert v.ok is False
        assert v.status_code == code
        assert v.kind == STATUS


def test_redirect_is_not_followed():
    def handler(req):
        if req.url.path == "/health":
            return httpx.Response(302, headers={"Location": "http://service.local/ok"})
        return httpx.Response(200)

    v = probe(ProbeConfig(url=URL), transport=_transport(handler))
    assert v.ok is False
    assert v.status_code == 302


def test_connection_error_is_no_response():
    def handler(req):
        raise httpx.ConnectError("connection refused", request=req)

    v = probe(ProbeConfig(url=URL), transport=_transport(handler))
    assert v.ok is False
    assert v.status_code is None
    assert v.kind == NO_RESPONSE
    assert "ConnectError" in v.detail


def test_timeout_is_no_response():
    def handler(req):
        raise httpx.ReadTimeout("timed out", request=req)

    v = probe(ProbeConfig(url=URL, timeout_s=0.1), transport=_transport(handler))
    assert v.ok is False
    assert v.kind == NO_RESPONSE


def test_unsendable_request_is_request_error():
    def handler(req):
        raise httpx.UnsupportedProtocol("bad scheme", request=req)

    v = probe(ProbeConfig(url=URL), transport=_transport(handler))
    assert v.ok is False
    assert v.kind == REQUEST_ERROR


def test_basic_auth_header():
    seen = {}

    def handler(req):
        seen["auth"] = req.headers.get("Authorization")
        return httpx.Response(200)

    probe(ProbeConfig(url=URL, credential=BasicAuth("ops", "s3cret")), transport=_transport(handler))
    expected = base64.b64encode(b"ops:s3cret").decode()
    assert seen["auth"] == f"Basic {expected}"


def test_bearer_auth_header():
    seen = {}

    def handler(req):
        seen["auth"] = req.headers.get("Authorization")
        return httpx.Response(401)

    v = probe(ProbeConfig(url=URL, credential=BearerAuth("tok")), transport=_transport(handler))
    assert seen["auth"] == "Bearer tok"
    assert v.ok is False
    assert v.status_code == 401


def test_no_auth_sends_no_header():
    seen = {}

    def handler(req):
        seen["auth"] = req.headers.get("Authorization")
        return httpx.Response(200)

    probe(ProbeConfig(url=URL), transport=_transport(handler))
    assert seen["auth"] is None
