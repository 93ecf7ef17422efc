from fastapi.testclient import TestClient

from chw import db
from chw.api import create_app
from chw.health import Verdict
from chw.reconciler import Watchdog
from chw.remediation import RemediationCoordinator

from conftest import FakeRuntime


def _watchdog(make_settings, verdicts, runtime=None):
    seq = list(verdicts)
    return Watchdog(
        make_settings(failure_threshold=2),
        RemediationCoordinator(runtime or FakeRuntime()),
        probe_fn=lambda config: seq.pop(0),
    )


def test_health(make_settings):
    client = TestClient(create_app(_watchdog(make_settings, [])))
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "healthy"}


def test_status_before_any_cycle(make_settings):
    client = TestClient(create_app(_watchdog(make_settings, [])))
    body = client.get("/status").json()
    assert body["state"] == "healthy"
    assert body["consecutive_failures"] == 0
    assert body["threshold"] == 2
    assert body["containers"] == ["a", "b"]
    assert body["cycles"] == 0
    assert body["last_verdict"] is None
    assert body["last_outcomes"] == []


def test_status_tracks_failures_and_remediation(make_settings, fake_runtime):
    fail = Verdict(False, "HTTP 500 Internal Server Error", status_code=500, kind="status")
    wd = _watchdog(make_settings, [fail, fail], runtime=fake_runtime)
    client = TestClient(create_app(wd))

    wd.run_cycle()
    body = client.get("/status").json()
    assert body["state"] == "degraded"
    assert body["consecutive_failures"] == 1
    assert body["last_verdict"]["status_code"] == 500

    wd.run_cycle()
    body = client.get("/status").json()
    assert body["state"] == "healthy"
    assert body["remediations"] == 1
    assert [o["result"] for o in body["last_outcomes"]] == ["restarted", "restarted"]


def test_events_endpoint(tmp_path, make_settings):
    db.init_db(str(tmp_path / "events.db"))
    db.log_event("INFO", "one")
    db.log_event("WARN", "two", target="web")
    client = TestClient(create_app(_watchdog(make_settings, [])))

    r = client.get("/events", params={"limit": 1})
    assert r.status_code == 200
    assert [e["message"] for e in r.json()] == ["two"]

    assert client.get("/events", params={"limit": 0}).status_code == 422
