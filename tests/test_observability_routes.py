import os
from fastapi.testclient import TestClient

from stilltrue.main import app
from stilltrue.services.observability import PipelineMetrics, metrics


client = TestClient(app)


def test_internal_metrics_and_reset_roundtrip():
    metrics.reset()
    metrics.incr("unit_test_counter")
    metrics.observe_ms("unit_test_timer", 12.5)
    metrics.add_trace({"event": "unit-test"})

    token = os.getenv("ADMIN_TOKEN")
    headers = {"X-Admin-Token": token} if token else {}

    resp = client.get("/internal/metrics", headers=headers)
    assert resp.status_code == 200
    data = resp.json()
    assert data["counters"]["unit_test_counter"] == 1
    assert data["timers"]["unit_test_timer"]["count"] == 1
    assert len(data["recent_traces"]) >= 1

    reset = client.post("/internal/metrics/reset", headers=headers)
    assert reset.status_code == 200

    post = client.get("/internal/metrics", headers=headers)
    assert post.status_code == 200
    post_data = post.json()
    assert post_data["counters"] == {}
    assert post_data["timers"] == {}
    assert post_data["recent_traces"] == []


def test_metrics_require_token_when_configured(monkeypatch):
    monkeypatch.setenv("ADMIN_TOKEN", "secret")
    assert client.get("/internal/metrics").status_code == 401
    assert client.get("/internal/metrics", headers={"X-Admin-Token": "wrong"}).status_code == 401
    assert client.get("/internal/metrics", headers={"X-Admin-Token": "secret"}).status_code == 200


def test_timed_records_even_when_block_raises():
    m = PipelineMetrics()
    try:
        with m.timed("stage"):
            raise ValueError("x")
    except ValueError:
        pass
    with m.timed("stage"):
        pass
    snap = m.snapshot()
    assert snap["timers"]["stage_ms"]["count"] == 2
    assert snap["timers"]["stage_ms"]["min_ms"] <= snap["timers"]["stage_ms"]["max_ms"]
