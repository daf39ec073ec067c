from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from queue_runner.config import reset_settings_cache
from queue_runner.metrics import Disposition, QueueMetrics
from queue_runner.metrics.exposition import create_app, render_latest


def test_render_latest_exports_wire_names(metrics: QueueMetrics) -> None:
    payload, content_type = render_latest(metrics)
    body = payload.decode("utf-8")

    assert content_type.startswith("text/plain")
    for name in (
        "hydraqueuerunner_queue_checks_started_total",
        "hydraqueuerunner_queue_steps_created_total",
        "hydraqueuerunner_queue_checks_early_exits_total",
        "hydraqueuerunner_queue_checks_finished_total",
        "hydraqueuerunner_queue_max_build_id_info",
        "hydraqueuerunner_queue_fetch_seconds_count",
        "hydraqueuerunner_queue_build_loads_seconds_sum",
    ):
        assert name in body
    assert "# HELP hydraqueuerunner_queue_steps_created_total Number of steps created" in body


def test_render_latest_exports_buckets_and_dispositions(metrics: QueueMetrics) -> None:
    body = render_latest(metrics)[0].decode("utf-8")

    for le in ("0.5", "1.0", "2.5", "5.0", "10.0", "15.0", "+Inf"):
        assert f'hydraqueuerunner_queue_fetch_seconds_bucket{{le="{le}"}}' in body
    for disposition in Disposition:
        for le in ("0.05", "0.1", "0.25", "0.5", "1.0", "2.5", "+Inf"):
            sample = (
                "hydraqueuerunner_queue_build_loads_seconds_bucket"
                f'{{disposition="{disposition.value}",le="{le}"}}'
            )
            assert sample in body


def test_metrics_endpoint_reflects_recorded_values(metrics: QueueMetrics) -> None:
    metrics.queue_checks_started.increment()
    metrics.queue_checks_started.increment()
    metrics.queue_max_id.set(42)

    with TestClient(create_app(metrics)) as client:
        response = client.get("/metrics")

    assert response.status_code == 200
    assert response.headers["content-type"].startswith("text/plain")
    assert "hydraqueuerunner_queue_checks_started_total 2.0" in response.text
    assert "hydraqueuerunner_queue_max_build_id_info 42.0" in response.text


def test_health_route(metrics: QueueMetrics) -> None:
    with TestClient(create_app(metrics)) as client:
        response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "instruments": 7}


def test_metrics_path_from_environment(
    monkeypatch: pytest.MonkeyPatch, metrics: QueueMetrics
) -> None:
    monkeypatch.setenv("QUEUE_RUNNER_METRICS_PATH", "/internal/metrics")
    reset_settings_cache()

    with TestClient(create_app(metrics)) as client:
        assert client.get("/internal/metrics").status_code == 200
        assert client.get("/metrics").status_code == 404
