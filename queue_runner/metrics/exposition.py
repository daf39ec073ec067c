"""Prometheus text exposition for a :class:`QueueMetrics` instance."""

from __future__ import annotations

from fastapi import APIRouter, FastAPI, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from ..config import get_settings
from .registry import QueueMetrics


def render_latest(metrics: QueueMetrics) -> tuple[bytes, str]:
    """Serialize every instrument and return ``(payload, content_type)``."""

    return generate_latest(metrics.registry), CONTENT_TYPE_LATEST


def metrics_router(metrics: QueueMetrics, path: str | None = None) -> APIRouter:
    router = APIRouter()

    @router.get(path or get_settings().metrics_path, include_in_schema=False)
    async def _metrics_endpoint() -> Response:
        data, content_type = render_latest(metrics)
        return Response(content=data, media_type=content_type)

    return router


def create_app(metrics: QueueMetrics) -> FastAPI:
    """Minimal app serving the metrics endpoint and a health check."""

    app = FastAPI()
    app.state.metrics = metrics
    app.include_router(metrics_router(metrics))

    @app.get("/health")
    async def health() -> dict:
        return {"status": "ok", "instruments": len(metrics.instruments())}

    return app


__all__ = ["render_latest", "metrics_router", "create_app"]
