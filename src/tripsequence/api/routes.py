"""
API routes.

Endpoints:
- GET  `/api/health`: liveness probe.
- GET  `/api/settings`: effective tuning knobs (routing + clustering).
- POST `/api/routes/optimize`: reorder a day's stops.
- POST `/api/routes/advice`: cheap "should I optimize?" hint + rough savings estimate.
- POST `/api/clusters`: map features for a viewport and zoom.
- POST `/api/clusters/expand`: children + expansion zoom of one cluster.
"""

from __future__ import annotations

import logging
import time
import uuid
from contextlib import contextmanager
from typing import Any, Iterator

from fastapi import APIRouter, HTTPException

from tripsequence.clustering.service import expand_cluster, query_clusters
from tripsequence.config.overrides import apply_settings_overrides
from tripsequence.config.settings import get_settings
from tripsequence.domain.models import ClusterExpandRequest, ClusterQuery, OptimizationResult, OptimizeRequest
from tripsequence.routing.advice import estimate_optimization_savings, should_optimize
from tripsequence.routing.optimizer import plan_route

logger = logging.getLogger(__name__)

router = APIRouter()


@contextmanager
def _api_errors(endpoint: str) -> Iterator[dict[str, Any]]:
    """Map domain errors to HTTP errors and collect per-request debug meta."""
    debug: dict[str, Any] = {"request_id": uuid.uuid4().hex}
    started = time.perf_counter()
    try:
        yield debug
    except ValueError as e:
        raise HTTPException(
            status_code=400,
            detail={"code": "VALIDATION_ERROR", "message": str(e)},
        ) from e
    except Exception as e:
        logger.exception("%s failed (request_id=%s)", endpoint, debug["request_id"])
        raise HTTPException(
            status_code=500,
            detail={"code": "INTERNAL_ERROR", "message": str(e)},
        ) from e
    finally:
        debug["api_ms"] = int((time.perf_counter() - started) * 1000)


@router.get("/api/health")
def get_health() -> dict:
    return {"status": "ok"}


@router.get("/api/settings")
def get_public_settings() -> dict:
    """Return the tuning knobs the web client needs (no app-level settings)."""
    settings = get_settings()
    return {
        "routing": settings.routing.model_dump(mode="json"),
        "clustering": settings.clustering.model_dump(mode="json"),
    }


@router.post("/api/routes/optimize", response_model=OptimizationResult)
def post_optimize(request: OptimizeRequest) -> OptimizationResult:
    """Optimize the visiting order of the given stops."""
    with _api_errors("optimize") as debug:
        result = plan_route(request)
    meta = {**result.meta, "debug": debug}
    return result.model_copy(update={"meta": meta})


@router.post("/api/routes/advice")
def post_advice(request: OptimizeRequest) -> dict:
    """Return the optimize hint and the (rough) savings estimate for the current order."""
    with _api_errors("advice") as debug:
        settings = apply_settings_overrides(get_settings(), request.settings_overrides)
        estimate = estimate_optimization_savings(request.stops, settings=settings.routing)
        payload = {
            "should_optimize": should_optimize(request.stops, settings=settings.routing),
            "estimate": estimate.model_dump(mode="json"),
        }
    return {**payload, "meta": {"debug": debug}}


@router.post("/api/clusters")
def post_clusters(query: ClusterQuery) -> dict:
    with _api_errors("clusters") as debug:
        payload = query_clusters(query)
    return {**payload, "meta": {"debug": debug}}


@router.post("/api/clusters/expand")
def post_cluster_expand(request: ClusterExpandRequest) -> dict:
    with _api_errors("clusters/expand") as debug:
        payload = expand_cluster(request)
    return {**payload, "meta": {"debug": debug}}
