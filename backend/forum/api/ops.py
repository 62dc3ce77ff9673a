"""Liveness and metrics endpoints."""

from __future__ import annotations

from time import perf_counter

from fastapi import APIRouter, Request, Response
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from forum.obs import logging as obs_logging
from forum.obs import metrics as obs_metrics

router = APIRouter(prefix="", tags=["ops"])

logger = obs_logging.get_logger("forum.ops")


@router.get("/healthz")
async def healthz(request: Request) -> Response:
	database = getattr(request.app.state, "database", None)
	if database is None or not database.is_open:
		return JSONResponse({"status": "ok", "postgres": "not_configured"})
	start = perf_counter()
	try:
		await database.ping()
	except Exception as exc:
		obs_metrics.mark_postgres(False)
		logger.warning("postgres_ping_failed", exc_info=True)
		return JSONResponse({"status": "degraded", "postgres": str(exc)}, status_code=503)
	obs_metrics.mark_postgres(True, latency_seconds=perf_counter() - start)
	return JSONResponse({"status": "ok", "postgres": "up"})


@router.get("/metrics")
async def metrics() -> Response:
	return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)


__all__ = ["router"]
