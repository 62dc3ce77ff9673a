"""Global error handlers: every failure becomes ``{"message", "request_id"}``."""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from forum.api.request_id import get_request_id
from forum.domain.exceptions import ForumError
from forum.obs import logging as obs_logging

logger = obs_logging.get_logger("forum.errors")


def install_error_handlers(app: FastAPI) -> None:
	@app.exception_handler(ForumError)
	async def forum_exc_handler(request: Request, exc: ForumError):  # type: ignore[override]
		payload = {"message": exc.message, "request_id": get_request_id(request)}
		return JSONResponse(status_code=exc.status_code, content=payload)

	@app.exception_handler(StarletteHTTPException)
	async def http_exc_handler(request: Request, exc: StarletteHTTPException):  # type: ignore[override]
		payload = {"message": str(exc.detail), "request_id": get_request_id(request)}
		return JSONResponse(status_code=exc.status_code, content=payload, headers=getattr(exc, "headers", None))

	@app.exception_handler(RequestValidationError)
	async def validation_exc_handler(request: Request, exc: RequestValidationError):  # type: ignore[override]
		payload = {
			"message": "validation_error",
			"errors": jsonable_encoder(exc.errors()),
			"request_id": get_request_id(request),
		}
		return JSONResponse(status_code=400, content=payload)

	@app.exception_handler(Exception)
	async def unhandled_exc_handler(request: Request, exc: Exception):  # type: ignore[override]
		if "not found" in str(exc).lower():
			return JSONResponse(
				status_code=404,
				content={"message": str(exc), "request_id": get_request_id(request)},
			)
		logger.error("unhandled_error", exc_info=exc, extra={"path": request.url.path})
		return JSONResponse(
			status_code=500,
			content={"message": "Server error", "request_id": get_request_id(request)},
		)
