"""Exception handlers rendering domain failures as JSON error bodies.

Every rejection leaves with the same shape:
``{"error": <code>, "reason": <text>, "details": {...}}``.
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from protean.exceptions import ExpectedVersionError, ObjectNotFoundError, ValidationError

from logistics.shared.errors import LogisticsError

logger = structlog.get_logger(__name__)


def _body(code: str, reason: str, details: dict | None = None) -> dict:
    return {"error": code, "reason": reason, "details": details or {}}


async def _logistics_error(request: Request, exc: LogisticsError) -> JSONResponse:
    logger.info("request_rejected", path=request.url.path, error=exc.code, reason=exc.reason)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


async def _validation_error(request: Request, exc: ValidationError) -> JSONResponse:
    messages = exc.messages if isinstance(exc.messages, dict) else {"_entity": [str(exc.messages)]}
    reason = "; ".join(f"{field}: {', '.join(map(str, errors))}" for field, errors in messages.items())
    return JSONResponse(status_code=400, content=_body("validation_error", reason, messages))


async def _not_found(request: Request, exc: ObjectNotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content=_body("not_found", str(exc) or "Not found"))


async def _stale_write(request: Request, exc: ExpectedVersionError) -> JSONResponse:
    logger.warning("concurrent_write_rejected", path=request.url.path)
    return JSONResponse(
        status_code=409,
        content=_body("state_conflict", "The entity was modified concurrently; reload and retry"),
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(LogisticsError, _logistics_error)
    app.add_exception_handler(ValidationError, _validation_error)
    app.add_exception_handler(ObjectNotFoundError, _not_found)
    app.add_exception_handler(ExpectedVersionError, _stale_write)
