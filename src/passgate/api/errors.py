"""Exception → envelope mapping.

Learn: Services raise PassgateError subclasses and never build
responses themselves. This module is the one place that decides what
the client sees: the status code, a stable error code and a message.
Anything unexpected becomes a generic 500; the details only go to the log.
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from passgate.errors import ErrorKind, PassgateError
from passgate.schemas.auth import failure

logger = structlog.get_logger()


def _format_validation_error(exc: RequestValidationError) -> str:
    errors = exc.errors()
    if not errors:
        return "Request body is invalid"
    first = errors[0]
    field = ".".join(str(p) for p in first.get("loc", ()) if p not in ("body", "query"))
    msg = first.get("msg", "invalid value")
    return f"{field}: {msg}" if field else msg


async def handle_passgate_error(request: Request, exc: PassgateError) -> JSONResponse:
    headers = None
    if exc.kind is ErrorKind.UNAUTHENTICATED:
        headers = {"WWW-Authenticate": "Bearer"}
    if exc.http_status >= 500:
        logger.error("request.failed", path=request.url.path, code=exc.code, error=str(exc.__cause__ or exc))
    return JSONResponse(
        status_code=exc.http_status,
        content=failure(exc.http_status, exc.code, exc.message),
        headers=headers,
    )


async def handle_validation_error(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    return JSONResponse(
        status_code=422,
        content=failure(422, "INVALID_INPUT", _format_validation_error(exc)),
    )


async def handle_http_exception(
    request: Request, exc: StarletteHTTPException
) -> JSONResponse:
    if exc.status_code == 404:
        message = "Request URL does not exist"
    else:
        message = str(exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content=failure(exc.status_code, f"HTTP_{exc.status_code}", message),
        headers=getattr(exc, "headers", None),
    )


async def handle_unexpected_error(request: Request, exc: Exception) -> JSONResponse:
    logger.exception("request.unhandled_error", path=request.url.path)
    return JSONResponse(
        status_code=500,
        content=failure(500, "INTERNAL_ERROR", "Unknown Error"),
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(PassgateError, handle_passgate_error)
    app.add_exception_handler(RequestValidationError, handle_validation_error)
    app.add_exception_handler(StarletteHTTPException, handle_http_exception)
    app.add_exception_handler(Exception, handle_unexpected_error)
