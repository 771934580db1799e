"""
Errores de dominio y handlers globales para respuestas de error consistentes.

Cada error rechazado devuelve un cuerpo JSON estructurado:
{"message": ..., "code": ..., "request_id": ...}
"""
import logging
from typing import Any, Dict

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException


class NoteHubError(Exception):
    """Base de los errores de dominio."""

    status_code = 500
    code = "error"

    def __init__(self, message: str, **details: Any) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class NotFound(NoteHubError):
    status_code = 404
    code = "not_found"


class Unauthorized(NoteHubError):
    status_code = 401
    code = "unauthorized"


class Forbidden(NoteHubError):
    status_code = 403
    code = "forbidden"


class ValidationFailed(NoteHubError):
    status_code = 422
    code = "validation_failed"


class Conflict(NoteHubError):
    status_code = 409
    code = "conflict"


class RateLimited(NoteHubError):
    status_code = 429
    code = "rate_limited"


class StorageUnavailable(NoteHubError):
    """Falla de infraestructura (Mongo / GridFS / R2). Se reporta como transitoria."""

    status_code = 503
    code = "storage_unavailable"


def _req_id(request: Request) -> str | None:
    return getattr(getattr(request, "state", object()), "request_id", None)


def _body(request: Request, message: str, code: str, **extra: Any) -> Dict[str, Any]:
    body: Dict[str, Any] = {"message": message, "code": code, **extra}
    rid = _req_id(request)
    if rid:
        body["request_id"] = rid
    return body


def register_exception_handlers(app: FastAPI) -> None:
    log = logging.getLogger("notehub.errors")

    @app.exception_handler(NoteHubError)
    async def _domain_handler(request: Request, exc: NoteHubError):
        if isinstance(exc, StorageUnavailable):
            log.warning("Storage unavailable request_id=%s: %s", _req_id(request), exc.message)
        extra = {"details": exc.details} if exc.details else {}
        return JSONResponse(
            status_code=exc.status_code,
            content=_body(request, exc.message, exc.code, **extra),
        )

    @app.exception_handler(StarletteHTTPException)
    async def _http_exc_handler(request: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content=_body(request, exc.detail or "HTTP error", "http_error"),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def _validation_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=422,
            content=_body(request, "Validation error", ValidationFailed.code, errors=jsonable_errors(exc)),
        )

    @app.exception_handler(Exception)
    async def _generic_handler(request: Request, exc: Exception):
        log.exception("Unhandled error request_id=%s", _req_id(request))
        return JSONResponse(status_code=500, content=_body(request, "Internal server error", "internal_error"))


def jsonable_errors(exc: RequestValidationError) -> list[Dict[str, Any]]:
    # `ctx` puede traer excepciones no serializables (p. ej. ValueError)
    out = []
    for err in exc.errors():
        item = {k: v for k, v in err.items() if k != "ctx"}
        if "ctx" in err:
            item["ctx"] = {k: str(v) for k, v in err["ctx"].items()}
        out.append(item)
    return out
