"""
Middlewares HTTP de NoteHub.

- `RequestContextMiddleware`: asigna `X-Request-Id` (o respeta el del cliente)
  y deja una línea de acceso por petición en `notehub.request`.
- CORS según `settings.cors_origins` / `settings.cors_allow_any`.
"""
import logging
import time
import uuid
from typing import Any, Dict

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.middleware.base import BaseHTTPMiddleware

from notehub.core.config import settings
from notehub.core.logging import get_logger

REQUEST_ID_HEADER = "X-Request-Id"


class RequestContextMiddleware(BaseHTTPMiddleware):
    def __init__(self, app: FastAPI) -> None:
        super().__init__(app)
        self.log = get_logger("request")

    async def dispatch(self, request: Request, call_next):
        rid = request.headers.get(REQUEST_ID_HEADER) or uuid.uuid4().hex
        # Los handlers de error leen el id desde request.state
        request.state.request_id = rid
        started = time.perf_counter()
        status = 500
        try:
            response = await call_next(request)
            status = response.status_code
        finally:
            elapsed_ms = int((time.perf_counter() - started) * 1000)
            level = logging.WARNING if status >= 500 else logging.INFO
            self.log.log(
                level,
                "%s %s -> %s (%sms) request_id=%s",
                request.method, request.url.path, status, elapsed_ms, rid,
            )
        response.headers[REQUEST_ID_HEADER] = rid
        return response


def cors_options() -> Dict[str, Any]:
    if settings.cors_allow_any:
        # Orígenes dinámicos: sin credentials (el token viaja en Authorization)
        return {
            "allow_origin_regex": ".*",
            "allow_credentials": False,
            "allow_methods": ["*"],
            "allow_headers": ["*"],
            "expose_headers": [REQUEST_ID_HEADER],
        }
    return {
        "allow_origins": settings.cors_origins,
        "allow_credentials": True,
        "allow_methods": ["*"],
        "allow_headers": ["*"],
        "expose_headers": [REQUEST_ID_HEADER],
    }


def add_middlewares(app: FastAPI) -> None:
    app.add_middleware(CORSMiddleware, **cors_options())
    app.add_middleware(RequestContextMiddleware)
