"""Entrada principal de la app FastAPI (configura middlewares, excepciones y routers)."""
import logging

from fastapi import FastAPI
from pymongo.errors import PyMongoError

from notehub.api.router import api_router
from notehub.core.config import settings
from notehub.core.exceptions import register_exception_handlers
from notehub.core.logging import setup_logging
from notehub.core.middleware import add_middlewares
from notehub.infrastructure.db.bootstrap import ensure_collections
from notehub.infrastructure.db.mongo import close_mongo, db_ready, init_mongo

_log = logging.getLogger("notehub.startup")

setup_logging()
app = FastAPI(title=settings.app_name)

add_middlewares(app)
register_exception_handlers(app)


@app.on_event("startup")
def on_startup():
    init_mongo()
    # Colecciones/índices/validadores mínimos si hay conexión
    if db_ready():
        try:
            ensure_collections()
        except PyMongoError as e:
            # No impedir el arranque si fallan validadores/índices
            _log.warning("ensure_collections() falló: %s", e)
    else:
        _log.warning("Mongo no listo; omitiendo ensure_collections()")


@app.on_event("shutdown")
def on_shutdown():
    close_mongo()


# Monta routers bajo el prefijo configurado
app.include_router(api_router, prefix=settings.api_prefix_normalized)
