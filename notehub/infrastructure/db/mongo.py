"""Cliente MongoDB (pymongo) compartido por los repositorios."""
from __future__ import annotations

import logging

import certifi
from pymongo import MongoClient
from pymongo.database import Database
from pymongo.errors import PyMongoError, ServerSelectionTimeoutError

from notehub.core.config import settings
from notehub.core.exceptions import StorageUnavailable

_log = logging.getLogger("notehub.mongo")

_client: MongoClient | None = None
_db: Database | None = None


def _client_kwargs(uri: str) -> dict:
    # tz_aware: las fechas vuelven como datetime UTC con tzinfo
    kwargs = dict(serverSelectionTimeoutMS=15000, tz_aware=True)
    if uri.startswith("mongodb+srv://"):
        # SRV ya implica TLS; proveemos CA bundle para robustez
        kwargs["tlsCAFile"] = certifi.where()
    elif settings.mongo_tls:
        kwargs["tls"] = True
        kwargs["tlsCAFile"] = certifi.where()
        kwargs["tlsAllowInvalidCertificates"] = settings.mongo_tls_insecure
        kwargs["tlsAllowInvalidHostnames"] = settings.mongo_tls_allow_invalid_hostnames
    return kwargs


def init_mongo() -> None:
    """
    Inicializa el cliente y valida conexión (ping).
    Llamar una sola vez en el startup de FastAPI.
    """
    global _client, _db
    uri = settings.mongo_uri
    try:
        _client = MongoClient(uri, **_client_kwargs(uri))
        _client.admin.command("ping")
        _db = _client[settings.mongo_db]
        _log.info("Mongo conectado (db=%s)", settings.mongo_db)
    except ServerSelectionTimeoutError as e:
        # No tumbar la app: deja _db en None y loggea
        _log.warning("Mongo no accesible (timeout): %s", e)
        _client = None
        _db = None
    except PyMongoError as e:
        _log.warning("Error de conexión a Mongo: %s", e)
        _client = None
        _db = None


def get_db() -> Database:
    """
    Devuelve la referencia a la base de datos.
    Úsalo en repositorios/servicios, no en routers.
    """
    if _db is None:
        raise StorageUnavailable("Mongo no inicializado. Intenta más tarde.")
    return _db


def db_ready() -> bool:
    return _db is not None


def close_mongo() -> None:
    global _client, _db
    if _client is not None:
        _client.close()
    _client = None
    _db = None
