"""
Dependencias reutilizables para routers (FastAPI Depends).

- Autenticación: extrae y valida el Access Token, devuelve la identidad.
- Servicios: construidos sobre los repos Mongo; los tests los reemplazan
  con `app.dependency_overrides`.
- Mantener esta capa delgada: sin lógica de negocio.
"""
from typing import Optional

import jwt as pyjwt
from fastapi import Header

from notehub.core.exceptions import Unauthorized
from notehub.domain.users.identity import Identity
from notehub.infrastructure.storage.blob import get_blob_storage
from notehub.repositories.category_repo import MongoCategoryRepository
from notehub.repositories.file_repo import MongoFileRepository
from notehub.repositories.note_repo import MongoNoteRepository
from notehub.repositories.user_repo import MongoUserRepository
from notehub.services.auth_service import AuthService
from notehub.services.category_service import CategoryService
from notehub.services.file_service import FileService
from notehub.services.note_service import NoteService
from notehub.services.token_service import identity_from_token


def _identity(authorization: str) -> Identity:
    if not authorization.startswith("Bearer "):
        raise Unauthorized("Access token required")
    token = authorization.split(" ", 1)[1].strip()
    try:
        return identity_from_token(token)
    except pyjwt.InvalidTokenError:
        raise Unauthorized("Invalid token")


def get_identity(authorization: Optional[str] = Header(default=None)) -> Identity:
    if not authorization:
        raise Unauthorized("Access token required")
    return _identity(authorization)


def get_optional_identity(authorization: Optional[str] = Header(default=None)) -> Optional[Identity]:
    """Igual que get_identity pero anónimo (None) si no hay header. Un token inválido sigue siendo 401."""
    if not authorization:
        return None
    return _identity(authorization)


def get_note_service() -> NoteService:
    return NoteService(
        MongoNoteRepository(),
        MongoFileRepository(),
        get_blob_storage(),
        MongoCategoryRepository(),
    )


def get_file_service() -> FileService:
    return FileService(MongoFileRepository(), MongoNoteRepository(), get_blob_storage())


def get_auth_service() -> AuthService:
    return AuthService(MongoUserRepository())


def get_category_service() -> CategoryService:
    return CategoryService(MongoCategoryRepository())
