"""
Bootstrap de la base Mongo: define y aplica validadores (JSON Schema) e índices.
Se ejecuta al inicio de la app para asegurar colecciones mínimas y consistencia.
No tumba la app si algo falla; deja warnings en casos no críticos.
"""
from __future__ import annotations

from typing import Any, Dict, List
import logging
from pymongo.errors import PyMongoError

from notehub.infrastructure.db.mongo import get_db
from notehub.domain.notes.models import CATEGORIES, DIFFICULTIES, STATUSES
from notehub.core.config import settings

_log = logging.getLogger("notehub.mongo.bootstrap")


def _collmod_or_create(name: str, validator: Dict[str, Any] | None) -> None:
    db = get_db()
    try:
        if name not in db.list_collection_names():
            if validator:
                db.create_collection(name, validator={"$jsonSchema": validator})
            else:
                db.create_collection(name)
        elif validator:
            db.command({
                "collMod": name,
                "validator": {"$jsonSchema": validator},
                "validationLevel": "moderate",
            })
    except PyMongoError as e:
        # No aborta el arranque; solo deja sin validator estricto.
        _log.warning("No se pudo aplicar validator en '%s': %s", name, e)


def _ensure_indexes(name: str, indexes: List[Dict[str, Any]]) -> None:
    coll = get_db()[name]
    for ix in indexes:
        ix = dict(ix)
        keys = ix.pop("keys")
        try:
            coll.create_index(keys, **ix)
        except PyMongoError as e:
            # Ignora fallas de índice (e.g., ya existe o datos no únicos previos)
            _log.warning("No se pudo crear índice en '%s' (%s): %s", name, keys, e)


NOTE_VALIDATOR = {
    "bsonType": "object",
    "required": [
        "title",
        "content",
        "author_id",
        "author_name",
        "tags",
        "status",
        "version",
        "revision",
        "created_at",
        "updated_at",
    ],
    "properties": {
        "title": {"bsonType": "string", "minLength": 1, "maxLength": 200},
        "content": {"bsonType": "string", "minLength": 1, "maxLength": 50000},
        "summary": {"bsonType": ["string", "null"], "maxLength": 500},
        "author_id": {"bsonType": "string"},
        "author_name": {"bsonType": "string"},
        "tags": {"bsonType": "array", "items": {"bsonType": "string", "maxLength": 30}},
        "category": {"bsonType": ["string", "null"], "enum": [*CATEGORIES, None]},
        "subject": {"bsonType": ["string", "null"], "maxLength": 100},
        "difficulty": {"bsonType": "string", "enum": list(DIFFICULTIES)},
        "is_public": {"bsonType": "bool"},
        "is_pinned": {"bsonType": "bool"},
        "files": {"bsonType": "array", "items": {"bsonType": "string"}},
        "download_count": {"bsonType": ["int", "long"], "minimum": 0},
        "view_count": {"bsonType": ["int", "long"], "minimum": 0},
        "rating": {"bsonType": ["double", "int"], "minimum": 0, "maximum": 5},
        "rating_count": {"bsonType": ["int", "long"], "minimum": 0},
        "reviews": {
            "bsonType": "array",
            "items": {
                "bsonType": "object",
                "required": ["reviewer_id", "rating"],
                "properties": {
                    "reviewer_id": {"bsonType": "string"},
                    "reviewer_name": {"bsonType": ["string", "null"]},
                    "rating": {"bsonType": ["double", "int"], "minimum": 1, "maximum": 5},
                    "comment": {"bsonType": ["string", "null"], "maxLength": 500},
                    "created_at": {"bsonType": "date"},
                },
            },
        },
        "favorited_by": {"bsonType": "array", "items": {"bsonType": "string"}},
        "version": {"bsonType": "int", "minimum": 1},
        "revision": {"bsonType": ["int", "long"], "minimum": 0},
        "previous_versions": {"bsonType": "array"},
        "status": {"bsonType": "string", "enum": list(STATUSES)},
        "slug": {"bsonType": ["string", "null"]},
        "meta_description": {"bsonType": ["string", "null"], "maxLength": 160},
        "keywords": {"bsonType": "array", "items": {"bsonType": "string"}},
        "created_at": {"bsonType": "date"},
        "updated_at": {"bsonType": "date"},
        "published_at": {"bsonType": ["date", "null"]},
        "last_viewed_at": {"bsonType": ["date", "null"]},
    },
    "additionalProperties": True,
}

FILE_VALIDATOR = {
    "bsonType": "object",
    "required": [
        "filename",
        "original_name",
        "mimetype",
        "size",
        "storage_ref",
        "uploaded_by",
        "uploaded_at",
        "updated_at",
    ],
    "properties": {
        "filename": {"bsonType": "string"},
        "original_name": {"bsonType": "string"},
        "mimetype": {"bsonType": "string", "enum": list(settings.allowed_mimetypes)},
        "size": {"bsonType": ["int", "long"], "minimum": 1, "maximum": settings.max_upload_bytes},
        "storage_ref": {"bsonType": "string"},
        "uploaded_by": {"bsonType": "string"},
        "description": {"bsonType": ["string", "null"], "maxLength": 200},
        "tags": {"bsonType": "array", "items": {"bsonType": "string"}},
        "is_public": {"bsonType": "bool"},
        "download_count": {"bsonType": ["int", "long"], "minimum": 0},
        "metadata": {"bsonType": ["object", "null"]},
        "checksum": {"bsonType": ["string", "null"]},
        "uploaded_at": {"bsonType": "date"},
        "updated_at": {"bsonType": "date"},
    },
    "additionalProperties": True,
}

USER_VALIDATOR = {
    "bsonType": "object",
    "required": ["username", "email", "password_hash", "created_at"],
    "properties": {
        "username": {"bsonType": "string", "minLength": 3},
        "email": {"bsonType": "string", "minLength": 3, "description": "lowercase"},
        "password_hash": {"bsonType": "string"},
        "created_at": {"bsonType": "date"},
    },
    "additionalProperties": True,
}

CATEGORY_VALIDATOR = {
    "bsonType": "object",
    "required": ["name", "slug", "is_active", "note_count", "created_at", "updated_at"],
    "properties": {
        "name": {"bsonType": "string", "maxLength": 50},
        "slug": {"bsonType": "string"},
        "description": {"bsonType": ["string", "null"], "maxLength": 500},
        "icon": {"bsonType": ["string", "null"]},
        "color": {"bsonType": ["string", "null"], "pattern": "^#[0-9A-Fa-f]{6}$"},
        "is_active": {"bsonType": "bool"},
        "note_count": {"bsonType": ["int", "long"], "minimum": 0},
        "created_at": {"bsonType": "date"},
        "updated_at": {"bsonType": "date"},
    },
    "additionalProperties": True,
}


def ensure_collections() -> None:
    """
    Garantiza colecciones, validadores e índices mínimos.
    """
    _collmod_or_create("note", NOTE_VALIDATOR)
    _ensure_indexes(
        "note",
        [
            {"keys": [("author_id", 1), ("created_at", -1)], "name": "ix_note_author_created"},
            {"keys": [("is_public", 1), ("created_at", -1)], "name": "ix_note_public_created"},
            {"keys": [("category", 1), ("created_at", -1)], "name": "ix_note_category_created"},
            {"keys": [("tags", 1)], "name": "ix_note_tags"},
            # Búsqueda por relevancia (un solo índice de texto por colección)
            {"keys": [("title", "text"), ("content", "text"), ("tags", "text")], "name": "txt_note_title_content_tags"},
            {"keys": [("rating", -1), ("rating_count", -1)], "name": "ix_note_rating"},
            {"keys": [("download_count", -1)], "name": "ix_note_downloads"},
            {"keys": [("slug", 1)], "unique": True, "sparse": True, "name": "uniq_note_slug"},
            {"keys": [("status", 1), ("is_public", 1)], "name": "ix_note_status_public"},
            {"keys": [("files", 1)], "name": "ix_note_files"},
        ],
    )

    _collmod_or_create("file", FILE_VALIDATOR)
    _ensure_indexes(
        "file",
        [
            {"keys": [("uploaded_by", 1), ("uploaded_at", -1)], "name": "ix_file_owner_uploaded"},
            {"keys": [("mimetype", 1)], "name": "ix_file_mimetype"},
            {"keys": [("original_name", "text"), ("description", "text")], "name": "txt_file_name_description"},
            {"keys": [("tags", 1)], "name": "ix_file_tags"},
            {"keys": [("is_public", 1), ("uploaded_at", -1)], "name": "ix_file_public_uploaded"},
        ],
    )

    _collmod_or_create("user", USER_VALIDATOR)
    _ensure_indexes(
        "user",
        [
            {"keys": [("email", 1)], "unique": True, "name": "uniq_email"},
            {"keys": [("username", 1)], "unique": True, "name": "uniq_username"},
        ],
    )

    _collmod_or_create("category", CATEGORY_VALIDATOR)
    _ensure_indexes(
        "category",
        [
            {"keys": [("name", 1)], "unique": True, "name": "uniq_category_name"},
            {"keys": [("slug", 1)], "unique": True, "name": "uniq_category_slug"},
            {"keys": [("is_active", 1), ("note_count", -1)], "name": "ix_category_active_count"},
        ],
    )
