"""Interfaces de persistencia consumidas por los servicios.

Las implementaciones Mongo viven junto a este módulo; los tests usan dobles en
memoria con la misma forma.
"""
from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime
from typing import Any, Dict, Iterator, List, Optional, Protocol

from pymongo.errors import DuplicateKeyError, PyMongoError

from notehub.core.exceptions import Conflict, StorageUnavailable
from notehub.domain.files.models import FileRecord
from notehub.domain.notes.models import Note
from notehub.domain.notes.queries import NoteQuery


class NoteStore(Protocol):
    def new_id(self) -> str: ...

    def find_by_id(self, note_id: str) -> Optional[Note]: ...

    def find_by_slug(self, slug: str) -> Optional[Note]: ...

    def find_many(self, query: NoteQuery) -> List[Note]: ...

    def count(self, filtro: Dict[str, Any]) -> int: ...

    def insert(self, note: Note) -> Note: ...

    def save(self, note: Note, expected_revision: int) -> bool:
        """Reemplazo completo condicionado a `revision == expected_revision`."""
        ...

    def delete_by_id(self, note_id: str) -> bool: ...

    def increment(self, note_id: str, field: str, set_fields: Dict[str, Any]) -> Optional[Note]: ...

    def pull_file(self, file_id: str, now: datetime) -> int: ...


class FileStore(Protocol):
    def new_id(self) -> str: ...

    def find_by_id(self, file_id: str) -> Optional[FileRecord]: ...

    def find_by_ids(self, file_ids: List[str]) -> List[FileRecord]: ...

    def insert(self, record: FileRecord) -> FileRecord: ...

    def delete_by_id(self, file_id: str) -> bool: ...

    def list_by_owner(self, owner_id: str, limit: int, skip: int) -> List[FileRecord]: ...

    def list_popular(self, limit: int) -> List[FileRecord]: ...

    def list_by_type(self, mimetype: str, limit: int) -> List[FileRecord]: ...

    def increment_download(self, file_id: str, now: datetime) -> Optional[FileRecord]: ...


class UserStore(Protocol):
    def insert(self, doc: Dict[str, Any]) -> str: ...

    def find_by_email(self, email: str) -> Optional[Dict[str, Any]]: ...

    def find_by_username(self, username: str) -> Optional[Dict[str, Any]]: ...


class CategoryStore(Protocol):
    def insert(self, doc: Dict[str, Any]) -> str: ...

    def list_active(self) -> List[Dict[str, Any]]: ...

    def adjust_note_count(self, name: str, delta: int) -> None: ...


@contextmanager
def mongo_errors(conflict_message: str = "Duplicate value") -> Iterator[None]:
    """Traduce errores de pymongo a errores de dominio."""
    try:
        yield
    except DuplicateKeyError as e:
        keys = list((e.details or {}).get("keyValue", {}).keys())
        raise Conflict(conflict_message, fields=keys) from e
    except PyMongoError as e:
        raise StorageUnavailable(f"Database unavailable: {e.__class__.__name__}") from e
