"""
Dobles en memoria de los stores y del blob storage, más fixtures de servicios
y del cliente HTTP.

Los dobles interpretan el subconjunto del dialecto Mongo que produce el
constructor de consultas: igualdad, `$in`, `$gte` y `$text`.
"""
from datetime import timedelta
from typing import Any, Callable, Dict, List, Optional

import pytest
from fastapi.testclient import TestClient

from notehub.api import deps
from notehub.core import rate_limit
from notehub.core.config import settings
from notehub.core.exceptions import Conflict, NotFound
from notehub.core.time import now_utc
from notehub.domain.files.models import FileRecord
from notehub.domain.notes.models import Note
from notehub.domain.notes.queries import NoteQuery
from notehub.domain.users.identity import Identity
from notehub.infrastructure.storage.blob import BlobStorage
from notehub.main import app
from notehub.services.auth_service import AuthService
from notehub.services.category_service import CategoryService
from notehub.services.file_service import FileService, Upload
from notehub.services.note_service import NoteService
from notehub.services.token_service import create_access_token


# ──────────────────────────────────────────────────────────────────────────────
# Matcher mínimo del dialecto Mongo
# ──────────────────────────────────────────────────────────────────────────────

def _text_hits(doc: Dict[str, Any], search: str) -> int:
    hay = " ".join([doc.get("title") or "", doc.get("content") or "", " ".join(doc.get("tags") or [])]).lower()
    return sum(1 for term in search.lower().split() if term in hay)


def matches(doc: Dict[str, Any], filtro: Dict[str, Any]) -> bool:
    for key, cond in filtro.items():
        if key == "$text":
            if _text_hits(doc, cond["$search"]) == 0:
                return False
            continue
        value = doc.get(key)
        if isinstance(cond, dict):
            for op, arg in cond.items():
                if op == "$in":
                    pool = value if isinstance(value, list) else [value]
                    if not any(v in arg for v in pool):
                        return False
                elif op == "$gte":
                    if value is None or value < arg:
                        return False
                else:
                    raise AssertionError(f"operador no soportado en el doble: {op}")
        elif isinstance(value, list):
            if cond not in value:
                return False
        elif value != cond:
            return False
    return True


def apply_query(docs: List[Dict[str, Any]], query: NoteQuery) -> List[Dict[str, Any]]:
    found = [d for d in docs if matches(d, query.filter)]
    search = (query.filter.get("$text") or {}).get("$search", "")
    # sort estable: se aplican las claves de menor a mayor prioridad
    for field, direction in reversed(query.sort):
        if isinstance(direction, dict):
            found.sort(key=lambda d: _text_hits(d, search), reverse=True)
        else:
            found.sort(key=lambda d: d.get(field) or 0, reverse=direction < 0)
    return found[query.skip: query.skip + query.limit]


# ──────────────────────────────────────────────────────────────────────────────
# Stores en memoria
# ──────────────────────────────────────────────────────────────────────────────

class InMemoryNoteStore:
    def __init__(self) -> None:
        self.docs: Dict[str, Note] = {}
        self._seq = 0
        # Hook para simular un escritor concurrente justo antes del CAS
        self.before_save: Optional[Callable[[Note], None]] = None
        self.save_calls = 0

    def new_id(self) -> str:
        self._seq += 1
        return f"{self._seq:024x}"

    def find_by_id(self, note_id: str) -> Optional[Note]:
        n = self.docs.get(note_id)
        return n.model_copy(deep=True) if n else None

    def find_by_slug(self, slug: str) -> Optional[Note]:
        for n in self.docs.values():
            if n.slug == slug:
                return n.model_copy(deep=True)
        return None

    def find_many(self, query: NoteQuery) -> List[Note]:
        dumped = [n.model_dump() for n in self.docs.values()]
        return [Note.model_validate(d) for d in apply_query(dumped, query)]

    def count(self, filtro: Dict[str, Any]) -> int:
        return sum(1 for n in self.docs.values() if matches(n.model_dump(), filtro))

    def insert(self, note: Note) -> Note:
        if note.slug and any(n.slug == note.slug for n in self.docs.values()):
            raise Conflict("A note with this slug already exists", fields=["slug"])
        self.docs[note.id] = note.model_copy(deep=True)
        return note

    def save(self, note: Note, expected_revision: int) -> bool:
        self.save_calls += 1
        if self.before_save is not None:
            hook, self.before_save = self.before_save, None
            hook(note)
        current = self.docs.get(note.id)
        if current is None or current.revision != expected_revision:
            return False
        self.docs[note.id] = note.model_copy(deep=True)
        return True

    def delete_by_id(self, note_id: str) -> bool:
        return self.docs.pop(note_id, None) is not None

    def increment(self, note_id: str, field: str, set_fields: Dict[str, Any]) -> Optional[Note]:
        current = self.docs.get(note_id)
        if current is None:
            return None
        update = {field: getattr(current, field) + 1, "revision": current.revision + 1, **set_fields}
        self.docs[note_id] = current.model_copy(update=update)
        return self.docs[note_id].model_copy(deep=True)

    def pull_file(self, file_id: str, now) -> int:
        changed = 0
        for nid, n in list(self.docs.items()):
            if file_id in n.files:
                self.docs[nid] = n.model_copy(
                    update={
                        "files": [f for f in n.files if f != file_id],
                        "revision": n.revision + 1,
                        "updated_at": now,
                    }
                )
                changed += 1
        return changed


class InMemoryFileStore:
    def __init__(self) -> None:
        self.docs: Dict[str, FileRecord] = {}
        self._seq = 0

    def new_id(self) -> str:
        self._seq += 1
        return f"f{self._seq:023x}"

    def find_by_id(self, file_id: str) -> Optional[FileRecord]:
        r = self.docs.get(file_id)
        return r.model_copy(deep=True) if r else None

    def find_by_ids(self, file_ids: List[str]) -> List[FileRecord]:
        return [self.docs[f].model_copy(deep=True) for f in file_ids if f in self.docs]

    def insert(self, record: FileRecord) -> FileRecord:
        self.docs[record.id] = record.model_copy(deep=True)
        return record

    def delete_by_id(self, file_id: str) -> bool:
        return self.docs.pop(file_id, None) is not None

    def list_by_owner(self, owner_id: str, limit: int, skip: int = 0) -> List[FileRecord]:
        mine = sorted(
            (r for r in self.docs.values() if r.uploaded_by == owner_id),
            key=lambda r: r.uploaded_at,
            reverse=True,
        )
        return mine[skip: skip + limit]

    def list_popular(self, limit: int) -> List[FileRecord]:
        public = [r for r in self.docs.values() if r.is_public]
        return sorted(public, key=lambda r: r.download_count, reverse=True)[:limit]

    def list_by_type(self, mimetype: str, limit: int) -> List[FileRecord]:
        return [r for r in self.docs.values() if r.is_public and r.mimetype == mimetype][:limit]

    def increment_download(self, file_id: str, now) -> Optional[FileRecord]:
        r = self.docs.get(file_id)
        if r is None:
            return None
        self.docs[file_id] = r.model_copy(update={"download_count": r.download_count + 1, "updated_at": now})
        return self.docs[file_id].model_copy(deep=True)


class InMemoryBlobStorage(BlobStorage):
    def __init__(self) -> None:
        self.blobs: Dict[str, bytes] = {}
        self.store_calls = 0
        self._seq = 0

    def store(self, data: bytes, metadata: Dict[str, Any]) -> str:
        self.store_calls += 1
        self._seq += 1
        ref = f"blob-{self._seq}"
        self.blobs[ref] = bytes(data)
        return ref

    def retrieve(self, ref: str) -> bytes:
        if ref not in self.blobs:
            raise NotFound("File not found on storage", ref=ref)
        return self.blobs[ref]

    def delete(self, ref: str) -> bool:
        return self.blobs.pop(ref, None) is not None


class InMemoryUserStore:
    def __init__(self) -> None:
        self.docs: Dict[str, Dict[str, Any]] = {}

    def insert(self, doc: Dict[str, Any]) -> str:
        for d in self.docs.values():
            if d["email"] == doc["email"] or d["username"] == doc["username"]:
                raise Conflict("User already exists")
        user_id = f"u{len(self.docs) + 1:023x}"
        self.docs[user_id] = {**doc, "_id": user_id}
        return user_id

    def find_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        return next((d for d in self.docs.values() if d["email"] == email), None)

    def find_by_username(self, username: str) -> Optional[Dict[str, Any]]:
        return next((d for d in self.docs.values() if d["username"] == username), None)


class InMemoryCategoryStore:
    def __init__(self) -> None:
        self.docs: List[Dict[str, Any]] = []

    def insert(self, doc: Dict[str, Any]) -> str:
        if any(d["name"] == doc["name"] or d["slug"] == doc["slug"] for d in self.docs):
            raise Conflict("Category already exists", fields=["name"])
        cat_id = f"c{len(self.docs) + 1:023x}"
        self.docs.append({"is_active": True, "note_count": 0, **doc, "id": cat_id})
        return cat_id

    def list_active(self) -> List[Dict[str, Any]]:
        active = [dict(d) for d in self.docs if d["is_active"]]
        return sorted(active, key=lambda d: (-d["note_count"], d["name"]))

    def adjust_note_count(self, name: str, delta: int) -> None:
        for d in self.docs:
            if d["name"] == name and d["note_count"] + delta >= 0:
                d["note_count"] += delta


# ──────────────────────────────────────────────────────────────────────────────
# Fixtures
# ──────────────────────────────────────────────────────────────────────────────

@pytest.fixture
def note_store() -> InMemoryNoteStore:
    return InMemoryNoteStore()


@pytest.fixture
def file_store() -> InMemoryFileStore:
    return InMemoryFileStore()


@pytest.fixture
def blobs() -> InMemoryBlobStorage:
    return InMemoryBlobStorage()


@pytest.fixture
def category_store() -> InMemoryCategoryStore:
    return InMemoryCategoryStore()


@pytest.fixture
def user_store() -> InMemoryUserStore:
    return InMemoryUserStore()


@pytest.fixture
def note_service(note_store, file_store, blobs, category_store) -> NoteService:
    return NoteService(note_store, file_store, blobs, category_store, retries=3)


@pytest.fixture
def file_service(file_store, note_store, blobs) -> FileService:
    return FileService(file_store, note_store, blobs)


@pytest.fixture
def alice() -> Identity:
    return Identity(user_id="a" * 24, display_name="alice")


@pytest.fixture
def bob() -> Identity:
    return Identity(user_id="b" * 24, display_name="bob")


@pytest.fixture
def make_note(note_service, alice):
    """Crea una nota de alice (o del autor dado) con valores por defecto."""

    def _make(author: Optional[Identity] = None, **fields) -> Note:
        data = {"title": "Cell Biology Basics", "content": "Cells are the basic unit of life."}
        data.update(fields)
        return note_service.create(author or alice, data)

    return _make


@pytest.fixture
def pdf_upload():
    def _make(name: str = "notes.pdf", data: bytes = b"%PDF-1.4 test") -> Upload:
        return Upload(original_name=name, mimetype="application/pdf", data=data)

    return _make


@pytest.fixture
def jwt_secret(monkeypatch):
    monkeypatch.setattr(settings, "jwt_secret", "test-secret")
    return "test-secret"


@pytest.fixture
def auth_header(jwt_secret):
    def _header(identity: Identity) -> Dict[str, str]:
        token = create_access_token(user_id=identity.user_id, display_name=identity.display_name)
        return {"Authorization": f"Bearer {token}"}

    return _header


@pytest.fixture
def client(note_service, file_service, user_store, category_store, jwt_secret):
    # Sin `with`: no corre el startup (no intenta conectar a Mongo)
    app.dependency_overrides[deps.get_note_service] = lambda: note_service
    app.dependency_overrides[deps.get_file_service] = lambda: file_service
    app.dependency_overrides[deps.get_auth_service] = lambda: AuthService(user_store)
    app.dependency_overrides[deps.get_category_service] = lambda: CategoryService(category_store)
    rate_limit.reset()
    yield TestClient(app)
    app.dependency_overrides.clear()
    rate_limit.reset()


@pytest.fixture
def backdate(note_store):
    """Mueve `created_at` de una nota `days` días al pasado."""

    def _backdate(note_id: str, days: int) -> None:
        n = note_store.docs[note_id]
        note_store.docs[note_id] = n.model_copy(update={"created_at": now_utc() - timedelta(days=days)})

    return _backdate
