"""Repo de la colección `note`.

- El `_id` es ObjectId; hacia afuera viaja como `id` (str).
- `save` es compare-and-swap sobre `revision`; los contadores usan `$inc`.
"""
from typing import Any, Dict, List, Optional
from datetime import datetime

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import ReturnDocument

from notehub.domain.notes.models import Note
from notehub.domain.notes.queries import NoteQuery
from notehub.infrastructure.db.mongo import get_db
from notehub.repositories.base import mongo_errors

COLLECTION = "note"


def _oid(note_id: str) -> Optional[ObjectId]:
    try:
        return ObjectId(note_id)
    except (InvalidId, TypeError):
        return None


def to_document(note: Note) -> Dict[str, Any]:
    data = note.model_dump(exclude={"id"})
    data["_id"] = ObjectId(note.id)
    return data


def from_document(doc: Dict[str, Any]) -> Note:
    data = dict(doc)
    data["id"] = str(data.pop("_id"))
    data.pop("score", None)
    return Note.model_validate(data)


class MongoNoteRepository:
    def __init__(self, db=None) -> None:
        self._db = db

    @property
    def coll(self):
        return (self._db if self._db is not None else get_db())[COLLECTION]

    def new_id(self) -> str:
        return str(ObjectId())

    def find_by_id(self, note_id: str) -> Optional[Note]:
        oid = _oid(note_id)
        if oid is None:
            return None
        with mongo_errors():
            d = self.coll.find_one({"_id": oid})
        return from_document(d) if d else None

    def find_by_slug(self, slug: str) -> Optional[Note]:
        with mongo_errors():
            d = self.coll.find_one({"slug": slug})
        return from_document(d) if d else None

    def find_many(self, query: NoteQuery) -> List[Note]:
        with mongo_errors():
            cur = self.coll.find(query.filter, query.projection).sort(query.sort).skip(query.skip).limit(query.limit)
            return [from_document(d) for d in cur]

    def count(self, filtro: Dict[str, Any]) -> int:
        with mongo_errors():
            return self.coll.count_documents(filtro)

    def insert(self, note: Note) -> Note:
        with mongo_errors("A note with this slug already exists"):
            self.coll.insert_one(to_document(note))
        return note

    def save(self, note: Note, expected_revision: int) -> bool:
        doc = to_document(note)
        with mongo_errors("A note with this slug already exists"):
            res = self.coll.replace_one({"_id": doc["_id"], "revision": expected_revision}, doc)
        return res.matched_count == 1

    def delete_by_id(self, note_id: str) -> bool:
        oid = _oid(note_id)
        if oid is None:
            return False
        with mongo_errors():
            res = self.coll.delete_one({"_id": oid})
        return res.deleted_count == 1

    def increment(self, note_id: str, field: str, set_fields: Dict[str, Any]) -> Optional[Note]:
        """Incremento atómico de un contador; también sube `revision`."""
        oid = _oid(note_id)
        if oid is None:
            return None
        with mongo_errors():
            d = self.coll.find_one_and_update(
                {"_id": oid},
                {"$inc": {field: 1, "revision": 1}, "$set": set_fields},
                return_document=ReturnDocument.AFTER,
            )
        return from_document(d) if d else None

    def pull_file(self, file_id: str, now: datetime) -> int:
        """Quita la referencia a un archivo borrado de todas las notas que lo usan."""
        with mongo_errors():
            res = self.coll.update_many(
                {"files": file_id},
                {"$pull": {"files": file_id}, "$inc": {"revision": 1}, "$set": {"updated_at": now}},
            )
        return res.modified_count
