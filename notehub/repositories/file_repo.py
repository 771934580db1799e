"""Repo de la colección `file` (metadatos de binarios; los bytes viven en el blob storage)."""
from typing import Any, Dict, List, Optional
from datetime import datetime

from bson import ObjectId
from bson.errors import InvalidId
from pymongo import ReturnDocument

from notehub.domain.files.models import FileRecord
from notehub.infrastructure.db.mongo import get_db
from notehub.repositories.base import mongo_errors

COLLECTION = "file"


def _oid(file_id: str) -> Optional[ObjectId]:
    try:
        return ObjectId(file_id)
    except (InvalidId, TypeError):
        return None


def to_document(record: FileRecord) -> Dict[str, Any]:
    data = record.model_dump(exclude={"id"})
    data["_id"] = ObjectId(record.id)
    return data


def from_document(doc: Dict[str, Any]) -> FileRecord:
    data = dict(doc)
    data["id"] = str(data.pop("_id"))
    return FileRecord.model_validate(data)


class MongoFileRepository:
    def __init__(self, db=None) -> None:
        self._db = db

    @property
    def coll(self):
        return (self._db if self._db is not None else get_db())[COLLECTION]

    def new_id(self) -> str:
        return str(ObjectId())

    def find_by_id(self, file_id: str) -> Optional[FileRecord]:
        oid = _oid(file_id)
        if oid is None:
            return None
        with mongo_errors():
            d = self.coll.find_one({"_id": oid})
        return from_document(d) if d else None

    def find_by_ids(self, file_ids: List[str]) -> List[FileRecord]:
        """Devuelve los archivos existentes respetando el orden de `file_ids`."""
        oids = [o for o in (_oid(f) for f in file_ids) if o is not None]
        if not oids:
            return []
        with mongo_errors():
            found = {str(d["_id"]): from_document(d) for d in self.coll.find({"_id": {"$in": oids}})}
        return [found[f] for f in file_ids if f in found]

    def insert(self, record: FileRecord) -> FileRecord:
        with mongo_errors():
            self.coll.insert_one(to_document(record))
        return record

    def delete_by_id(self, file_id: str) -> bool:
        oid = _oid(file_id)
        if oid is None:
            return False
        with mongo_errors():
            res = self.coll.delete_one({"_id": oid})
        return res.deleted_count == 1

    def list_by_owner(self, owner_id: str, limit: int, skip: int = 0) -> List[FileRecord]:
        with mongo_errors():
            cur = self.coll.find({"uploaded_by": str(owner_id)}).sort("uploaded_at", -1).skip(skip).limit(limit)
            return [from_document(d) for d in cur]

    def list_popular(self, limit: int) -> List[FileRecord]:
        with mongo_errors():
            cur = self.coll.find({"is_public": True}).sort([("download_count", -1), ("uploaded_at", -1)]).limit(limit)
            return [from_document(d) for d in cur]

    def list_by_type(self, mimetype: str, limit: int) -> List[FileRecord]:
        with mongo_errors():
            cur = self.coll.find({"mimetype": mimetype, "is_public": True}).sort("uploaded_at", -1).limit(limit)
            return [from_document(d) for d in cur]

    def increment_download(self, file_id: str, now: datetime) -> Optional[FileRecord]:
        oid = _oid(file_id)
        if oid is None:
            return None
        with mongo_errors():
            d = self.coll.find_one_and_update(
                {"_id": oid},
                {"$inc": {"download_count": 1}, "$set": {"updated_at": now}},
                return_document=ReturnDocument.AFTER,
            )
        return from_document(d) if d else None
