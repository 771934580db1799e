"""Repo de la colección `category` (nombre y slug únicos)."""
from typing import Any, Dict, List

from notehub.core.time import now_utc
from notehub.infrastructure.db.mongo import get_db
from notehub.repositories.base import mongo_errors

COLLECTION = "category"


class MongoCategoryRepository:
    def __init__(self, db=None) -> None:
        self._db = db

    @property
    def coll(self):
        return (self._db if self._db is not None else get_db())[COLLECTION]

    def insert(self, doc: Dict[str, Any]) -> str:
        data = dict(doc)
        now = now_utc()
        data.setdefault("is_active", True)
        data.setdefault("note_count", 0)
        data.setdefault("created_at", now)
        data["updated_at"] = now
        with mongo_errors("Category already exists"):
            res = self.coll.insert_one(data)
        return str(res.inserted_id)

    def list_active(self) -> List[Dict[str, Any]]:
        """Categorías activas, las más usadas primero."""
        with mongo_errors():
            docs = list(self.coll.find({"is_active": True}).sort([("note_count", -1), ("name", 1)]))
        out: List[Dict[str, Any]] = []
        for d in docs:
            d = dict(d)
            d["id"] = str(d.pop("_id", ""))
            out.append(d)
        return out

    def adjust_note_count(self, name: str, delta: int) -> None:
        # Sin upsert: solo ajusta categorías registradas; nunca baja de 0
        filtro: Dict[str, Any] = {"name": name}
        if delta < 0:
            filtro["note_count"] = {"$gte": -delta}
        with mongo_errors():
            self.coll.update_one(
                filtro,
                {"$inc": {"note_count": delta}, "$set": {"updated_at": now_utc()}},
            )
