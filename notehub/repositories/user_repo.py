"""Repo de la colección `user` (identidad local: username/email únicos)."""
from typing import Any, Dict, Optional

from notehub.infrastructure.db.mongo import get_db
from notehub.repositories.base import mongo_errors

COLLECTION = "user"


class MongoUserRepository:
    def __init__(self, db=None) -> None:
        self._db = db

    @property
    def coll(self):
        return (self._db if self._db is not None else get_db())[COLLECTION]

    def insert(self, doc: Dict[str, Any]) -> str:
        with mongo_errors("User already exists"):
            res = self.coll.insert_one(dict(doc))
        return str(res.inserted_id)

    def find_by_email(self, email: str) -> Optional[Dict[str, Any]]:
        """Busca usuario por email (email en minúsculas)."""
        with mongo_errors():
            return self.coll.find_one({"email": email})

    def find_by_username(self, username: str) -> Optional[Dict[str, Any]]:
        with mongo_errors():
            return self.coll.find_one({"username": username})
