"""
Registro y login local: hash argon2 y emisión de access token.
"""
from typing import Any, Dict

from argon2 import PasswordHasher
from argon2.exceptions import VerificationError, InvalidHashError
from argon2.low_level import Type

from notehub.core.exceptions import Conflict, Unauthorized
from notehub.core.logging import get_logger
from notehub.core.time import now_utc
from notehub.repositories.base import UserStore
from notehub.services.token_service import create_access_token

_log = get_logger("auth")

ph = PasswordHasher(time_cost=2, memory_cost=51200, parallelism=2, hash_len=32, salt_len=16, type=Type.ID)


def hash_password(password: str) -> str:
    return ph.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return ph.verify(password_hash, password)
    except (VerificationError, InvalidHashError):
        return False


class AuthService:
    def __init__(self, users: UserStore) -> None:
        self.users = users

    def register(self, *, username: str, email: str, password: str) -> Dict[str, Any]:
        """Crea el usuario local y devuelve un access token listo para usar."""
        email = email.strip().lower()
        username = username.strip()
        if self.users.find_by_email(email) or self.users.find_by_username(username):
            raise Conflict("User already exists")
        user_id = self.users.insert(
            {
                "username": username,
                "email": email,
                "password_hash": hash_password(password),
                "created_at": now_utc(),
            }
        )
        _log.info("Usuario registrado id=%s", user_id)
        return {
            "id": user_id,
            "username": username,
            "access_token": create_access_token(user_id=user_id, display_name=username),
            "token_type": "bearer",
        }

    def login(self, *, email: str, password: str) -> Dict[str, Any]:
        u = self.users.find_by_email(email.strip().lower())
        if not u or not u.get("password_hash") or not verify_password(password, u["password_hash"]):
            raise Unauthorized("Invalid credentials")
        user_id = str(u["_id"])
        return {
            "id": user_id,
            "username": u.get("username", ""),
            "access_token": create_access_token(user_id=user_id, display_name=u.get("username", "")),
            "token_type": "bearer",
        }
