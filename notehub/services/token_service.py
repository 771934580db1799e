"""
Creación y verificación del access token (JWT HS256, PyJWT).
"""
from datetime import timedelta
from typing import Any, Dict
from uuid import uuid4

import jwt as pyjwt

from notehub.core.config import settings
from notehub.core.time import now_utc
from notehub.domain.users.identity import Identity


def _secret() -> str:
    if not settings.jwt_secret:
        raise RuntimeError("JWT_SECRET no configurado")
    return settings.jwt_secret


def create_access_token(*, user_id: str, display_name: str) -> str:
    """
    Genera un JWT válido por ACCESS_TOKEN_EXPIRE_MINUTES.
    Claims: sub(user_id), name, iat, exp, jti.
    """
    now = now_utc()
    exp = now + timedelta(minutes=settings.access_token_expire_minutes)
    payload = {
        "sub": str(user_id),
        "name": display_name,
        "iat": int(now.timestamp()),
        "exp": int(exp.timestamp()),
        "jti": str(uuid4()),
    }
    return pyjwt.encode(payload, _secret(), algorithm=settings.jwt_algorithm)


def verify_access_token(token: str) -> Dict[str, Any]:
    """
    Decodifica y valida firma/expiración. Devuelve payload.
    Lanza `jwt.InvalidTokenError` (o subclase) si no es válido.
    """
    return pyjwt.decode(token, key=_secret(), algorithms=[settings.jwt_algorithm])


def identity_from_token(token: str) -> Identity:
    payload = verify_access_token(token)
    sub = payload.get("sub")
    if not sub:
        raise pyjwt.InvalidTokenError("Token sin sub")
    return Identity(user_id=str(sub), display_name=str(payload.get("name") or ""))
