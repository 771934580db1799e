"""Generador de slugs URL-safe a partir del título."""
from __future__ import annotations

import re
import threading
import time
from typing import Optional

from notehub.core.exceptions import ValidationFailed

_NOT_ALLOWED = re.compile(r"[^a-z0-9 -]")
_WHITESPACE = re.compile(r"\s+")
_HYPHENS = re.compile(r"-+")

_lock = threading.Lock()
_last_token = 0


def slugify(text: str) -> str:
    """Slug base (sin sufijo): minúsculas, solo [a-z0-9-], sin guiones en los extremos."""
    s = (text or "").lower()
    s = _NOT_ALLOWED.sub("", s)
    s = _WHITESPACE.sub("-", s)
    s = _HYPHENS.sub("-", s)
    return s.strip("-")


def unique_token() -> str:
    """Timestamp en milisegundos, estrictamente creciente dentro del proceso."""
    global _last_token
    with _lock:
        now_ms = int(time.time() * 1000)
        _last_token = max(now_ms, _last_token + 1)
        return str(_last_token)


def generate_slug(title: str, fallback: Optional[str] = None) -> str:
    """Slug base + sufijo de unicidad.

    Si el título queda vacío tras limpiar, usa `fallback` (p. ej. el id del registro).
    """
    base = slugify(title)
    if not base and fallback:
        base = slugify(str(fallback))
    if not base:
        raise ValidationFailed("Cannot derive a slug from the title", field="title")
    return f"{base}-{unique_token()}"
