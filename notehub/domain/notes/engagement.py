"""Favoritos, contadores y ciclo de vida (status) de una nota."""
from __future__ import annotations

from datetime import datetime
from typing import Dict, List, Sequence, Tuple

from notehub.core.exceptions import ValidationFailed
from notehub.domain.notes.models import SUMMARY_AUTO_CHARS, Note, NoteStatus

VIEW_COUNTER = "view_count"
DOWNLOAD_COUNTER = "download_count"


def toggle_favorite(favorited_by: Sequence[str], user_id: str) -> Tuple[List[str], bool]:
    """Quita a `user_id` si ya estaba; si no, lo agrega al final.

    Devuelve (nueva lista, True si quedó como favorito).
    """
    uid = str(user_id)
    current = list(favorited_by)
    if uid in current:
        current.remove(uid)
        return current, False
    current.append(uid)
    return current, True


def counter_update(counter: str, now: datetime) -> Tuple[str, Dict[str, datetime]]:
    """Campo a incrementar y campos a sellar para un contador de visitas/descargas."""
    if counter == VIEW_COUNTER:
        return VIEW_COUNTER, {"updated_at": now, "last_viewed_at": now}
    if counter == DOWNLOAD_COUNTER:
        return DOWNLOAD_COUNTER, {"updated_at": now}
    raise ValueError(f"Unknown counter: {counter}")


def auto_summary(content: str) -> str:
    head = content[:SUMMARY_AUTO_CHARS]
    return head + ("..." if len(content) > SUMMARY_AUTO_CHARS else "")


def stamp_published(note: Note, now: datetime) -> Note:
    """Sella `published_at` la primera vez que la nota queda publicada."""
    if note.status == NoteStatus.PUBLISHED and note.published_at is None:
        return note.model_copy(update={"published_at": now})
    return note


def change_status(note: Note, new_status: str, now: datetime) -> Note:
    """Transición de status. `deleted` es terminal."""
    if new_status == note.status:
        return note
    if note.status == NoteStatus.DELETED:
        raise ValidationFailed("A deleted note cannot change status", field="status")
    return stamp_published(note.model_copy(update={"status": new_status}), now)
