"""Snapshots de versión: se toman justo antes de aplicar una edición."""
from __future__ import annotations

from notehub.domain.notes.models import Note, VersionSnapshot

DEFAULT_CHANGE_DESCRIPTION = "Updated note"


def snapshot(note: Note, change_description: str = DEFAULT_CHANGE_DESCRIPTION) -> VersionSnapshot:
    return VersionSnapshot(
        version=note.version,
        title=note.title,
        content=note.content,
        updated_at=note.updated_at,
        change_description=change_description or DEFAULT_CHANGE_DESCRIPTION,
    )


def create_version(note: Note, change_description: str = DEFAULT_CHANGE_DESCRIPTION) -> Note:
    """Guarda el estado actual en el historial e incrementa `version`.

    No toca title/content. No es idempotente: cada llamada agrega una entrada,
    así que el llamador la invoca una sola vez por edición lógica.
    """
    return note.model_copy(
        update={
            "previous_versions": [*note.previous_versions, snapshot(note, change_description)],
            "version": note.version + 1,
        }
    )


def edits_content(note: Note, title: str | None, content: str | None) -> bool:
    """True si la edición cambia title o content (solo entonces se corta versión)."""
    return (title is not None and title != note.title) or (content is not None and content != note.content)
