"""
Casos de uso de notas: orquesta validación, slug, versiones, calificaciones,
favoritos y contadores sobre los stores inyectados.

- Las mutaciones read-modify-write usan compare-and-swap sobre `revision`
  y se reintentan `settings.note_write_retries` veces antes de `Conflict`.
- Los contadores son `$inc` atómicos en el repositorio.
- Validaciones y chequeos de dueño ocurren antes de cualquier escritura.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, Iterable, List, Optional, Tuple

from notehub.core.config import settings
from notehub.core.exceptions import Conflict, Forbidden, NotFound, ValidationFailed
from notehub.core.time import now_utc
from notehub.domain.notes import engagement, queries
from notehub.domain.notes.models import Difficulty, Note, NoteStatus, VersionSnapshot
from notehub.domain.notes.rating import add_or_update_rating
from notehub.domain.notes.slug import generate_slug, slugify
from notehub.domain.notes.validation import (
    check_category,
    check_content,
    check_difficulty,
    check_meta_description,
    check_status,
    check_subject,
    check_summary,
    check_tags,
    check_title,
    normalize_tags,
)
from notehub.domain.notes.versioning import DEFAULT_CHANGE_DESCRIPTION, create_version, edits_content
from notehub.domain.users.identity import Identity
from notehub.infrastructure.storage.blob import BlobStorage
from notehub.repositories.base import CategoryStore, FileStore, NoteStore

_log = logging.getLogger("notehub.notes")

# Campos editables vía update (title/content se tratan aparte por el versionado)
_PLAIN_FIELDS = ("is_public", "is_pinned")


@dataclass
class NotePage:
    items: List[Note]
    total: int
    page: int
    limit: int


class NoteService:
    def __init__(
        self,
        notes: NoteStore,
        files: FileStore,
        blobs: BlobStorage,
        categories: Optional[CategoryStore] = None,
        retries: Optional[int] = None,
    ) -> None:
        self.notes = notes
        self.files = files
        self.blobs = blobs
        self.categories = categories
        self.retries = retries if retries is not None else settings.note_write_retries

    # ──────────────────────────────────────────────────────────────────────
    # Lectura
    # ──────────────────────────────────────────────────────────────────────

    def get(self, note_id: str, viewer: Optional[Identity] = None) -> Note:
        note = self._load(note_id)
        self._check_visible(note, viewer)
        return note

    def get_by_slug(self, slug: str, viewer: Optional[Identity] = None) -> Note:
        note = self.notes.find_by_slug(slug)
        if note is None:
            raise NotFound("Note not found", slug=slug)
        self._check_visible(note, viewer)
        return note

    def versions(self, note_id: str, viewer: Optional[Identity] = None) -> List[VersionSnapshot]:
        return list(self.get(note_id, viewer).previous_versions)

    def list_published(
        self,
        search: Optional[str] = None,
        category: Optional[str] = None,
        tags: Optional[Iterable[str]] = None,
        author: Optional[str] = None,
        page: Optional[int] = 1,
        limit: Optional[int] = None,
    ) -> NotePage:
        q = queries.search_notes(search, category=category, tags=tags, author=author, page=page, limit=limit)
        return self._page(q, page)

    def popular(self, timeframe: Optional[str] = "all", limit: Optional[int] = None, page: Optional[int] = 1) -> NotePage:
        q = queries.find_popular(timeframe, limit=limit, page=page)
        return self._page(q, page)

    def mine(self, identity: Identity, page: Optional[int] = 1, limit: Optional[int] = None) -> NotePage:
        q = queries.find_by_author(identity.user_id, page=page, limit=limit)
        return self._page(q, page)

    # ──────────────────────────────────────────────────────────────────────
    # Escritura
    # ──────────────────────────────────────────────────────────────────────

    def create(self, identity: Identity, data: Dict[str, Any]) -> Note:
        title = check_title(data.get("title"))
        content = check_content(data.get("content"))
        status = check_status(data.get("status")) or NoteStatus.PUBLISHED.value
        if status == NoteStatus.DELETED.value:
            raise ValidationFailed("A note cannot be created as deleted", field="status")
        category = check_category(data.get("category"))
        file_ids = self._check_files(identity, data.get("files"))

        note_id = self.notes.new_id()
        if data.get("slug"):
            slug = slugify(data["slug"])
            if not slug:
                raise ValidationFailed("slug must contain letters or digits", field="slug")
        else:
            slug = generate_slug(title, fallback=note_id)

        now = now_utc()
        note = Note(
            id=note_id,
            title=title,
            content=content,
            summary=check_summary(data.get("summary")) or engagement.auto_summary(content),
            author_id=identity.user_id,
            author_name=identity.display_name,
            tags=check_tags(data.get("tags")),
            category=category,
            subject=check_subject(data.get("subject")),
            difficulty=check_difficulty(data.get("difficulty")) or Difficulty.INTERMEDIATE.value,
            is_public=data.get("is_public") is not False,
            is_pinned=bool(data.get("is_pinned")),
            files=file_ids,
            status=status,
            slug=slug,
            meta_description=check_meta_description(data.get("meta_description")),
            keywords=normalize_tags(data.get("keywords")),
            created_at=now,
            updated_at=now,
        )
        note = engagement.stamp_published(note, now)
        self.notes.insert(note)
        if category:
            self._adjust_category(category, 1)
        _log.info("Nota creada id=%s slug=%s author=%s", note.id, note.slug, note.author_id)
        return note

    def update(
        self,
        note_id: str,
        identity: Identity,
        changes: Dict[str, Any],
        change_description: Optional[str] = None,
    ) -> Note:
        """Edición del autor. Corta una versión solo si cambia title o content."""
        # Todo lo que no depende del estado actual se valida antes de leer
        title = check_title(changes["title"]) if changes.get("title") is not None else None
        content = check_content(changes["content"]) if changes.get("content") is not None else None
        updates: Dict[str, Any] = {}
        if "tags" in changes and changes["tags"] is not None:
            updates["tags"] = check_tags(changes["tags"])
        if "category" in changes:
            updates["category"] = check_category(changes["category"])
        if "subject" in changes:
            updates["subject"] = check_subject(changes["subject"])
        if changes.get("difficulty") is not None:
            updates["difficulty"] = check_difficulty(changes["difficulty"])
        if "summary" in changes:
            updates["summary"] = check_summary(changes["summary"])
        if "meta_description" in changes:
            updates["meta_description"] = check_meta_description(changes["meta_description"])
        if changes.get("keywords") is not None:
            updates["keywords"] = normalize_tags(changes["keywords"])
        if changes.get("files") is not None:
            updates["files"] = self._check_files(identity, changes["files"])
        for key in _PLAIN_FIELDS:
            if changes.get(key) is not None:
                updates[key] = bool(changes[key])
        new_status = check_status(changes.get("status"))
        description = (change_description or "").strip() or DEFAULT_CHANGE_DESCRIPTION

        def apply(note: Note) -> Note:
            self._check_owner(note, identity)
            if note.status == NoteStatus.DELETED:
                raise ValidationFailed("A deleted note cannot be edited", field="status")
            now = now_utc()
            if edits_content(note, title, content):
                note = create_version(note, description)
            edited: Dict[str, Any] = dict(updates)
            if title is not None:
                edited["title"] = title
            if content is not None:
                edited["content"] = content
            edited["updated_at"] = now
            note = note.model_copy(update=edited)
            if new_status is not None:
                note = engagement.change_status(note, new_status, now)
            return note

        before, after = self._mutate(note_id, apply)
        if before.category != after.category:
            if before.category:
                self._adjust_category(before.category, -1)
            if after.category:
                self._adjust_category(after.category, 1)
        _log.info("Nota actualizada id=%s version=%s", after.id, after.version)
        return after

    def change_status(self, note_id: str, identity: Identity, status: Optional[str]) -> Note:
        new_status = check_status(status)
        if new_status is None:
            raise ValidationFailed("status is required", field="status")

        def apply(note: Note) -> Note:
            self._check_owner(note, identity)
            changed = engagement.change_status(note, new_status, now_utc())
            if changed is note:
                return note
            return changed.model_copy(update={"updated_at": now_utc()})

        _, after = self._mutate(note_id, apply)
        _log.info("Nota id=%s status=%s", after.id, after.status)
        return after

    def delete(self, note_id: str, identity: Identity) -> Dict[str, Any]:
        """Borrado físico en cascada: blobs, registros de archivo y la nota.

        No transaccional; repetir tras un fallo parcial es seguro porque los
        blobs y registros ya ausentes se saltan.
        """
        note = self._load(note_id)
        self._check_owner(note, identity)
        now = now_utc()
        removed = 0
        for file_id in note.files:
            record = self.files.find_by_id(file_id)
            if record is None:
                continue
            if not self.blobs.delete(record.storage_ref):
                _log.warning("Blob ausente al borrar archivo id=%s ref=%s", file_id, record.storage_ref)
            if self.files.delete_by_id(file_id):
                removed += 1
            self.notes.pull_file(file_id, now)
        if not self.notes.delete_by_id(note_id):
            raise NotFound("Note not found", note_id=note_id)
        if note.category:
            self._adjust_category(note.category, -1)
        _log.info("Nota borrada id=%s archivos=%s", note_id, removed)
        return {"id": note_id, "files_deleted": removed}

    def rate(
        self,
        note_id: str,
        identity: Identity,
        value: Any,
        comment: Optional[str] = "",
    ) -> Tuple[Note, bool]:
        """Calificación 1..5; una por usuario (re-calificar reemplaza la anterior)."""
        created: List[bool] = []

        def apply(note: Note) -> Note:
            self._check_visible(note, identity)
            result = add_or_update_rating(
                note.rating,
                note.rating_count,
                note.reviews,
                identity.user_id,
                identity.display_name,
                value,
                comment,
            )
            created[:] = [result.created]
            return note.model_copy(
                update={
                    "rating": result.rating,
                    "rating_count": result.rating_count,
                    "reviews": result.reviews,
                    "updated_at": now_utc(),
                }
            )

        _, after = self._mutate(note_id, apply)
        return after, created[0]

    def toggle_favorite(self, note_id: str, identity: Identity) -> Tuple[Note, bool]:
        added: List[bool] = []

        def apply(note: Note) -> Note:
            self._check_visible(note, identity)
            favorited_by, is_fav = engagement.toggle_favorite(note.favorited_by, identity.user_id)
            added[:] = [is_fav]
            return note.model_copy(update={"favorited_by": favorited_by, "updated_at": now_utc()})

        _, after = self._mutate(note_id, apply)
        return after, added[0]

    def increment_view(self, note_id: str, viewer: Optional[Identity] = None) -> Note:
        return self._count(note_id, engagement.VIEW_COUNTER, viewer)

    def increment_download(self, note_id: str, viewer: Optional[Identity] = None) -> Note:
        return self._count(note_id, engagement.DOWNLOAD_COUNTER, viewer)

    # ──────────────────────────────────────────────────────────────────────
    # Helpers
    # ──────────────────────────────────────────────────────────────────────

    def _load(self, note_id: str) -> Note:
        note = self.notes.find_by_id(note_id)
        if note is None:
            raise NotFound("Note not found", note_id=note_id)
        return note

    def _page(self, q: queries.NoteQuery, page: Optional[int]) -> NotePage:
        items = self.notes.find_many(q)
        total = self.notes.count(q.filter)
        return NotePage(items=items, total=total, page=page or 1, limit=q.limit)

    def _count(self, note_id: str, counter: str, viewer: Optional[Identity]) -> Note:
        # Mismas reglas de visibilidad que la lectura; el incremento sigue siendo $inc
        self.get(note_id, viewer)
        field, set_fields = engagement.counter_update(counter, now_utc())
        note = self.notes.increment(note_id, field, set_fields)
        if note is None:
            raise NotFound("Note not found", note_id=note_id)
        return note

    def _mutate(self, note_id: str, apply: Callable[[Note], Note]) -> Tuple[Note, Note]:
        """Lee, aplica `apply` y guarda con CAS. Devuelve (antes, después)."""
        for attempt in range(1, self.retries + 1):
            current = self._load(note_id)
            updated = apply(current)
            if updated is current:
                return current, current
            updated = updated.model_copy(update={"revision": current.revision + 1})
            if self.notes.save(updated, current.revision):
                return current, updated
            _log.info("Escritura concurrente sobre nota id=%s (intento %s/%s)", note_id, attempt, self.retries)
        raise Conflict("Note was modified concurrently, please retry", note_id=note_id)

    def _check_owner(self, note: Note, identity: Identity) -> None:
        if not note.is_owned_by(identity.user_id):
            raise Forbidden("Not authorized", note_id=note.id)

    def _check_visible(self, note: Note, viewer: Optional[Identity]) -> None:
        """Públicas para todos salvo borradores y borradas; privadas solo para el autor."""
        if viewer is not None and note.is_owned_by(viewer.user_id):
            return
        if note.status == NoteStatus.DELETED:
            raise NotFound("Note not found", note_id=note.id)
        if not note.is_public or note.status == NoteStatus.DRAFT:
            raise Forbidden("Access denied", note_id=note.id)

    def _check_files(self, identity: Identity, file_ids: Optional[Iterable[str]]) -> List[str]:
        """Las referencias deben existir y pertenecer al autor (el borrado es en cascada)."""
        ids = list(dict.fromkeys(str(f) for f in (file_ids or [])))
        if not ids:
            return []
        found = {f.id: f for f in self.files.find_by_ids(ids)}
        missing = [f for f in ids if f not in found]
        if missing:
            raise ValidationFailed("Unknown file reference", field="files", missing=missing)
        foreign = [f for f in ids if found[f].uploaded_by != identity.user_id]
        if foreign:
            raise Forbidden("Files must be uploaded by the note author", files=foreign)
        return ids

    def _adjust_category(self, category: str, delta: int) -> None:
        if self.categories is not None:
            self.categories.adjust_note_count(category, delta)
