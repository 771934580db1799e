"""
Endpoints de notas: CRUD, búsqueda, populares, versiones, calificaciones,
favoritos y contadores.

Lecturas con identidad opcional (anónimos ven solo lo público); escrituras
con Bearer token obligatorio.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, status

from notehub.api.deps import get_identity, get_note_service, get_optional_identity
from notehub.api.schemas.note import (
    CounterOut,
    DeleteOut,
    FavoriteOut,
    NoteCreate,
    NoteListOut,
    NoteOut,
    NoteUpdate,
    RateOut,
    RatePayload,
    StatusChange,
    VersionOut,
)
from notehub.domain.notes.validation import split_tags
from notehub.domain.users.identity import Identity
from notehub.services.note_service import NotePage, NoteService

router = APIRouter(prefix="/notes", tags=["Notes"])


def _list_out(page: NotePage) -> NoteListOut:
    return NoteListOut(
        items=[NoteOut.from_note(n) for n in page.items],
        total=page.total,
        page=page.page,
        limit=page.limit,
    )


@router.post(
    "",
    status_code=status.HTTP_201_CREATED,
    response_model=NoteOut,
    summary="Crear nota",
    description="Crea una nota del usuario autenticado; genera slug y resumen si faltan.",
)
def create_note(
    payload: NoteCreate,
    identity: Identity = Depends(get_identity),
    svc: NoteService = Depends(get_note_service),
) -> NoteOut:
    note = svc.create(identity, payload.model_dump())
    return NoteOut.from_note(note)


@router.get("", response_model=NoteListOut, summary="Listar / buscar notas publicadas")
def list_notes(
    search: Optional[str] = Query(default=None),
    category: Optional[str] = Query(default=None),
    tags: Optional[str] = Query(default=None, description="Tags separados por coma"),
    author: Optional[str] = Query(default=None),
    page: int = Query(default=1),
    limit: Optional[int] = Query(default=None),
    svc: NoteService = Depends(get_note_service),
) -> NoteListOut:
    result = svc.list_published(
        search=search,
        category=category,
        tags=split_tags(tags),
        author=author,
        page=page,
        limit=limit,
    )
    return _list_out(result)


@router.get("/popular", response_model=NoteListOut, summary="Notas populares")
def popular_notes(
    timeframe: str = Query(default="all", description="all | week | month"),
    limit: Optional[int] = Query(default=None),
    page: int = Query(default=1),
    svc: NoteService = Depends(get_note_service),
) -> NoteListOut:
    return _list_out(svc.popular(timeframe, limit=limit, page=page))


@router.get("/mine", response_model=NoteListOut, summary="Mis notas (todos los status)")
def my_notes(
    page: int = Query(default=1),
    limit: Optional[int] = Query(default=None),
    identity: Identity = Depends(get_identity),
    svc: NoteService = Depends(get_note_service),
) -> NoteListOut:
    return _list_out(svc.mine(identity, page=page, limit=limit))


@router.get("/slug/{slug}", response_model=NoteOut, summary="Nota por slug")
def get_note_by_slug(
    slug: str,
    viewer: Optional[Identity] = Depends(get_optional_identity),
    svc: NoteService = Depends(get_note_service),
) -> NoteOut:
    return NoteOut.from_note(svc.get_by_slug(slug, viewer))


@router.get("/{note_id}", response_model=NoteOut, summary="Nota por id")
def get_note(
    note_id: str,
    viewer: Optional[Identity] = Depends(get_optional_identity),
    svc: NoteService = Depends(get_note_service),
) -> NoteOut:
    return NoteOut.from_note(svc.get(note_id, viewer))


@router.get("/{note_id}/versions", response_model=List[VersionOut], summary="Historial de versiones")
def note_versions(
    note_id: str,
    viewer: Optional[Identity] = Depends(get_optional_identity),
    svc: NoteService = Depends(get_note_service),
) -> List[VersionOut]:
    return [VersionOut.from_snapshot(v) for v in svc.versions(note_id, viewer)]


@router.put("/{note_id}", response_model=NoteOut, summary="Editar nota (solo autor)")
def update_note(
    note_id: str,
    payload: NoteUpdate,
    identity: Identity = Depends(get_identity),
    svc: NoteService = Depends(get_note_service),
) -> NoteOut:
    changes = payload.model_dump(exclude_unset=True)
    description = changes.pop("change_description", None)
    return NoteOut.from_note(svc.update(note_id, identity, changes, description))


@router.post("/{note_id}/status", response_model=NoteOut, summary="Cambiar status")
def change_status(
    note_id: str,
    payload: StatusChange,
    identity: Identity = Depends(get_identity),
    svc: NoteService = Depends(get_note_service),
) -> NoteOut:
    return NoteOut.from_note(svc.change_status(note_id, identity, payload.status))


@router.delete("/{note_id}", response_model=DeleteOut, summary="Borrar nota y sus archivos")
def delete_note(
    note_id: str,
    identity: Identity = Depends(get_identity),
    svc: NoteService = Depends(get_note_service),
) -> DeleteOut:
    res = svc.delete(note_id, identity)
    return DeleteOut(message="Note deleted successfully", id=res["id"], files_deleted=res["files_deleted"])


@router.post("/{note_id}/rate", response_model=RateOut, summary="Calificar nota")
def rate_note(
    note_id: str,
    payload: RatePayload,
    identity: Identity = Depends(get_identity),
    svc: NoteService = Depends(get_note_service),
) -> RateOut:
    note, created = svc.rate(note_id, identity, payload.rating, payload.comment)
    return RateOut(
        message="Rating added successfully" if created else "Rating updated successfully",
        created=created,
        rating=note.rating,
        rating_count=note.rating_count,
        average_rating=note.average_rating,
    )


@router.post("/{note_id}/favorite", response_model=FavoriteOut, summary="Marcar / desmarcar favorito")
def toggle_favorite(
    note_id: str,
    identity: Identity = Depends(get_identity),
    svc: NoteService = Depends(get_note_service),
) -> FavoriteOut:
    note, added = svc.toggle_favorite(note_id, identity)
    return FavoriteOut(favorited=added, favorite_count=note.favorite_count)


@router.post("/{note_id}/view", response_model=CounterOut, summary="Registrar visita")
def register_view(
    note_id: str,
    viewer: Optional[Identity] = Depends(get_optional_identity),
    svc: NoteService = Depends(get_note_service),
) -> CounterOut:
    note = svc.increment_view(note_id, viewer)
    return CounterOut(message="ok", view_count=note.view_count, download_count=note.download_count)


@router.post("/{note_id}/download", response_model=CounterOut, summary="Registrar descarga")
def register_download(
    note_id: str,
    viewer: Optional[Identity] = Depends(get_optional_identity),
    svc: NoteService = Depends(get_note_service),
) -> CounterOut:
    note = svc.increment_download(note_id, viewer)
    return CounterOut(
        message="Download count updated",
        view_count=note.view_count,
        download_count=note.download_count,
    )
