"""Constructor de consultas para listar/buscar notas.

Produce filtro, proyección, orden y paginación en el dialecto de Mongo; la
ejecución la hace el repositorio.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

from notehub.core.config import settings
from notehub.core.exceptions import ValidationFailed
from notehub.core.time import days_ago, now_utc
from notehub.domain.notes.models import NoteStatus
from notehub.domain.notes.validation import check_category, normalize_tags

TEXT_SCORE = {"$meta": "textScore"}
NEWEST_FIRST: List[Tuple[str, Any]] = [("created_at", -1)]
POPULARITY: List[Tuple[str, Any]] = [("download_count", -1), ("rating", -1), ("view_count", -1)]
TIMEFRAMES = {"all": None, "week": 7, "month": 30}


@dataclass
class NoteQuery:
    filter: Dict[str, Any]
    sort: List[Tuple[str, Any]]
    limit: int
    skip: int = 0
    projection: Optional[Dict[str, Any]] = None
    text_search: bool = field(default=False)


def paginate(page: Optional[int] = 1, limit: Optional[int] = None, default_limit: Optional[int] = None) -> Tuple[int, int]:
    """(limit, skip) con `page` base 1."""
    lim = limit if limit is not None else (default_limit or settings.default_page_size)
    pg = page if page is not None else 1
    if lim < 1 or lim > settings.max_page_size:
        raise ValidationFailed(f"limit must be between 1 and {settings.max_page_size}", field="limit")
    if pg < 1:
        raise ValidationFailed("page must be >= 1", field="page")
    return lim, (pg - 1) * lim


def published_filter(
    category: Optional[str] = None,
    tags: Optional[Iterable[str]] = None,
    author: Optional[str] = None,
) -> Dict[str, Any]:
    """Base pública (publicada y visible) + refinamientos combinados con AND."""
    filtro: Dict[str, Any] = {"status": NoteStatus.PUBLISHED.value, "is_public": True}
    return _refine(filtro, category=category, tags=tags, author=author)


def _refine(
    filtro: Dict[str, Any],
    category: Optional[str] = None,
    tags: Optional[Iterable[str]] = None,
    author: Optional[str] = None,
) -> Dict[str, Any]:
    cat = check_category(category)
    if cat:
        filtro["category"] = cat
    wanted = normalize_tags(tags)
    if wanted:
        # match-any
        filtro["tags"] = {"$in": wanted}
    if author:
        filtro["author_id"] = str(author)
    return filtro


def find_published(
    category: Optional[str] = None,
    tags: Optional[Iterable[str]] = None,
    author: Optional[str] = None,
    page: Optional[int] = 1,
    limit: Optional[int] = None,
) -> NoteQuery:
    lim, skip = paginate(page, limit)
    return NoteQuery(
        filter=published_filter(category=category, tags=tags, author=author),
        sort=list(NEWEST_FIRST),
        limit=lim,
        skip=skip,
    )


def search_notes(
    term: Optional[str],
    category: Optional[str] = None,
    tags: Optional[Iterable[str]] = None,
    author: Optional[str] = None,
    page: Optional[int] = 1,
    limit: Optional[int] = None,
) -> NoteQuery:
    """Búsqueda por relevancia sobre title/content/tags; sin término cae a `find_published`."""
    q = (term or "").strip()
    if not q:
        return find_published(category=category, tags=tags, author=author, page=page, limit=limit)
    lim, skip = paginate(page, limit)
    filtro = published_filter(category=category, tags=tags, author=author)
    filtro["$text"] = {"$search": q}
    return NoteQuery(
        filter=filtro,
        sort=[("score", TEXT_SCORE)],
        limit=lim,
        skip=skip,
        projection={"score": TEXT_SCORE},
        text_search=True,
    )


def find_popular(
    timeframe: Optional[str] = "all",
    limit: Optional[int] = None,
    page: Optional[int] = 1,
    now: Optional[datetime] = None,
) -> NoteQuery:
    tf = (timeframe or "all").lower()
    if tf not in TIMEFRAMES:
        raise ValidationFailed(
            f"Unknown timeframe '{timeframe}'", field="timeframe", allowed=list(TIMEFRAMES)
        )
    lim, skip = paginate(page, limit, default_limit=settings.popular_page_size)
    filtro = published_filter()
    days = TIMEFRAMES[tf]
    if days is not None:
        filtro["created_at"] = {"$gte": days_ago(days, now or now_utc())}
    return NoteQuery(filter=filtro, sort=list(POPULARITY), limit=lim, skip=skip)


def find_by_author(author_id: str, page: Optional[int] = 1, limit: Optional[int] = None) -> NoteQuery:
    """Mis notas: todas las del autor, sin filtro de status ni visibilidad."""
    lim, skip = paginate(page, limit)
    return NoteQuery(filter={"author_id": str(author_id)}, sort=list(NEWEST_FIRST), limit=lim, skip=skip)
