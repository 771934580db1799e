"""Validaciones de campos de `note` previas a cualquier escritura."""
from __future__ import annotations

from typing import Iterable, List, Optional

from notehub.core.exceptions import ValidationFailed
from notehub.domain.notes.models import (
    CATEGORIES,
    COMMENT_MAX,
    CONTENT_MAX,
    DIFFICULTIES,
    META_DESCRIPTION_MAX,
    STATUSES,
    SUBJECT_MAX,
    SUMMARY_MAX,
    TAG_MAX,
    TITLE_MAX,
)


def normalize_tags(tags: Optional[Iterable[str]]) -> List[str]:
    """Minúsculas, sin espacios extremos, sin vacíos ni duplicados (conserva orden)."""
    uniq: List[str] = []
    seen = set()
    for t in (tags or []):
        tt = str(t).strip().lower()
        if tt and tt not in seen:
            seen.add(tt)
            uniq.append(tt)
    return uniq


def split_tags(raw: Optional[str]) -> List[str]:
    """Acepta tags como 'a, b, c' (formularios) y los normaliza."""
    if not raw:
        return []
    return normalize_tags(raw.split(","))


def _max_len(field: str, value: Optional[str], limit: int) -> None:
    if value is not None and len(value) > limit:
        raise ValidationFailed(f"{field} cannot exceed {limit} characters", field=field)


def check_title(title: Optional[str]) -> str:
    t = (title or "").strip()
    if not t:
        raise ValidationFailed("Note title is required", field="title")
    _max_len("title", t, TITLE_MAX)
    return t


def check_content(content: Optional[str]) -> str:
    if content is None or not content.strip():
        raise ValidationFailed("Note content is required", field="content")
    _max_len("content", content, CONTENT_MAX)
    return content


def check_tags(tags: Optional[Iterable[str]]) -> List[str]:
    norm = normalize_tags(tags)
    for t in norm:
        _max_len("tags", t, TAG_MAX)
    return norm


def check_category(category: Optional[str]) -> Optional[str]:
    if category in (None, ""):
        return None
    c = str(category).strip()
    if c not in CATEGORIES:
        raise ValidationFailed(f"Unknown category '{c}'", field="category", allowed=list(CATEGORIES))
    return c


def check_difficulty(difficulty: Optional[str]) -> Optional[str]:
    if difficulty is None:
        return None
    if difficulty not in DIFFICULTIES:
        raise ValidationFailed(f"Unknown difficulty '{difficulty}'", field="difficulty", allowed=list(DIFFICULTIES))
    return difficulty


def check_status(status: Optional[str]) -> Optional[str]:
    if status is None:
        return None
    if status not in STATUSES:
        raise ValidationFailed(f"Unknown status '{status}'", field="status", allowed=list(STATUSES))
    return status


def check_subject(subject: Optional[str]) -> Optional[str]:
    s = subject.strip() if subject else None
    _max_len("subject", s, SUBJECT_MAX)
    return s or None


def check_summary(summary: Optional[str]) -> Optional[str]:
    _max_len("summary", summary, SUMMARY_MAX)
    return summary or None


def check_meta_description(value: Optional[str]) -> Optional[str]:
    _max_len("meta_description", value, META_DESCRIPTION_MAX)
    return value or None


def check_comment(comment: Optional[str]) -> str:
    c = (comment or "").strip()
    _max_len("comment", c, COMMENT_MAX)
    return c
