"""Agregador de calificaciones: media incremental con a lo sumo una reseña por usuario."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from numbers import Real
from typing import List, Optional, Sequence

from notehub.core.exceptions import ValidationFailed
from notehub.core.time import now_utc
from notehub.domain.notes.models import Review
from notehub.domain.notes.validation import check_comment

RATING_MIN = 1
RATING_MAX = 5


@dataclass(frozen=True)
class RatingResult:
    rating: float
    rating_count: int
    reviews: List[Review]
    created: bool


def check_rating_value(value) -> float:
    # bool es subclase de int; no es una calificación válida
    if isinstance(value, bool) or not isinstance(value, Real):
        raise ValidationFailed("Rating must be a number", field="rating")
    if not RATING_MIN <= value <= RATING_MAX:
        raise ValidationFailed(
            f"Rating must be between {RATING_MIN} and {RATING_MAX}",
            field="rating",
        )
    return float(value)


def _clamp(value: float) -> float:
    return min(max(value, 0.0), float(RATING_MAX))


def add_or_update_rating(
    rating: float,
    rating_count: int,
    reviews: Sequence[Review],
    reviewer_id: str,
    reviewer_name: Optional[str],
    value,
    comment: Optional[str] = "",
    now: Optional[datetime] = None,
) -> RatingResult:
    """Aplica la calificación de `reviewer_id` sobre el agregado actual.

    - Si ya calificó: reemplaza su valor previo en la media; el conteo no cambia.
    - Si no: agrega la reseña y el conteo sube en 1.
    No muta `reviews`; devuelve una lista nueva.
    """
    new_value = check_rating_value(value)
    text = check_comment(comment)
    reviewer_id = str(reviewer_id)

    out = [r.model_copy() for r in reviews]
    existing = next((r for r in out if r.reviewer_id == reviewer_id), None)

    if existing is not None:
        old = existing.rating
        # Documentos legacy pueden traer rating_count desfasado de las reseñas
        count = rating_count if rating_count > 0 else len(out)
        total = rating * count - old + new_value
        existing.rating = new_value
        existing.comment = text
        return RatingResult(rating=_clamp(total / count), rating_count=count, reviews=out, created=False)

    total = rating * rating_count + new_value
    count = rating_count + 1
    out.append(
        Review(
            reviewer_id=reviewer_id,
            reviewer_name=reviewer_name,
            rating=new_value,
            comment=text,
            created_at=now or now_utc(),
        )
    )
    return RatingResult(rating=_clamp(total / count), rating_count=count, reviews=out, created=True)
