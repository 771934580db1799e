"""
Esquemas Pydantic de la API de notas.

- Entrada: la validación de dominio (longitudes, enums, tags) vive en los
  servicios; aquí solo la forma del payload.
- Salida: timestamps ISO-8601 UTC y valores derivados ya calculados.
"""
from typing import List, Optional, Union

from pydantic import BaseModel, Field, StrictFloat, StrictInt

from notehub.core.time import iso
from notehub.domain.notes.models import Note, Review, VersionSnapshot


class NoteCreate(BaseModel):
    title: str
    content: str
    summary: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    category: Optional[str] = None
    subject: Optional[str] = None
    difficulty: Optional[str] = None
    is_public: bool = True
    is_pinned: bool = False
    files: List[str] = Field(default_factory=list)
    status: Optional[str] = None
    slug: Optional[str] = None
    meta_description: Optional[str] = None
    keywords: List[str] = Field(default_factory=list)


class NoteUpdate(BaseModel):
    """Solo se aplican los campos enviados."""

    title: Optional[str] = None
    content: Optional[str] = None
    summary: Optional[str] = None
    tags: Optional[List[str]] = None
    category: Optional[str] = None
    subject: Optional[str] = None
    difficulty: Optional[str] = None
    is_public: Optional[bool] = None
    is_pinned: Optional[bool] = None
    files: Optional[List[str]] = None
    status: Optional[str] = None
    meta_description: Optional[str] = None
    keywords: Optional[List[str]] = None
    change_description: Optional[str] = None


class StatusChange(BaseModel):
    status: str


class RatePayload(BaseModel):
    # Sin coerción: "5" o true no son calificaciones
    rating: Union[StrictInt, StrictFloat]
    comment: Optional[str] = ""


class ReviewOut(BaseModel):
    reviewer_id: str
    reviewer_name: Optional[str] = None
    rating: float
    comment: str
    created_at: str

    @classmethod
    def from_review(cls, r: Review) -> "ReviewOut":
        return cls(
            reviewer_id=r.reviewer_id,
            reviewer_name=r.reviewer_name,
            rating=r.rating,
            comment=r.comment,
            created_at=iso(r.created_at),
        )


class VersionOut(BaseModel):
    version: int
    title: str
    content: str
    updated_at: str
    change_description: str

    @classmethod
    def from_snapshot(cls, v: VersionSnapshot) -> "VersionOut":
        return cls(
            version=v.version,
            title=v.title,
            content=v.content,
            updated_at=iso(v.updated_at),
            change_description=v.change_description,
        )


class NoteOut(BaseModel):
    id: str
    title: str
    content: str
    summary: Optional[str] = None
    author_id: str
    author_name: str
    tags: List[str]
    category: Optional[str] = None
    subject: Optional[str] = None
    difficulty: str
    is_public: bool
    is_pinned: bool
    files: List[str]
    status: str
    slug: Optional[str] = None
    meta_description: Optional[str] = None
    keywords: List[str]
    download_count: int
    view_count: int
    rating: float
    rating_count: int
    average_rating: float
    reviews: List[ReviewOut]
    favorite_count: int
    version: int
    reading_time: int
    created_at: str
    updated_at: str
    published_at: Optional[str] = None
    last_viewed_at: Optional[str] = None

    @classmethod
    def from_note(cls, n: Note) -> "NoteOut":
        data = n.model_dump(exclude={"previous_versions", "favorited_by", "reviews", "revision"})
        data.update(
            reviews=[ReviewOut.from_review(r) for r in n.reviews],
            average_rating=n.average_rating,
            favorite_count=n.favorite_count,
            reading_time=n.reading_time,
            created_at=iso(n.created_at),
            updated_at=iso(n.updated_at),
            published_at=iso(n.published_at),
            last_viewed_at=iso(n.last_viewed_at),
        )
        return cls(**data)


class NoteListOut(BaseModel):
    items: List[NoteOut]
    total: int
    page: int
    limit: int


class RateOut(BaseModel):
    message: str
    created: bool
    rating: float
    rating_count: int
    average_rating: float


class FavoriteOut(BaseModel):
    favorited: bool
    favorite_count: int


class CounterOut(BaseModel):
    message: str
    view_count: int
    download_count: int


class DeleteOut(BaseModel):
    message: str
    id: str
    files_deleted: int
