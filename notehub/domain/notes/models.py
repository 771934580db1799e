"""Modelo de dominio de `note`.

El documento se guarda tal cual en Mongo (campos snake_case); el id viaja como
string. Los límites de longitud/enum se validan en `validation.py` antes de
escribir, no al cargar, para no rechazar documentos legacy.
"""
from __future__ import annotations

import math
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field


class NoteStatus(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"
    DELETED = "deleted"


class NoteCategory(str, Enum):
    MATHEMATICS = "Mathematics"
    SCIENCE = "Science"
    HISTORY = "History"
    LITERATURE = "Literature"
    TECHNOLOGY = "Technology"
    BUSINESS = "Business"
    ENGINEERING = "Engineering"
    MEDICINE = "Medicine"
    ARTS = "Arts"
    LANGUAGE = "Language"
    PHILOSOPHY = "Philosophy"
    PSYCHOLOGY = "Psychology"
    OTHER = "Other"


class Difficulty(str, Enum):
    BEGINNER = "Beginner"
    INTERMEDIATE = "Intermediate"
    ADVANCED = "Advanced"


STATUSES = tuple(s.value for s in NoteStatus)
CATEGORIES = tuple(c.value for c in NoteCategory)
DIFFICULTIES = tuple(d.value for d in Difficulty)

TITLE_MAX = 200
CONTENT_MAX = 50_000
SUMMARY_MAX = 500
SUMMARY_AUTO_CHARS = 200
SUBJECT_MAX = 100
TAG_MAX = 30
COMMENT_MAX = 500
META_DESCRIPTION_MAX = 160
WORDS_PER_MINUTE = 200


class Review(BaseModel):
    reviewer_id: str
    reviewer_name: Optional[str] = None
    rating: float
    comment: str = ""
    created_at: datetime


class VersionSnapshot(BaseModel):
    """Copia inmutable de los campos editables antes de una edición."""

    model_config = ConfigDict(frozen=True)

    version: int
    title: str
    content: str
    updated_at: datetime
    change_description: str


class Note(BaseModel):
    model_config = ConfigDict(use_enum_values=True)

    id: str
    title: str
    content: str
    summary: Optional[str] = None
    author_id: str
    # Copia puntual del nombre visible al crear; no se refresca si el usuario lo cambia.
    author_name: str
    tags: List[str] = Field(default_factory=list)
    category: Optional[NoteCategory] = None
    subject: Optional[str] = None
    difficulty: Difficulty = Difficulty.INTERMEDIATE
    is_public: bool = True
    is_pinned: bool = False
    files: List[str] = Field(default_factory=list)

    download_count: int = 0
    view_count: int = 0
    rating: float = 0.0
    rating_count: int = 0
    reviews: List[Review] = Field(default_factory=list)
    favorited_by: List[str] = Field(default_factory=list)

    version: int = 1
    previous_versions: List[VersionSnapshot] = Field(default_factory=list)

    status: NoteStatus = NoteStatus.PUBLISHED
    slug: Optional[str] = None
    meta_description: Optional[str] = None
    keywords: List[str] = Field(default_factory=list)

    # Token de concurrencia: cada escritura lo incrementa
    revision: int = 0

    created_at: datetime
    updated_at: datetime
    published_at: Optional[datetime] = None
    last_viewed_at: Optional[datetime] = None

    @property
    def favorite_count(self) -> int:
        return len(self.favorited_by)

    @property
    def average_rating(self) -> float:
        # Redondeo half-up a un decimal (round() de Python es half-even)
        if self.rating_count <= 0:
            return 0
        return math.floor(self.rating * 10 + 0.5) / 10

    @property
    def reading_time(self) -> int:
        """Minutos estimados de lectura (200 palabras por minuto)."""
        words = len(self.content.split())
        return math.ceil(words / WORDS_PER_MINUTE)

    def is_owned_by(self, user_id: Optional[str]) -> bool:
        return bool(user_id) and self.author_id == str(user_id)
