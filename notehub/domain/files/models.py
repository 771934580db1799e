"""Modelo de dominio de `file` (binario subido) y sus reglas de aceptación."""
from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from notehub.core.config import settings
from notehub.core.exceptions import ValidationFailed

DESCRIPTION_MAX = 200
_SIZE_UNITS = ["Bytes", "KB", "MB", "GB"]


class FileMetadata(BaseModel):
    width: Optional[int] = None
    height: Optional[int] = None
    pages: Optional[int] = None


class FileRecord(BaseModel):
    id: str
    filename: str
    original_name: str
    mimetype: str
    size: int
    storage_ref: str
    uploaded_by: str
    description: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    is_public: bool = True
    download_count: int = 0
    metadata: Optional[FileMetadata] = None
    checksum: Optional[str] = None
    uploaded_at: datetime
    updated_at: datetime

    @property
    def kind(self) -> str:
        return file_kind(self.mimetype)

    @property
    def human_readable_size(self) -> str:
        return human_size(self.size)


def file_kind(mimetype: str) -> str:
    if mimetype.startswith("image/"):
        return "image"
    if mimetype == "application/pdf":
        return "pdf"
    if "word" in mimetype or "document" in mimetype:
        return "document"
    if mimetype == "text/plain":
        return "text"
    return "other"


def human_size(size: int) -> str:
    if size <= 0:
        return "0 Bytes"
    i = 0
    value = float(size)
    while value >= 1024 and i < len(_SIZE_UNITS) - 1:
        value /= 1024
        i += 1
    value = round(value, 2)
    # "1.50" -> "1.5", "2.00" -> "2"
    return f"{value:g} {_SIZE_UNITS[i]}"


def check_upload(mimetype: Optional[str], size: int) -> None:
    """Rechaza tipo no permitido o tamaño fuera de rango antes de tocar el storage."""
    if not mimetype or mimetype not in settings.allowed_mimetypes:
        raise ValidationFailed(
            "Invalid file type. Only PDF, images, text, and Word documents are allowed.",
            field="mimetype",
            mimetype=mimetype,
        )
    if size <= 0:
        raise ValidationFailed("Empty file uploaded", field="size")
    if size > settings.max_upload_bytes:
        raise ValidationFailed(
            f"File size cannot exceed {human_size(settings.max_upload_bytes)}",
            field="size",
            size=size,
        )


def check_description(description: Optional[str]) -> Optional[str]:
    d = description.strip() if description else None
    if d and len(d) > DESCRIPTION_MAX:
        raise ValidationFailed(f"description cannot exceed {DESCRIPTION_MAX} characters", field="description")
    return d or None
