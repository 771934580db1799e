"""Esquemas de salida para archivos subidos."""
from typing import List, Optional

from pydantic import BaseModel

from notehub.core.time import iso
from notehub.domain.files.models import FileMetadata, FileRecord


class FileOut(BaseModel):
    id: str
    filename: str
    original_name: str
    mimetype: str
    kind: str
    size: int
    human_readable_size: str
    uploaded_by: str
    description: Optional[str] = None
    tags: List[str]
    is_public: bool
    download_count: int
    checksum: Optional[str] = None
    metadata: Optional[FileMetadata] = None
    uploaded_at: str
    updated_at: str

    @classmethod
    def from_record(cls, r: FileRecord) -> "FileOut":
        data = r.model_dump(exclude={"storage_ref"})
        data.update(
            kind=r.kind,
            human_readable_size=r.human_readable_size,
            uploaded_at=iso(r.uploaded_at),
            updated_at=iso(r.updated_at),
        )
        return cls(**data)


class UploadOut(BaseModel):
    message: str
    files: List[FileOut]


class FileListOut(BaseModel):
    items: List[FileOut]
