"""
Casos de uso de archivos subidos: metadatos en la colección `file` y bytes en
el blob storage (GridFS o R2).

El tipo y el tamaño se validan para todo el lote antes de escribir el primer
blob; si falla el alta del registro, el blob recién guardado se borra.
"""
from __future__ import annotations

import hashlib
from dataclasses import dataclass
from typing import Iterable, List, Optional, Tuple

from notehub.core.config import settings
from notehub.core.exceptions import Forbidden, NoteHubError, NotFound, ValidationFailed
from notehub.core.logging import get_logger
from notehub.core.time import now_utc
from notehub.domain.files.models import FileRecord, check_description, check_upload
from notehub.domain.notes.queries import paginate
from notehub.domain.notes.validation import normalize_tags
from notehub.domain.users.identity import Identity
from notehub.infrastructure.storage.blob import BlobStorage
from notehub.repositories.base import FileStore, NoteStore

_log = get_logger("files")


@dataclass
class Upload:
    original_name: str
    mimetype: Optional[str]
    data: bytes


def _extension(name: str) -> str:
    dot = name.rfind(".")
    return name[dot:].lower() if dot > 0 else ""


class FileService:
    def __init__(self, files: FileStore, notes: NoteStore, blobs: BlobStorage) -> None:
        self.files = files
        self.notes = notes
        self.blobs = blobs

    def upload(
        self,
        identity: Identity,
        uploads: List[Upload],
        description: Optional[str] = None,
        tags: Optional[Iterable[str]] = None,
        is_public: bool = True,
    ) -> List[FileRecord]:
        if not uploads:
            raise ValidationFailed("No files uploaded", field="files")
        if len(uploads) > settings.max_files_per_upload:
            raise ValidationFailed(
                f"At most {settings.max_files_per_upload} files per upload",
                field="files",
            )
        for u in uploads:
            check_upload(u.mimetype, len(u.data))
        desc = check_description(description)
        tag_list = normalize_tags(tags)

        records: List[FileRecord] = []
        for u in uploads:
            records.append(self._store_one(identity, u, desc, tag_list, is_public))
        _log.info("Subidos %s archivo(s) por %s", len(records), identity.user_id)
        return records

    def _store_one(
        self,
        identity: Identity,
        upload: Upload,
        description: Optional[str],
        tags: List[str],
        is_public: bool,
    ) -> FileRecord:
        file_id = self.files.new_id()
        filename = f"{file_id}{_extension(upload.original_name)}"
        checksum = hashlib.sha256(upload.data).hexdigest()
        ref = self.blobs.store(
            upload.data,
            {
                "filename": filename,
                "original_name": upload.original_name,
                "mimetype": upload.mimetype,
                "uploaded_by": identity.user_id,
                "checksum": checksum,
            },
        )
        now = now_utc()
        record = FileRecord(
            id=file_id,
            filename=filename,
            original_name=upload.original_name,
            mimetype=upload.mimetype or "",
            size=len(upload.data),
            storage_ref=ref,
            uploaded_by=identity.user_id,
            description=description,
            tags=list(tags),
            is_public=is_public,
            checksum=checksum,
            uploaded_at=now,
            updated_at=now,
        )
        try:
            return self.files.insert(record)
        except NoteHubError:
            self.blobs.delete(ref)
            raise

    def get(self, file_id: str, viewer: Optional[Identity] = None) -> FileRecord:
        record = self.files.find_by_id(file_id)
        if record is None:
            raise NotFound("File not found", file_id=file_id)
        if not record.is_public and (viewer is None or viewer.user_id != record.uploaded_by):
            raise Forbidden("Access denied", file_id=file_id)
        return record

    def download(self, file_id: str, viewer: Optional[Identity] = None) -> Tuple[FileRecord, bytes]:
        record = self.get(file_id, viewer)
        data = self.blobs.retrieve(record.storage_ref)
        updated = self.files.increment_download(file_id, now_utc())
        return (updated or record), data

    def delete(self, file_id: str, identity: Identity) -> None:
        record = self.files.find_by_id(file_id)
        if record is None:
            raise NotFound("File not found", file_id=file_id)
        if record.uploaded_by != identity.user_id:
            raise Forbidden("Not authorized", file_id=file_id)
        if not self.blobs.delete(record.storage_ref):
            _log.warning("Blob ausente al borrar archivo id=%s", file_id)
        self.files.delete_by_id(file_id)
        self.notes.pull_file(file_id, now_utc())
        _log.info("Archivo borrado id=%s", file_id)

    def mine(self, identity: Identity, page: Optional[int] = 1, limit: Optional[int] = None) -> List[FileRecord]:
        lim, skip = paginate(page, limit)
        return self.files.list_by_owner(identity.user_id, lim, skip)

    def popular(self, limit: Optional[int] = None) -> List[FileRecord]:
        lim, _ = paginate(1, limit, default_limit=settings.popular_page_size)
        return self.files.list_popular(lim)

    def by_type(self, mimetype: str, limit: Optional[int] = None) -> List[FileRecord]:
        if mimetype not in settings.allowed_mimetypes:
            raise ValidationFailed(f"Unknown mimetype '{mimetype}'", field="mimetype")
        lim, _ = paginate(1, limit)
        return self.files.list_by_type(mimetype, lim)
