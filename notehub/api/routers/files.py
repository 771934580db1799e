"""Endpoints de archivos: subida (hasta N por petición), listados, descarga y borrado.

Los bytes viven en el blob storage configurado (GridFS o R2).
"""
from __future__ import annotations

from typing import List, Optional
from urllib.parse import quote

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from fastapi.responses import Response
from starlette.concurrency import run_in_threadpool

from notehub.api.deps import get_file_service, get_identity, get_optional_identity
from notehub.api.schemas.file import FileListOut, FileOut, UploadOut
from notehub.core.config import settings
from notehub.core.exceptions import ValidationFailed
from notehub.domain.files.models import human_size
from notehub.domain.notes.validation import split_tags
from notehub.domain.users.identity import Identity
from notehub.services.file_service import FileService, Upload

router = APIRouter(prefix="/files", tags=["Files"])

_CHUNK_SIZE = 256 * 1024


async def _read_limited(file: UploadFile) -> bytes:
    # Lee en trozos y corta apenas se supera el máximo permitido
    buf = bytearray()
    while True:
        chunk = await file.read(_CHUNK_SIZE)
        if not chunk:
            break
        buf.extend(chunk)
        if len(buf) > settings.max_upload_bytes:
            raise ValidationFailed(
                f"File size cannot exceed {human_size(settings.max_upload_bytes)}",
                field="size",
                filename=file.filename,
            )
    return bytes(buf)


@router.post("", status_code=status.HTTP_201_CREATED, response_model=UploadOut, summary="Subir archivos")
async def upload(
    files: List[UploadFile] = File(...),
    description: Optional[str] = Form(default=None),
    tags: Optional[str] = Form(default=None, description="Tags separados por coma"),
    is_public: bool = Form(default=True),
    identity: Identity = Depends(get_identity),
    svc: FileService = Depends(get_file_service),
) -> UploadOut:
    if len(files) > settings.max_files_per_upload:
        raise ValidationFailed(f"At most {settings.max_files_per_upload} files per upload", field="files")
    uploads = []
    for f in files:
        uploads.append(
            Upload(
                original_name=f.filename or "file",
                mimetype=f.content_type,
                data=await _read_limited(f),
            )
        )
    # pymongo / boto3 son bloqueantes
    records = await run_in_threadpool(
        svc.upload, identity, uploads, description, split_tags(tags), is_public
    )
    return UploadOut(message="Files uploaded successfully", files=[FileOut.from_record(r) for r in records])


@router.get("/mine", response_model=FileListOut, summary="Mis archivos")
def my_files(
    page: int = Query(default=1),
    limit: Optional[int] = Query(default=None),
    identity: Identity = Depends(get_identity),
    svc: FileService = Depends(get_file_service),
) -> FileListOut:
    return FileListOut(items=[FileOut.from_record(r) for r in svc.mine(identity, page=page, limit=limit)])


@router.get("/popular", response_model=FileListOut, summary="Archivos públicos más descargados")
def popular_files(
    limit: Optional[int] = Query(default=None),
    svc: FileService = Depends(get_file_service),
) -> FileListOut:
    return FileListOut(items=[FileOut.from_record(r) for r in svc.popular(limit)])


@router.get("", response_model=FileListOut, summary="Archivos públicos por tipo")
def files_by_type(
    mimetype: str = Query(...),
    limit: Optional[int] = Query(default=None),
    svc: FileService = Depends(get_file_service),
) -> FileListOut:
    return FileListOut(items=[FileOut.from_record(r) for r in svc.by_type(mimetype, limit)])


@router.get("/{file_id}", response_model=FileOut, summary="Metadatos de archivo")
def file_metadata(
    file_id: str,
    viewer: Optional[Identity] = Depends(get_optional_identity),
    svc: FileService = Depends(get_file_service),
) -> FileOut:
    return FileOut.from_record(svc.get(file_id, viewer))


@router.get("/{file_id}/download", summary="Descargar/visualizar archivo")
def download(
    file_id: str,
    viewer: Optional[Identity] = Depends(get_optional_identity),
    svc: FileService = Depends(get_file_service),
):
    record, data = svc.download(file_id, viewer)
    # Inline para imágenes/PDF
    mode = "inline" if record.kind in ("image", "pdf") else "attachment"
    disposition = f"{mode}; filename*=UTF-8''{quote(record.original_name)}"
    return Response(content=data, media_type=record.mimetype, headers={"Content-Disposition": disposition})


@router.delete("/{file_id}", response_model=dict, summary="Borrar archivo (solo dueño)")
def delete_file(
    file_id: str,
    identity: Identity = Depends(get_identity),
    svc: FileService = Depends(get_file_service),
):
    svc.delete(file_id, identity)
    return {"message": "File deleted successfully", "id": file_id}
