"""Almacenamiento de binarios subidos.

- gridfs (por defecto) → GridFSBlobStorage (bucket GridFS en la misma base Mongo)
- r2                   → R2BlobStorage (Cloudflare R2 / S3 compatible)

Las reglas de tipo y tamaño se validan antes de llegar aquí.
"""
from __future__ import annotations

import logging
import uuid
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

import gridfs
from bson import ObjectId
from botocore.exceptions import BotoCoreError, ClientError
from pymongo.errors import PyMongoError

from notehub.core.config import settings
from notehub.core.exceptions import NotFound, StorageUnavailable
from notehub.infrastructure.db.mongo import get_db
from notehub.infrastructure.storage.r2 import get_s3_client

_log = logging.getLogger("notehub.storage")


class BlobStorage(ABC):
    """Interfaz de blob storage: store / retrieve / delete por referencia opaca."""

    @abstractmethod
    def store(self, data: bytes, metadata: Dict[str, Any]) -> str:
        """Guarda los bytes y devuelve la referencia de almacenamiento."""
        ...

    @abstractmethod
    def retrieve(self, ref: str) -> bytes:
        """Lee los bytes; NotFound si la referencia no existe."""
        ...

    @abstractmethod
    def delete(self, ref: str) -> bool:
        """Borra el blob. Idempotente: False si ya no existía."""
        ...


# ──────────────────────────────────────────────────────────────────────────────
# GRIDFS
# ──────────────────────────────────────────────────────────────────────────────

class GridFSBlobStorage(BlobStorage):
    def __init__(self, db=None, bucket_name: Optional[str] = None) -> None:
        self._db = db
        self._bucket_name = bucket_name or settings.gridfs_bucket
        self._bucket: Optional[gridfs.GridFSBucket] = None

    @property
    def bucket(self) -> gridfs.GridFSBucket:
        if self._bucket is None:
            db = self._db if self._db is not None else get_db()
            self._bucket = gridfs.GridFSBucket(db, bucket_name=self._bucket_name)
        return self._bucket

    def store(self, data: bytes, metadata: Dict[str, Any]) -> str:
        filename = str(metadata.get("filename") or "file")
        try:
            oid = self.bucket.upload_from_stream(filename, data, metadata=dict(metadata))
        except PyMongoError as e:
            raise StorageUnavailable(f"GridFS upload failed: {e.__class__.__name__}") from e
        _log.info("Blob guardado en GridFS: %s (%s bytes)", oid, len(data))
        return str(oid)

    def retrieve(self, ref: str) -> bytes:
        try:
            grid_out = self.bucket.open_download_stream(ObjectId(ref))
            try:
                return grid_out.read()
            finally:
                grid_out.close()
        except gridfs.errors.NoFile as e:
            raise NotFound("File not found on storage", ref=ref) from e
        except PyMongoError as e:
            raise StorageUnavailable(f"GridFS download failed: {e.__class__.__name__}") from e

    def delete(self, ref: str) -> bool:
        try:
            self.bucket.delete(ObjectId(ref))
        except gridfs.errors.NoFile:
            return False
        except PyMongoError as e:
            raise StorageUnavailable(f"GridFS delete failed: {e.__class__.__name__}") from e
        _log.info("Blob borrado de GridFS: %s", ref)
        return True


# ──────────────────────────────────────────────────────────────────────────────
# R2 (S3 compatible)
# ──────────────────────────────────────────────────────────────────────────────

class R2BlobStorage(BlobStorage):
    def __init__(self, client=None, bucket: Optional[str] = None, prefix: Optional[str] = None) -> None:
        if client is None and not settings.r2_configured:
            raise RuntimeError("R2 no configurado (R2_BUCKET/R2_ENDPOINT/R2_ACCESS_KEY/R2_SECRET_KEY)")
        self._s3 = client or get_s3_client()
        self.bucket = bucket or settings.r2_bucket
        self.prefix = prefix if prefix is not None else settings.r2_prefix

    def store(self, data: bytes, metadata: Dict[str, Any]) -> str:
        name = str(metadata.get("filename") or "file")
        ext = name[name.rfind("."):] if "." in name else ""
        key = f"{self.prefix}{uuid.uuid4().hex}{ext}"
        try:
            self._s3.put_object(
                Bucket=self.bucket,
                Key=key,
                Body=data,
                ContentType=str(metadata.get("mimetype") or "application/octet-stream"),
            )
        except (BotoCoreError, ClientError) as e:
            raise StorageUnavailable(f"R2 upload failed: {e}") from e
        _log.info("Blob guardado en R2: %s (%s bytes)", key, len(data))
        return key

    def retrieve(self, ref: str) -> bytes:
        try:
            obj = self._s3.get_object(Bucket=self.bucket, Key=ref)
            return obj["Body"].read()
        except ClientError as e:
            if _is_missing(e):
                raise NotFound("File not found on storage", ref=ref) from e
            raise StorageUnavailable(f"R2 download failed: {e}") from e
        except BotoCoreError as e:
            raise StorageUnavailable(f"R2 download failed: {e}") from e

    def delete(self, ref: str) -> bool:
        try:
            self._s3.head_object(Bucket=self.bucket, Key=ref)
        except ClientError as e:
            if _is_missing(e):
                return False
            raise StorageUnavailable(f"R2 delete failed: {e}") from e
        except BotoCoreError as e:
            raise StorageUnavailable(f"R2 delete failed: {e}") from e
        try:
            self._s3.delete_object(Bucket=self.bucket, Key=ref)
        except (BotoCoreError, ClientError) as e:
            raise StorageUnavailable(f"R2 delete failed: {e}") from e
        _log.info("Blob borrado de R2: %s", ref)
        return True


def _is_missing(e: ClientError) -> bool:
    code = str((e.response or {}).get("Error", {}).get("Code", ""))
    return code in ("404", "NoSuchKey", "NotFound")


# ──────────────────────────────────────────────────────────────────────────────
# Singleton: implementación según STORAGE_PROVIDER
# ──────────────────────────────────────────────────────────────────────────────

_storage: Optional[BlobStorage] = None


def get_blob_storage() -> BlobStorage:
    global _storage
    if _storage is None:
        provider = (settings.storage_provider or "gridfs").lower()
        if provider == "r2":
            _log.info("Storage: R2 (%s)", settings.r2_bucket)
            _storage = R2BlobStorage()
        else:
            _log.info("Storage: GridFS (bucket=%s)", settings.gridfs_bucket)
            _storage = GridFSBlobStorage()
    return _storage
