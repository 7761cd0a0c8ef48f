from __future__ import annotations

import asyncio
import os
import pathlib
import re
import uuid
from dataclasses import dataclass
from typing import AsyncIterator, Optional
from urllib.parse import urljoin

from dotenv import load_dotenv
from fastapi import HTTPException, UploadFile
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from teamhub.models.stored_file import StoredFile

import aiofiles
import boto3
from botocore.exceptions import BotoCoreError, ClientError

load_dotenv()


@dataclass
class StorageResult:
    backend: str
    path: str
    size: int


def new_storage_id() -> str:
    return uuid.uuid4().hex


def public_url(path: str) -> str:
    """Absolute URL when ``PUBLIC_BASE_URL`` is set, else the bare path."""
    base = os.getenv("PUBLIC_BASE_URL", "").strip()
    if not base:
        return path
    return urljoin(base.rstrip("/") + "/", path.lstrip("/"))


def _sanitize_filename(filename: str) -> str:
    name = pathlib.Path(filename).name
    return re.sub(r"[^A-Za-z0-9._-]", "_", name).strip("._") or "file"


class FileStorage:
    """Blob storage boundary: upload targets and retrieval URLs for opaque ids."""

    backend_name = "base"

    def object_path(self, storage_id: str) -> str:
        return f"uploads/{storage_id}"

    async def upload_url(self, stored: StoredFile) -> str:  # pragma: no cover - interface only
        raise NotImplementedError

    async def save(self, stored: StoredFile, upload: UploadFile) -> StorageResult:  # pragma: no cover
        raise NotImplementedError

    async def open(self, stored: StoredFile) -> AsyncIterator[bytes]:  # pragma: no cover
        raise NotImplementedError

    async def retrieval_url(self, stored: StoredFile) -> Optional[str]:  # pragma: no cover
        raise NotImplementedError

    async def stat(self, stored: StoredFile) -> Optional[int]:
        """Size of the stored object, ``None`` if nothing was uploaded."""
        return None


class LocalFileStorage(FileStorage):
    backend_name = "local"

    def __init__(self, base_path: Optional[str] = None) -> None:
        base_path = base_path or os.getenv("FILE_LOCAL_PATH", "storage/files")
        self.base_path = pathlib.Path(base_path).resolve()
        self.base_path.mkdir(parents=True, exist_ok=True)

    def _resolve(self, relative: str) -> pathlib.Path:
        candidate = (self.base_path / relative).resolve()
        if not candidate.is_relative_to(self.base_path):
            raise HTTPException(status_code=400, detail="Invalid file path")
        return candidate

    async def upload_url(self, stored: StoredFile) -> str:
        return public_url(f"/storage/upload/{stored.storage_id}")

    async def save(self, stored: StoredFile, upload: UploadFile) -> StorageResult:
        filename = _sanitize_filename(upload.filename or "file")
        relative = f"{stored.storage_id}/{filename}"
        path = self._resolve(relative)
        path.parent.mkdir(parents=True, exist_ok=True)

        size = 0
        async with aiofiles.open(path, "wb") as buffer:
            while True:
                chunk = await upload.read(1024 * 1024)
                if not chunk:
                    break
                size += len(chunk)
                await buffer.write(chunk)
        await upload.close()
        return StorageResult(backend=self.backend_name, path=relative, size=size)

    async def open(self, stored: StoredFile) -> AsyncIterator[bytes]:
        file_path = self._resolve(stored.storage_path)
        if not file_path.is_file():
            raise FileNotFoundError(file_path)

        async def iterator():
            async with aiofiles.open(file_path, "rb") as handle:
                while True:
                    chunk = await handle.read(1024 * 256)
                    if not chunk:
                        break
                    yield chunk

        return iterator()

    async def retrieval_url(self, stored: StoredFile) -> Optional[str]:
        return public_url(f"/storage/files/{stored.storage_id}")

    async def stat(self, stored: StoredFile) -> Optional[int]:
        path = self._resolve(stored.storage_path)
        if not path.is_file():
            return None
        return path.stat().st_size


class S3FileStorage(FileStorage):
    backend_name = "s3"

    def __init__(self) -> None:
        bucket = os.getenv("FILE_S3_BUCKET")
        if not bucket:
            raise RuntimeError("FILE_S3_BUCKET must be set for S3 storage")
        self.bucket = bucket
        self.client = boto3.client(
            "s3",
            endpoint_url=os.getenv("FILE_S3_ENDPOINT"),
            region_name=os.getenv("FILE_S3_REGION"),
        )
        self.ttl = int(os.getenv("FILE_S3_URL_TTL", "900"))

    async def upload_url(self, stored: StoredFile) -> str:
        return await asyncio.to_thread(
            self.client.generate_presigned_url,
            "put_object",
            Params={"Bucket": self.bucket, "Key": stored.storage_path},
            ExpiresIn=self.ttl,
        )

    async def save(self, stored: StoredFile, upload: UploadFile) -> StorageResult:  # pragma: no cover
        raise HTTPException(status_code=400, detail="Upload directly to the presigned URL")

    async def open(self, stored: StoredFile) -> AsyncIterator[bytes]:  # pragma: no cover - not used
        raise HTTPException(status_code=400, detail="Use signed URLs for S3 files")

    async def retrieval_url(self, stored: StoredFile) -> Optional[str]:
        return await asyncio.to_thread(
            self.client.generate_presigned_url,
            "get_object",
            Params={"Bucket": self.bucket, "Key": stored.storage_path},
            ExpiresIn=self.ttl,
        )

    async def stat(self, stored: StoredFile) -> Optional[int]:
        try:
            head = await asyncio.to_thread(
                self.client.head_object, Bucket=self.bucket, Key=stored.storage_path
            )
        except ClientError:
            return None
        except BotoCoreError as exc:  # pragma: no cover
            raise HTTPException(status_code=502, detail=f"Storage unavailable: {exc}") from exc
        return int(head.get("ContentLength", 0))


_storage: Optional[FileStorage] = None


def get_file_storage() -> FileStorage:
    global _storage
    if _storage is not None:
        return _storage

    backend = os.getenv("FILE_STORAGE", "local").lower()
    if backend == "local":
        _storage = LocalFileStorage()
    elif backend == "s3":
        _storage = S3FileStorage()
    else:  # pragma: no cover - configuration error
        raise RuntimeError(f"Unsupported FILE_STORAGE backend: {backend}")
    return _storage


async def get_stored_file(db: AsyncSession, storage_id: Optional[str]) -> Optional[StoredFile]:
    if not storage_id:
        return None
    result = await db.execute(select(StoredFile).where(StoredFile.storage_id == storage_id))
    return result.scalar_one_or_none()


async def resolve_file_url(
    db: AsyncSession,
    storage_id: Optional[str],
    storage: Optional[FileStorage] = None,
) -> Optional[str]:
    """Retrieval URL for an uploaded file, ``None`` for unknown or pending ids."""
    stored = await get_stored_file(db, storage_id)
    if stored is None or not stored.is_uploaded:
        return None
    return await (storage or get_file_storage()).retrieval_url(stored)
