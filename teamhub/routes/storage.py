import logging

from fastapi import APIRouter, Depends, File, UploadFile
from fastapi.responses import StreamingResponse
from sqlalchemy.ext.asyncio import AsyncSession

from teamhub.auth_token import get_current_user
from teamhub.database import get_db
from teamhub.errors import ConflictOfState, NotFound
from teamhub.models.stored_file import StoredFile
from teamhub.models.user import User
from teamhub.schemas import StoredFileRead, UploadUrlRead
from teamhub.services.storage import get_file_storage, get_stored_file, new_storage_id

router = APIRouter(prefix="/storage", tags=["Storage"])
logger = logging.getLogger("storage")


async def _pending_upload(db: AsyncSession, storage_id: str, user: User) -> StoredFile:
    stored = await get_stored_file(db, storage_id)
    if stored is None:
        raise NotFound("Upload slot not found")
    if stored.uploaded_by != user.id:
        raise ConflictOfState("Not authorized to upload to this slot")
    if stored.is_uploaded:
        raise ConflictOfState("File already uploaded")
    return stored


@router.post("/upload-url", response_model=UploadUrlRead)
async def generate_upload_url(
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    storage = get_file_storage()
    storage_id = new_storage_id()
    stored = StoredFile(
        storage_id=storage_id,
        storage_backend=storage.backend_name,
        storage_path=storage.object_path(storage_id),
        uploaded_by=user.id,
        is_uploaded=False,
    )
    db.add(stored)
    await db.commit()
    return UploadUrlRead(storage_id=storage_id, upload_url=await storage.upload_url(stored))


@router.put("/upload/{storage_id}", response_model=StoredFileRead)
async def upload_file(
    storage_id: str,
    file: UploadFile = File(...),
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    stored = await _pending_upload(db, storage_id, user)
    result = await get_file_storage().save(stored, file)

    stored.storage_path = result.path
    stored.filename = file.filename
    stored.content_type = file.content_type
    stored.filesize = result.size
    stored.is_uploaded = True
    await db.commit()
    logger.info("Stored %s (%s bytes) for user %s", storage_id, result.size, user.id)
    return stored


@router.post("/{storage_id}/confirm", response_model=StoredFileRead)
async def confirm_upload(
    storage_id: str,
    db: AsyncSession = Depends(get_db),
    user: User = Depends(get_current_user),
):
    """Mark a direct-to-bucket upload as complete once the object exists."""
    stored = await _pending_upload(db, storage_id, user)
    size = await get_file_storage().stat(stored)
    if size is None:
        raise ConflictOfState("Nothing has been uploaded yet")

    stored.filesize = size
    stored.is_uploaded = True
    await db.commit()
    return stored


@router.get("/files/{storage_id}", name="download_file")
async def download_file(storage_id: str, db: AsyncSession = Depends(get_db)):
    stored = await get_stored_file(db, storage_id)
    if stored is None or not stored.is_uploaded:
        raise NotFound("File not found")

    try:
        stream = await get_file_storage().open(stored)
    except FileNotFoundError:
        raise NotFound("File missing from storage")

    headers = {}
    if stored.filename:
        headers["Content-Disposition"] = f'inline; filename="{stored.filename}"'
    return StreamingResponse(
        stream,
        media_type=stored.content_type or "application/octet-stream",
        headers=headers,
    )
