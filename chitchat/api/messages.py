# chitchat/api/messages.py
from urllib.parse import quote

from fastapi import APIRouter, Depends, File, Query, Response, UploadFile

from chitchat.api.dependencies import (
    get_config,
    get_current_active_user,
    get_message_interactor,
)
from chitchat.config import AppConfig
from chitchat.domain.exceptions import InvalidArgumentError
from chitchat.infrastructure import schemas
from chitchat.interactors.message_interactor import MessageInteractor

router = APIRouter()
attachments_router = APIRouter()

UPLOAD_CHUNK_BYTES = 64 * 1024


async def read_upload(file: UploadFile, max_bytes: int) -> bytes:
    """Read an upload in chunks, giving up as soon as it passes ``max_bytes``."""
    chunks = []
    total = 0
    while True:
        chunk = await file.read(UPLOAD_CHUNK_BYTES)
        if not chunk:
            break
        total += len(chunk)
        if total > max_bytes:
            raise InvalidArgumentError(f"File exceeds {max_bytes} bytes")
        chunks.append(chunk)
    return b"".join(chunks)


@router.get("/search", response_model=list[schemas.Message])
async def search_messages(
    query: str = Query(..., description="Text to look for in message content"),
    page: int = 0,
    size: int = 50,
    message_interactor: MessageInteractor = Depends(get_message_interactor),
    current_user: schemas.User = Depends(get_current_active_user),
):
    return await message_interactor.search(None, current_user.id, query, page, size)


@router.put("/{message_id}", response_model=schemas.Message)
async def update_message(
    message_id: int,
    message_update: schemas.MessageUpdate,
    message_interactor: MessageInteractor = Depends(get_message_interactor),
    current_user: schemas.User = Depends(get_current_active_user),
):
    return await message_interactor.edit(
        current_user.id, message_id, message_update.content
    )


@router.delete("/{message_id}", status_code=204)
async def delete_message(
    message_id: int,
    message_interactor: MessageInteractor = Depends(get_message_interactor),
    current_user: schemas.User = Depends(get_current_active_user),
):
    await message_interactor.delete(current_user.id, message_id)


@router.post("/{message_id}/attachments", response_model=schemas.Attachment)
async def upload_attachment(
    message_id: int,
    file: UploadFile = File(...),
    config: AppConfig = Depends(get_config),
    message_interactor: MessageInteractor = Depends(get_message_interactor),
    current_user: schemas.User = Depends(get_current_active_user),
):
    data = await read_upload(file, config.MAX_ATTACHMENT_BYTES)
    return await message_interactor.attach(
        current_user.id, message_id, file.filename or "", file.content_type, data
    )


@router.get("/{message_id}/attachments", response_model=list[schemas.Attachment])
async def read_attachments(
    message_id: int,
    message_interactor: MessageInteractor = Depends(get_message_interactor),
    current_user: schemas.User = Depends(get_current_active_user),
):
    return await message_interactor.attachments_of(current_user.id, message_id)


@attachments_router.get("/{attachment_id}")
async def download_attachment(
    attachment_id: int,
    message_interactor: MessageInteractor = Depends(get_message_interactor),
    current_user: schemas.User = Depends(get_current_active_user),
):
    attachment, data = await message_interactor.load_attachment(
        current_user.id, attachment_id
    )
    return Response(
        content=data,
        media_type=attachment.file_type or "application/octet-stream",
        headers={
            "Content-Disposition": f"attachment; filename*=UTF-8''{quote(attachment.file_name)}"
        },
    )
