"""Messages API router."""

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from chathub.dependencies import get_current_user_id, get_link_unfurler
from chathub.models import MessageType, get_db
from chathub.schemas import LinkPreview, MessageWithAuthor, OperationResult
from chathub.services import LinkUnfurler, MessageService
from chathub.services.messaging import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE

router = APIRouter(prefix="/messages", tags=["messages"])


class MessageCreate(BaseModel):
    """Schema for sending a message."""

    channel_id: int
    content: str = Field(min_length=1)
    message_type: MessageType = MessageType.TEXT
    image_url: str | None = None
    reply_to_message_id: int | None = None


class MessageUpdate(BaseModel):
    content: str = Field(min_length=1)


@router.post("", response_model=MessageWithAuthor, status_code=201)
async def send_message(
    body: MessageCreate,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
    unfurler: LinkUnfurler = Depends(get_link_unfurler),
) -> MessageWithAuthor:
    return await MessageService(db, unfurler).send_message(
        channel_id=body.channel_id,
        author_id=user_id,
        content=body.content,
        message_type=body.message_type,
        image_url=body.image_url,
        reply_to_message_id=body.reply_to_message_id,
    )


@router.get("/channel/{channel_id}", response_model=list[MessageWithAuthor])
async def get_messages(
    channel_id: int,
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> list[MessageWithAuthor]:
    return await MessageService(db).get_messages(channel_id, user_id, limit=limit, offset=offset)


@router.patch("/{message_id}", response_model=MessageWithAuthor)
async def update_message(
    message_id: int,
    body: MessageUpdate,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> MessageWithAuthor:
    return await MessageService(db).update_message(message_id, user_id, body.content)


@router.delete("/{message_id}", response_model=OperationResult)
async def delete_message(
    message_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> OperationResult:
    return await MessageService(db).delete_message(message_id, user_id)


@router.get("/unfurl", response_model=LinkPreview)
async def unfurl_link(
    url: str = Query(min_length=1),
    unfurler: LinkUnfurler = Depends(get_link_unfurler),
) -> LinkPreview:
    return await unfurler.unfurl(url)
