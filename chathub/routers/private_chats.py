"""Private chats API router."""

from fastapi import APIRouter, Depends
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from chathub.dependencies import get_current_user_id
from chathub.models import get_db
from chathub.schemas import ChannelResponse, OperationResult, PrivateChatSummary, PublicUser
from chathub.services import PrivateChatService

router = APIRouter(prefix="/private-chats", tags=["private-chats"])


class PrivateChatCreate(BaseModel):
    other_user_id: int


class PrivateChatAddUser(BaseModel):
    target_user_id: int


@router.post("", response_model=ChannelResponse)
async def create_private_chat(
    body: PrivateChatCreate,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> ChannelResponse:
    return await PrivateChatService(db).get_or_create_private_chat(user_id, body.other_user_id)


@router.get("", response_model=list[PrivateChatSummary])
async def get_private_chats(
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> list[PrivateChatSummary]:
    return await PrivateChatService(db).get_private_chats(user_id)


@router.get("/{channel_id}/users", response_model=list[PublicUser])
async def get_private_chat_users(
    channel_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> list[PublicUser]:
    return await PrivateChatService(db).get_private_chat_users(channel_id, user_id)


@router.post("/{channel_id}/users", response_model=OperationResult)
async def add_user_to_private_chat(
    channel_id: int,
    body: PrivateChatAddUser,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> OperationResult:
    return await PrivateChatService(db).add_user_to_private_chat(
        channel_id, user_id, body.target_user_id
    )
