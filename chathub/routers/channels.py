"""Channels API router."""

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from chathub.dependencies import get_current_user_id
from chathub.models import get_db
from chathub.schemas import ChannelMemberInfo, ChannelResponse, ChannelWithMembers, OperationResult
from chathub.services import MembershipService

router = APIRouter(prefix="/channels", tags=["channels"])


class ChannelCreate(BaseModel):
    """Schema for creating a channel."""

    name: str = Field(min_length=1, max_length=100)
    description: str | None = None
    is_private: bool = False
    member_user_ids: list[int] | None = None  # Initial members, private channels only


@router.post("", response_model=ChannelResponse, status_code=201)
async def create_channel(
    body: ChannelCreate,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> ChannelResponse:
    return await MembershipService(db).create_channel(
        name=body.name,
        creator_id=user_id,
        description=body.description,
        is_private=body.is_private,
        member_user_ids=body.member_user_ids,
    )


@router.get("/public", response_model=list[ChannelWithMembers])
async def get_public_channels(db: AsyncSession = Depends(get_db)) -> list[ChannelWithMembers]:
    return await MembershipService(db).get_public_channels()


@router.get("/mine", response_model=list[ChannelWithMembers])
async def get_user_channels(
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> list[ChannelWithMembers]:
    return await MembershipService(db).get_user_channels(user_id)


@router.post("/{channel_id}/join", response_model=OperationResult)
async def join_channel(
    channel_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> OperationResult:
    return await MembershipService(db).join_channel(channel_id, user_id)


@router.post("/{channel_id}/leave", response_model=OperationResult)
async def leave_channel(
    channel_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> OperationResult:
    return await MembershipService(db).leave_channel(channel_id, user_id)


@router.get("/{channel_id}/members", response_model=list[ChannelMemberInfo])
async def get_channel_members(
    channel_id: int,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> list[ChannelMemberInfo]:
    return await MembershipService(db).get_channel_members(channel_id, user_id)
