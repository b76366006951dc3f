"""Users API router: presence, directory and profile."""

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, Field
from sqlalchemy.ext.asyncio import AsyncSession

from chathub.dependencies import get_current_user_id
from chathub.models import get_db
from chathub.schemas import OperationResult, PublicUser
from chathub.services import PresenceService

router = APIRouter(prefix="/users", tags=["users"])


class StatusUpdate(BaseModel):
    is_online: bool


class ProfileUpdate(BaseModel):
    """Only fields present in the request body are changed."""

    username: str | None = Field(default=None, min_length=3, max_length=30)
    avatar_url: str | None = None


@router.get("/online", response_model=list[PublicUser])
async def get_online_users(db: AsyncSession = Depends(get_db)) -> list[PublicUser]:
    return await PresenceService(db).get_online_users()


@router.get("", response_model=list[PublicUser])
async def get_all_users(
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> list[PublicUser]:
    return await PresenceService(db).get_all_users(user_id)


@router.get("/search", response_model=list[PublicUser])
async def search_users(
    query: str = Query(min_length=1),
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> list[PublicUser]:
    return await PresenceService(db).search_users(query, user_id)


@router.post("/status", response_model=OperationResult)
async def update_user_status(
    body: StatusUpdate,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> OperationResult:
    return await PresenceService(db).update_status(user_id, body.is_online)


@router.patch("/me", response_model=PublicUser)
async def update_user_profile(
    body: ProfileUpdate,
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> PublicUser:
    changes = body.model_dump(exclude_unset=True)
    return await PresenceService(db).update_user_profile(user_id, **changes)
