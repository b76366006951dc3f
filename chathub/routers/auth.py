"""Authentication API router."""

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, EmailStr, Field
from sqlalchemy.ext.asyncio import AsyncSession

from chathub.dependencies import get_current_user_id
from chathub.models import get_db
from chathub.schemas import AuthResponse, OperationResult, PublicUser
from chathub.services import AuthService

router = APIRouter(prefix="/auth", tags=["auth"])


class SignupRequest(BaseModel):
    """Schema for registering a user."""

    username: str = Field(min_length=3, max_length=30)
    email: EmailStr
    password: str = Field(min_length=6, max_length=100)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str


@router.post("/signup", response_model=AuthResponse)
async def signup(body: SignupRequest, db: AsyncSession = Depends(get_db)) -> AuthResponse:
    return await AuthService(db).signup(body.username, body.email, body.password)


@router.post("/login", response_model=AuthResponse)
async def login(body: LoginRequest, db: AsyncSession = Depends(get_db)) -> AuthResponse:
    return await AuthService(db).login(body.email, body.password)


@router.post("/logout", response_model=OperationResult)
async def logout(
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> OperationResult:
    return await AuthService(db).logout(user_id)


@router.get("/me", response_model=PublicUser)
async def get_current_user(
    user_id: int = Depends(get_current_user_id),
    db: AsyncSession = Depends(get_db),
) -> PublicUser:
    user = await AuthService(db).get_current_user(user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return user
