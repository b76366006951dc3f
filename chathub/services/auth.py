"""Authentication service: signup, login, logout and token verification."""

import logging

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from chathub.errors import InvalidInputError
from chathub.models import User
from chathub.schemas import AuthResponse, OperationResult, PublicUser
from chathub.security import (
    TokenData,
    create_access_token,
    decode_access_token,
    get_password_hash,
    verify_password,
)
from chathub.services.presence import PresenceService

logger = logging.getLogger(__name__)


class AuthService:
    """Verifies identities and issues tokens; the core only sees user ids."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db
        self.presence = PresenceService(db)

    async def _find_user(self, **criteria) -> User | None:
        query = select(User)
        for field, value in criteria.items():
            query = query.where(getattr(User, field) == value)
        result = await self.db.execute(query)
        return result.scalar_one_or_none()

    async def authenticate(self, email: str, password: str) -> int | None:
        """Return the user id for valid credentials, otherwise None."""
        user = await self._find_user(email=email)
        if user is None or not verify_password(password, user.password_hash):
            return None
        return user.id

    @staticmethod
    def issue_token(user_id: int, username: str) -> str:
        return create_access_token(user_id, username)

    @staticmethod
    def verify_token(token: str) -> TokenData | None:
        return decode_access_token(token)

    async def signup(self, username: str, email: str, password: str) -> AuthResponse:
        """Register a user and sign them in."""
        if not 3 <= len(username) <= 30:
            raise InvalidInputError("Username must be between 3 and 30 characters")
        if not 6 <= len(password) <= 100:
            raise InvalidInputError("Password must be between 6 and 100 characters")

        if await self._find_user(username=username):
            return AuthResponse(success=False, message="Username already exists")
        if await self._find_user(email=email):
            return AuthResponse(success=False, message="Email already exists")

        user = User(
            username=username,
            email=email,
            password_hash=get_password_hash(password),
        )
        try:
            async with self.db.begin_nested():
                self.db.add(user)
        except IntegrityError:
            # Raced with another signup for the same username or email
            logger.warning(f"[Auth] Signup collision for {username!r} / {email!r}")
            return AuthResponse(success=False, message="Username or email already exists")

        await self.presence.set_online(user.id)
        await self.db.refresh(user)

        logger.info(f"[Auth] Registered user {user.id} ({username})")
        return AuthResponse(
            success=True,
            message="User registered successfully",
            user=PublicUser.model_validate(user),
            token=self.issue_token(user.id, user.username),
        )

    async def login(self, email: str, password: str) -> AuthResponse:
        user_id = await self.authenticate(email, password)
        if user_id is None:
            return AuthResponse(success=False, message="Invalid email or password")

        await self.presence.set_online(user_id)
        user = await self._find_user(id=user_id)
        await self.db.refresh(user)

        logger.info(f"[Auth] User {user_id} logged in")
        return AuthResponse(
            success=True,
            message="Login successful",
            user=PublicUser.model_validate(user),
            token=self.issue_token(user.id, user.username),
        )

    async def logout(self, user_id: int) -> OperationResult:
        await self.presence.set_offline(user_id)
        return OperationResult(success=True, message="Logout successful")

    async def get_current_user(self, user_id: int) -> PublicUser | None:
        user = await self._find_user(id=user_id)
        return PublicUser.model_validate(user) if user else None
