"""Presence tracking and user directory queries."""

import logging

from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from chathub.errors import ConflictError, InvalidInputError, NotFoundError
from chathub.models import User, utc_now
from chathub.schemas import OperationResult, PublicUser

logger = logging.getLogger(__name__)

ONLINE_USERS_LIMIT = 100
SEARCH_RESULTS_LIMIT = 20

# Sentinel so callers can distinguish "leave unchanged" from "clear"
_UNSET = object()


class PresenceService:
    """Online/offline state, last-seen stamps and user lookups."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def _set_presence(self, user_id: int, is_online: bool) -> bool:
        """Stamp presence; returns False if no such user exists."""
        now = utc_now()
        result = await self.db.execute(
            update(User)
            .where(User.id == user_id)
            .values(is_online=is_online, last_seen=now, updated_at=now)
        )
        return result.rowcount > 0

    async def set_online(self, user_id: int) -> None:
        if await self._set_presence(user_id, True):
            logger.info(f"[Presence] User {user_id} is online")

    async def set_offline(self, user_id: int) -> None:
        """Mark a user offline. Unknown users are ignored."""
        if await self._set_presence(user_id, False):
            logger.info(f"[Presence] User {user_id} is offline")
        else:
            logger.debug(f"[Presence] Ignoring offline for unknown user {user_id}")

    async def update_status(self, user_id: int, is_online: bool) -> OperationResult:
        """Explicit status toggle from the client; always refreshes last_seen."""
        await self._set_presence(user_id, is_online)
        return OperationResult(success=True, message="User status updated successfully")

    async def get_online_users(self) -> list[PublicUser]:
        result = await self.db.execute(
            select(User)
            .where(User.is_online.is_(True))
            .order_by(User.last_seen.desc().nulls_last(), User.username)
            .limit(ONLINE_USERS_LIMIT)
        )
        return [PublicUser.model_validate(u) for u in result.scalars().all()]

    async def get_all_users(self, exclude_user_id: int) -> list[PublicUser]:
        result = await self.db.execute(
            select(User).where(User.id != exclude_user_id).order_by(User.username)
        )
        return [PublicUser.model_validate(u) for u in result.scalars().all()]

    async def search_users(self, query: str, exclude_user_id: int) -> list[PublicUser]:
        """Case-insensitive substring search on usernames."""
        if not query:
            raise InvalidInputError("Search query must not be empty")

        result = await self.db.execute(
            select(User)
            .where(
                User.id != exclude_user_id,
                func.lower(User.username).contains(query.lower(), autoescape=True),
            )
            .order_by(User.username)
            .limit(SEARCH_RESULTS_LIMIT)
        )
        return [PublicUser.model_validate(u) for u in result.scalars().all()]

    async def update_user_profile(
        self,
        user_id: int,
        username: str | None = None,
        avatar_url: str | None | object = _UNSET,
    ) -> PublicUser:
        """
        Update the supplied profile fields.

        Args:
            user_id: The user to update
            username: New username, or None to keep the current one
            avatar_url: New avatar reference; None clears it, omitted keeps it
        """
        result = await self.db.execute(select(User).where(User.id == user_id))
        user = result.scalar_one_or_none()
        if user is None:
            raise NotFoundError("User not found")

        if username is not None and not 3 <= len(username) <= 30:
            raise InvalidInputError("Username must be between 3 and 30 characters")

        try:
            async with self.db.begin_nested():
                if username is not None:
                    user.username = username
                if avatar_url is not _UNSET:
                    user.avatar_url = avatar_url
                user.updated_at = utc_now()
        except IntegrityError:
            logger.warning(f"[Presence] Username {username!r} already taken")
            raise ConflictError("Username already exists")

        return PublicUser.model_validate(user)
