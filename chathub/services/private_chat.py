"""Private chat resolution and listing.

Private chats are ordinary private channels. A 1:1 chat is deduplicated by
its member set: asking for a chat between A and B always returns the same
channel, whichever side asks.
"""

import logging

from sqlalchemy import case, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from chathub.errors import AccessDeniedError, InvalidInputError, NotFoundError
from chathub.models import Channel, ChannelMember, MemberRole, Message, User, private_pair_key
from chathub.schemas import (
    ChannelResponse,
    LastMessage,
    OperationResult,
    PrivateChatSummary,
    PublicUser,
)
from chathub.services.membership import MembershipService

logger = logging.getLogger(__name__)


class PrivateChatService:
    """Get-or-create, listing and growth of private chats."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db
        self.membership = MembershipService(db)

    async def _find_pair_chat(self, user_a: int, user_b: int) -> Channel | None:
        """Find a private channel whose member set is exactly {user_a, user_b}."""
        pair_channels = (
            select(ChannelMember.channel_id)
            .group_by(ChannelMember.channel_id)
            .having(
                func.count(ChannelMember.id) == 2,
                func.sum(case((ChannelMember.user_id.in_([user_a, user_b]), 1), else_=0)) == 2,
            )
        )
        result = await self.db.execute(
            select(Channel)
            .where(Channel.is_private.is_(True), Channel.id.in_(pair_channels))
            .order_by(Channel.created_at, Channel.id)
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def _get_by_dm_key(self, dm_key: str) -> Channel | None:
        result = await self.db.execute(select(Channel).where(Channel.dm_key == dm_key))
        return result.scalar_one_or_none()

    async def get_or_create_private_chat(self, user_id: int, other_user_id: int) -> ChannelResponse:
        """
        Return the 1:1 private chat between two users, creating it if needed.

        The requesting user becomes owner of a newly created chat. A found
        chat is returned untouched.
        """
        if user_id == other_user_id:
            raise InvalidInputError("Cannot start a private chat with yourself")
        if await self.membership.get_user(user_id) is None:
            raise NotFoundError("User not found")
        if await self.membership.get_user(other_user_id) is None:
            raise NotFoundError("Other user not found")

        existing = await self._find_pair_chat(user_id, other_user_id)
        if existing is not None:
            return ChannelResponse.model_validate(existing)

        dm_key = private_pair_key(user_id, other_user_id)
        try:
            async with self.db.begin_nested():
                channel = Channel(
                    name="",
                    description=None,
                    is_private=True,
                    created_by=user_id,
                    dm_key=dm_key,
                )
                self.db.add(channel)
                await self.db.flush()
                self.db.add_all([
                    ChannelMember(channel_id=channel.id, user_id=user_id, role=MemberRole.OWNER.value),
                    ChannelMember(channel_id=channel.id, user_id=other_user_id, role=MemberRole.MEMBER.value),
                ])
        except IntegrityError:
            # Another request created the same pair first
            logger.warning(f"[PrivateChat] Lost create race for pair {dm_key}, reusing existing chat")
            winner = await self._get_by_dm_key(dm_key)
            if winner is None:
                raise
            return ChannelResponse.model_validate(winner)

        await self.db.refresh(channel)
        logger.info(f"[PrivateChat] Created private chat {channel.id} for pair {dm_key}")
        return ChannelResponse.model_validate(channel)

    async def get_private_chats(self, user_id: int) -> list[PrivateChatSummary]:
        """List the user's private chats, most recent activity first."""
        result = await self.db.execute(
            select(Channel)
            .join(ChannelMember, ChannelMember.channel_id == Channel.id)
            .where(Channel.is_private.is_(True), ChannelMember.user_id == user_id)
        )
        channels = result.scalars().all()

        summaries = []
        for channel in channels:
            others_result = await self.db.execute(
                select(User)
                .join(ChannelMember, ChannelMember.user_id == User.id)
                .where(ChannelMember.channel_id == channel.id, ChannelMember.user_id != user_id)
                .order_by(ChannelMember.joined_at, ChannelMember.id)
            )
            others = [PublicUser.model_validate(u) for u in others_result.scalars().all()]
            if not others:
                logger.debug(f"[PrivateChat] Skipping chat {channel.id} with no counterpart")
                continue

            last_result = await self.db.execute(
                select(Message.content, Message.created_at)
                .where(Message.channel_id == channel.id)
                .order_by(Message.created_at.desc(), Message.id.desc())
                .limit(1)
            )
            last_row = last_result.first()

            summaries.append(
                PrivateChatSummary(
                    **ChannelResponse.model_validate(channel).model_dump(),
                    other_user=others[0],
                    other_users=others,
                    last_message=(
                        LastMessage(content=last_row.content, created_at=last_row.created_at)
                        if last_row
                        else None
                    ),
                )
            )

        summaries.sort(
            key=lambda s: s.last_message.created_at if s.last_message else s.created_at,
            reverse=True,
        )
        return summaries

    async def get_private_chat_users(self, channel_id: int, requester_id: int) -> list[PublicUser]:
        """Members of a private chat other than the requester."""
        channel = await self.membership.get_channel(channel_id)
        # Missing, public and not-a-member all look the same to the caller
        if (
            channel is None
            or not channel.is_private
            or not await self.membership.is_member(channel_id, requester_id)
        ):
            raise AccessDeniedError("Channel not found or access denied")

        result = await self.db.execute(
            select(User)
            .join(ChannelMember, ChannelMember.user_id == User.id)
            .where(ChannelMember.channel_id == channel_id, ChannelMember.user_id != requester_id)
            .order_by(ChannelMember.joined_at, ChannelMember.id)
        )
        return [PublicUser.model_validate(u) for u in result.scalars().all()]

    async def add_user_to_private_chat(
        self, channel_id: int, requester_id: int, target_user_id: int
    ) -> OperationResult:
        """Let an owner/admin grow a private chat into a group chat."""
        channel = await self.membership.get_channel(channel_id)
        if (
            channel is None
            or not channel.is_private
            or not await self.membership.has_role(channel_id, requester_id)
        ):
            return OperationResult(
                success=False, message="You do not have permission to add users to this chat"
            )

        if await self.membership.is_member(channel_id, target_user_id):
            return OperationResult(success=False, message="User is already a member of this chat")

        if await self.membership.get_user(target_user_id) is None:
            return OperationResult(success=False, message="Target user not found")

        if not await self.membership.add_member(channel_id, target_user_id):
            return OperationResult(success=False, message="User is already a member of this chat")

        # No longer a 1:1 chat
        if channel.dm_key is not None:
            channel.dm_key = None
            await self.db.flush()

        logger.info(f"[PrivateChat] User {requester_id} added {target_user_id} to chat {channel_id}")
        return OperationResult(success=True, message="User added to private chat successfully")
