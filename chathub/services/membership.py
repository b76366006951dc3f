"""Channel membership service.

Owns the channel/member relationship:
- Channel creation (creator becomes owner)
- Join / leave, including ownership transfer when the owner leaves
- Role lookups used as the authorization predicate by the other services
- Channel listings with member counts and member samples
"""

import logging
from collections.abc import Iterable, Sequence

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from chathub.errors import AccessDeniedError, NotFoundError
from chathub.models import Channel, ChannelMember, MemberRole, User, role_rank
from chathub.schemas import (
    ChannelMemberInfo,
    ChannelResponse,
    ChannelWithMembers,
    OperationResult,
    PublicUser,
)

logger = logging.getLogger(__name__)

# How many members are attached to each channel in listings
MEMBER_SAMPLE_SIZE = 5


class MembershipService:
    """Channel membership and role management."""

    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    # ------------------------------------------------------------------
    # Lookups and authorization predicates
    # ------------------------------------------------------------------

    async def get_user(self, user_id: int) -> User | None:
        result = await self.db.execute(select(User).where(User.id == user_id))
        return result.scalar_one_or_none()

    async def get_channel(self, channel_id: int) -> Channel | None:
        result = await self.db.execute(select(Channel).where(Channel.id == channel_id))
        return result.scalar_one_or_none()

    async def get_membership(self, channel_id: int, user_id: int) -> ChannelMember | None:
        result = await self.db.execute(
            select(ChannelMember).where(
                ChannelMember.channel_id == channel_id,
                ChannelMember.user_id == user_id,
            )
        )
        return result.scalar_one_or_none()

    async def is_member(self, channel_id: int, user_id: int) -> bool:
        return await self.get_membership(channel_id, user_id) is not None

    async def has_role(
        self,
        channel_id: int,
        user_id: int,
        roles: Iterable[MemberRole] = MemberRole.managers(),
    ) -> bool:
        """Check whether the user holds one of the given roles in the channel."""
        membership = await self.get_membership(channel_id, user_id)
        if membership is None:
            return False
        return membership.role in {MemberRole(role).value for role in roles}

    async def add_member(
        self,
        channel_id: int,
        user_id: int,
        role: MemberRole = MemberRole.MEMBER,
    ) -> bool:
        """
        Insert a membership row inside a savepoint.

        Returns False when the (channel, user) pair already exists, which is
        how a concurrent duplicate insert surfaces.
        """
        try:
            async with self.db.begin_nested():
                self.db.add(
                    ChannelMember(channel_id=channel_id, user_id=user_id, role=role.value)
                )
        except IntegrityError as e:
            logger.warning(
                f"[Membership] Duplicate membership rejected for channel {channel_id}, user {user_id}: {e.orig}"
            )
            return False
        return True

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    async def create_channel(
        self,
        name: str,
        creator_id: int,
        description: str | None = None,
        is_private: bool = False,
        member_user_ids: Sequence[int] | None = None,
    ) -> ChannelResponse:
        """
        Create a channel with the creator as owner.

        For private channels, initial members are added as plain members;
        the creator's own id and unknown user ids are skipped silently.
        """
        if await self.get_user(creator_id) is None:
            raise NotFoundError("Creator user not found")

        channel = Channel(
            name=name,
            description=description or None,
            is_private=is_private,
            created_by=creator_id,
        )
        self.db.add(channel)
        await self.db.flush()

        self.db.add(
            ChannelMember(channel_id=channel.id, user_id=creator_id, role=MemberRole.OWNER.value)
        )

        if is_private and member_user_ids:
            candidate_ids = sorted({uid for uid in member_user_ids if uid != creator_id})
            existing = await self.db.execute(
                select(User.id).where(User.id.in_(candidate_ids))
            )
            valid_ids = sorted(existing.scalars().all())
            for member_id in valid_ids:
                self.db.add(
                    ChannelMember(channel_id=channel.id, user_id=member_id, role=MemberRole.MEMBER.value)
                )
            skipped = len(candidate_ids) - len(valid_ids)
            if skipped:
                logger.info(f"[Membership] Skipped {skipped} unknown member id(s) for channel {channel.id}")

        await self.db.flush()
        await self.db.refresh(channel)
        logger.info(
            f"[Membership] Created channel {channel.id} ({'private' if is_private else 'public'}) by user {creator_id}"
        )
        return ChannelResponse.model_validate(channel)

    async def join_channel(self, channel_id: int, user_id: int) -> OperationResult:
        """Join a public channel as a member."""
        if await self.get_user(user_id) is None:
            raise NotFoundError("User not found")

        channel = await self.get_channel(channel_id)
        if channel is None:
            return OperationResult(success=False, message="Channel not found")

        if channel.is_private:
            return OperationResult(
                success=False, message="Cannot join private channel without invitation"
            )

        if await self.is_member(channel_id, user_id):
            return OperationResult(success=False, message="Already a member of this channel")

        if not await self.add_member(channel_id, user_id):
            return OperationResult(success=False, message="Already a member of this channel")

        logger.info(f"[Membership] User {user_id} joined channel {channel_id}")
        return OperationResult(success=True, message="Successfully joined channel")

    async def leave_channel(self, channel_id: int, user_id: int) -> OperationResult:
        """
        Leave a channel.

        An owner leaving hands ownership to the highest-ranked remaining
        member, earliest joined first. A sole owner leaves the channel
        without an owner.
        """
        membership = await self.get_membership(channel_id, user_id)
        if membership is None:
            return OperationResult(success=False, message="Not a member of this channel")

        was_owner = membership.role == MemberRole.OWNER.value
        next_owner: ChannelMember | None = None
        if was_owner:
            result = await self.db.execute(
                select(ChannelMember)
                .where(
                    ChannelMember.channel_id == channel_id,
                    ChannelMember.user_id != user_id,
                )
                .order_by(role_rank, ChannelMember.joined_at, ChannelMember.id)
                .limit(1)
            )
            next_owner = result.scalar_one_or_none()

        # Delete before promoting so the single-owner index is never violated
        await self.db.delete(membership)
        await self.db.flush()

        if next_owner is not None:
            next_owner.role = MemberRole.OWNER.value
            logger.info(
                f"[Membership] Ownership of channel {channel_id} transferred from {user_id} to {next_owner.user_id}"
            )
        elif was_owner:
            logger.warning(f"[Membership] Channel {channel_id} has no owner after user {user_id} left")

        # The member set changed, so a 1:1 dedup key no longer describes it
        channel = await self.get_channel(channel_id)
        if channel is not None and channel.dm_key is not None:
            channel.dm_key = None

        await self.db.flush()
        logger.info(f"[Membership] User {user_id} left channel {channel_id}")
        return OperationResult(success=True, message="Successfully left channel")

    async def get_channel_members(
        self, channel_id: int, requester_id: int
    ) -> list[ChannelMemberInfo]:
        """List members ordered owner -> admin -> member, then by username."""
        if not await self.is_member(channel_id, requester_id):
            raise AccessDeniedError("Access denied: Not a member of this channel")

        result = await self.db.execute(
            select(User, ChannelMember.role)
            .join(ChannelMember, ChannelMember.user_id == User.id)
            .where(ChannelMember.channel_id == channel_id)
            .order_by(role_rank, User.username)
        )
        return [
            ChannelMemberInfo(
                id=user.id,
                username=user.username,
                avatar_url=user.avatar_url,
                is_online=user.is_online,
                role=role,
            )
            for user, role in result.all()
        ]

    async def get_public_channels(self) -> list[ChannelWithMembers]:
        """All public channels, newest first."""
        result = await self.db.execute(
            select(Channel)
            .where(Channel.is_private.is_(False))
            .order_by(Channel.created_at.desc(), Channel.id.desc())
        )
        return await self._with_members(result.scalars().all())

    async def get_user_channels(self, user_id: int) -> list[ChannelWithMembers]:
        """Every channel the user belongs to, most recently updated first."""
        if await self.get_user(user_id) is None:
            raise NotFoundError("User not found")

        result = await self.db.execute(
            select(Channel)
            .join(ChannelMember, ChannelMember.channel_id == Channel.id)
            .where(ChannelMember.user_id == user_id)
            .order_by(Channel.updated_at.desc(), Channel.id.desc())
        )
        return await self._with_members(result.scalars().all())

    async def _with_members(self, channels: Sequence[Channel]) -> list[ChannelWithMembers]:
        """Attach member counts and member samples to channels."""
        if not channels:
            return []

        channel_ids = [c.id for c in channels]
        counts_result = await self.db.execute(
            select(ChannelMember.channel_id, func.count(ChannelMember.id))
            .where(ChannelMember.channel_id.in_(channel_ids))
            .group_by(ChannelMember.channel_id)
        )
        counts = dict(counts_result.all())

        enriched = []
        for channel in channels:
            sample_result = await self.db.execute(
                select(User)
                .join(ChannelMember, ChannelMember.user_id == User.id)
                .where(ChannelMember.channel_id == channel.id)
                .order_by(ChannelMember.joined_at, ChannelMember.id)
                .limit(MEMBER_SAMPLE_SIZE)
            )
            enriched.append(
                ChannelWithMembers(
                    **ChannelResponse.model_validate(channel).model_dump(),
                    members=[PublicUser.model_validate(u) for u in sample_result.scalars().all()],
                    member_count=counts.get(channel.id, 0),
                )
            )
        return enriched
