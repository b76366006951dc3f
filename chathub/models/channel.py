"""Channel and membership models for public channels and private chats."""

from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    case,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from chathub.models.base import Base, utc_now

if TYPE_CHECKING:
    from chathub.models.message import Message
    from chathub.models.user import User


class MemberRole(str, Enum):
    """Role a user holds inside a channel, ordered by privilege."""

    OWNER = "owner"
    ADMIN = "admin"
    MEMBER = "member"

    @property
    def rank(self) -> int:
        """Lower rank means more privilege (owner=1)."""
        return _ROLE_RANKS[self]

    @classmethod
    def managers(cls) -> tuple["MemberRole", ...]:
        """Roles allowed to moderate a channel."""
        return (cls.OWNER, cls.ADMIN)


_ROLE_RANKS = {
    MemberRole.OWNER: 1,
    MemberRole.ADMIN: 2,
    MemberRole.MEMBER: 3,
}


def private_pair_key(user_a: int, user_b: int) -> str:
    """Canonical, order-independent key for a 1:1 private chat."""
    low, high = sorted((user_a, user_b))
    return f"{low}:{high}"


class Channel(Base):
    """Represents a public channel or a private (1:1 or group) chat."""

    __tablename__ = "chat_channels"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    # Empty for private chats
    name: Mapped[str] = mapped_column(String(100), nullable=False, default="")
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_private: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_by: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=False
    )
    # Set only while the member set is exactly the pair it names
    dm_key: Mapped[str | None] = mapped_column(String(64), unique=True, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=utc_now, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utc_now, onupdate=utc_now, nullable=False
    )

    # passive_deletes=True tells SQLAlchemy to let the database CASCADE handle deletes
    members: Mapped[list["ChannelMember"]] = relationship(
        "ChannelMember", back_populates="channel", cascade="all, delete-orphan", passive_deletes=True
    )
    messages: Mapped[list["Message"]] = relationship(
        "Message", back_populates="channel", cascade="all, delete-orphan", passive_deletes=True
    )

    def __repr__(self) -> str:
        return f"<Channel(id={self.id}, name={self.name!r}, private={self.is_private})>"


class ChannelMember(Base):
    """A user's membership and role in a channel."""

    __tablename__ = "channel_members"
    __table_args__ = (
        UniqueConstraint("channel_id", "user_id", name="uq_channel_members_channel_user"),
        CheckConstraint(
            "role IN ('owner', 'admin', 'member')", name="ck_channel_members_role"
        ),
        # At most one owner per channel
        Index(
            "uq_channel_members_single_owner",
            "channel_id",
            unique=True,
            sqlite_where=text("role = 'owner'"),
            postgresql_where=text("role = 'owner'"),
        ),
        Index("ix_channel_members_user_id", "user_id"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    channel_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("chat_channels.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    role: Mapped[str] = mapped_column(
        String(20), nullable=False, default=MemberRole.MEMBER.value
    )  # owner, admin, member
    joined_at: Mapped[datetime] = mapped_column(
        DateTime, default=utc_now, nullable=False
    )

    channel: Mapped["Channel"] = relationship("Channel", back_populates="members")
    user: Mapped["User"] = relationship("User", back_populates="memberships")

    def __repr__(self) -> str:
        return f"<ChannelMember(channel={self.channel_id}, user={self.user_id}, role={self.role})>"


# SQL expression ordering members owner -> admin -> member
role_rank = case(
    {role.value: role.rank for role in MemberRole},
    value=ChannelMember.role,
    else_=len(MemberRole) + 1,
)
