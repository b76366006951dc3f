"""Message model for chat messages."""

from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, Any

from sqlalchemy import JSON, Boolean, DateTime, ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from chathub.models.base import Base, utc_now

if TYPE_CHECKING:
    from chathub.models.channel import Channel
    from chathub.models.user import User


class MessageType(str, Enum):
    """Kinds of message content."""

    TEXT = "text"
    IMAGE = "image"
    LINK = "link"


class Message(Base):
    """Represents a chat message in a channel or private chat."""

    __tablename__ = "chat_messages"
    __table_args__ = (
        Index("ix_chat_messages_channel_created", "channel_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    channel_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("chat_channels.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("users.id"), nullable=False
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    message_type: Mapped[str] = mapped_column(
        String(20), nullable=False, default=MessageType.TEXT.value
    )  # text, image, link
    image_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    # {title, description, image, url}
    link_preview: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)
    # No foreign key: replies may outlive the message they answer
    reply_to_message_id: Mapped[int | None] = mapped_column(
        Integer, nullable=True, index=True
    )
    is_edited: Mapped[bool] = mapped_column(Boolean, default=False, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=utc_now, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=utc_now, nullable=False
    )

    channel: Mapped["Channel"] = relationship("Channel", back_populates="messages")
    author: Mapped["User"] = relationship("User")

    def __repr__(self) -> str:
        return f"<Message(id={self.id}, channel={self.channel_id}, author={self.user_id})>"
