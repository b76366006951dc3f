"""Response schemas shared by the services and the API routers."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class PublicUser(BaseModel):
    """User profile without credentials."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    username: str
    avatar_url: str | None
    is_online: bool
    last_seen: datetime | None


class ChannelResponse(BaseModel):
    """Schema for channel response."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    description: str | None
    is_private: bool
    created_by: int
    created_at: datetime
    updated_at: datetime


class ChannelWithMembers(ChannelResponse):
    """Channel plus its total member count and a small sample of members."""

    members: list[PublicUser]
    member_count: int


class ChannelMemberInfo(BaseModel):
    """A member as listed inside a channel."""

    id: int
    username: str
    avatar_url: str | None
    is_online: bool
    role: str


class LinkPreview(BaseModel):
    """Best-effort preview metadata for a URL."""

    title: str | None = None
    description: str | None = None
    image: str | None = None
    url: str


class MessageWithAuthor(BaseModel):
    """Stored message joined with its author's public profile."""

    id: int
    channel_id: int
    user_id: int
    content: str
    message_type: str
    image_url: str | None
    link_preview: LinkPreview | None
    reply_to_message_id: int | None
    is_edited: bool
    created_at: datetime
    updated_at: datetime
    user: PublicUser


class LastMessage(BaseModel):
    content: str
    created_at: datetime


class PrivateChatSummary(ChannelResponse):
    """A private chat as seen by one of its members."""

    other_user: PublicUser
    other_users: list[PublicUser]
    last_message: LastMessage | None = None


class OperationResult(BaseModel):
    """Non-exceptional outcome for operations with expected negative results."""

    success: bool
    message: str


class AuthResponse(OperationResult):
    user: PublicUser | None = None
    token: str | None = None
