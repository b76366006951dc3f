"""Database models for the chat backend."""

from chathub.models.base import (
    AsyncSessionLocal,
    Base,
    configure_sqlite_engine,
    create_engine_for_url,
    get_db,
    init_db,
    utc_now,
)
from chathub.models.user import User
from chathub.models.channel import Channel, ChannelMember, MemberRole, private_pair_key, role_rank
from chathub.models.message import Message, MessageType

__all__ = [
    "Base",
    "get_db",
    "init_db",
    "utc_now",
    "configure_sqlite_engine",
    "create_engine_for_url",
    "AsyncSessionLocal",
    "User",
    "Channel",
    "ChannelMember",
    "MemberRole",
    "private_pair_key",
    "role_rank",
    "Message",
    "MessageType",
]
