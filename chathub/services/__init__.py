"""Services for the chat backend."""

from chathub.services.auth import AuthService
from chathub.services.link_unfurler import LinkUnfurler, parse_preview
from chathub.services.membership import MembershipService
from chathub.services.messaging import MessageService
from chathub.services.presence import PresenceService
from chathub.services.private_chat import PrivateChatService

__all__ = [
    "AuthService",
    "LinkUnfurler",
    "parse_preview",
    "MembershipService",
    "MessageService",
    "PresenceService",
    "PrivateChatService",
]
