"""API routers for the chat backend."""

from chathub.routers.auth import router as auth_router
from chathub.routers.channels import router as channels_router
from chathub.routers.messages import router as messages_router
from chathub.routers.private_chats import router as private_chats_router
from chathub.routers.users import router as users_router

__all__ = [
    "auth_router",
    "channels_router",
    "messages_router",
    "private_chats_router",
    "users_router",
]
