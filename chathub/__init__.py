"""Multi-user chat backend: channels, membership, messages and private chats."""

__version__ = "0.1.0"
