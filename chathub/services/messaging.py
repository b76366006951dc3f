"""Message service: send, list, edit and delete chat messages."""

import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from chathub.errors import (
    AccessDeniedError,
    ForbiddenError,
    InvalidInputError,
    NotFoundError,
    NotMemberError,
    ReplyTargetNotFoundError,
)
from chathub.models import Message, MessageType, User, utc_now
from chathub.schemas import LinkPreview, MessageWithAuthor, OperationResult, PublicUser
from chathub.services.link_unfurler import LinkUnfurler
from chathub.services.membership import MembershipService
from chathub.utils.text import extract_first_url, truncate_text

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 100


def to_message_response(message: Message, author: User) -> MessageWithAuthor:
    """Convert a Message row and its author into the response schema."""
    return MessageWithAuthor(
        id=message.id,
        channel_id=message.channel_id,
        user_id=message.user_id,
        content=message.content,
        message_type=message.message_type,
        image_url=message.image_url,
        link_preview=LinkPreview(**message.link_preview) if message.link_preview else None,
        reply_to_message_id=message.reply_to_message_id,
        is_edited=message.is_edited,
        created_at=message.created_at,
        updated_at=message.updated_at,
        user=PublicUser.model_validate(author),
    )


class MessageService:
    """
    Message lifecycle: created -> edited* -> deleted.

    Membership checks are delegated to MembershipService. Link previews are
    resolved through the injected unfurler, whose failures never block a send.
    """

    def __init__(self, db: AsyncSession, unfurler: LinkUnfurler | None = None) -> None:
        self.db = db
        self.membership = MembershipService(db)
        self.unfurler = unfurler or LinkUnfurler()

    async def _get_with_author(self, message_id: int) -> tuple[Message, User] | None:
        result = await self.db.execute(
            select(Message, User)
            .join(User, User.id == Message.user_id)
            .where(Message.id == message_id)
        )
        row = result.first()
        return (row[0], row[1]) if row else None

    async def send_message(
        self,
        channel_id: int,
        author_id: int,
        content: str,
        message_type: MessageType | str = MessageType.TEXT,
        image_url: str | None = None,
        reply_to_message_id: int | None = None,
    ) -> MessageWithAuthor:
        """Store a new message from a channel member."""
        if not content:
            raise InvalidInputError("Message content must not be empty")
        try:
            message_type = MessageType(message_type)
        except ValueError:
            raise InvalidInputError(f"Unknown message type: {message_type}")

        if not await self.membership.is_member(channel_id, author_id):
            raise NotMemberError("User is not a member of this channel")

        if reply_to_message_id is not None:
            target = await self.db.execute(
                select(Message.id).where(
                    Message.id == reply_to_message_id,
                    Message.channel_id == channel_id,
                )
            )
            if target.scalar_one_or_none() is None:
                raise ReplyTargetNotFoundError("Reply target message not found")

        link_preview = None
        if message_type is MessageType.LINK:
            url = extract_first_url(content)
            if url:
                preview = await self.unfurler.unfurl(url)
                # Only-url previews mean the unfurl failed
                if preview.title or preview.description or preview.image:
                    link_preview = preview.model_dump()
                else:
                    logger.info(f"[Messages] No preview available for {url}")

        now = utc_now()
        message = Message(
            channel_id=channel_id,
            user_id=author_id,
            content=content,
            message_type=message_type.value,
            image_url=image_url,
            link_preview=link_preview,
            reply_to_message_id=reply_to_message_id,
            is_edited=False,
            created_at=now,
            updated_at=now,
        )
        self.db.add(message)
        await self.db.flush()

        logger.info(
            f"[Messages] User {author_id} posted {message.id} in channel {channel_id}: {truncate_text(content, 60)!r}"
        )
        author = await self.membership.get_user(author_id)
        return to_message_response(message, author)

    async def get_messages(
        self,
        channel_id: int,
        requester_id: int,
        limit: int = DEFAULT_PAGE_SIZE,
        offset: int = 0,
    ) -> list[MessageWithAuthor]:
        """
        Page through a channel's messages, newest first.

        This is a plain offset window; messages arriving between calls shift
        later pages.
        """
        if not 1 <= limit <= MAX_PAGE_SIZE:
            raise InvalidInputError(f"limit must be between 1 and {MAX_PAGE_SIZE}")
        if offset < 0:
            raise InvalidInputError("offset must not be negative")

        if not await self.membership.is_member(channel_id, requester_id):
            raise AccessDeniedError("User does not have access to this channel")

        result = await self.db.execute(
            select(Message, User)
            .join(User, User.id == Message.user_id)
            .where(Message.channel_id == channel_id)
            .order_by(Message.created_at.desc(), Message.id.desc())
            .limit(limit)
            .offset(offset)
        )
        return [to_message_response(message, author) for message, author in result.all()]

    async def update_message(
        self, message_id: int, requester_id: int, content: str
    ) -> MessageWithAuthor:
        """Replace a message's content. Only the author may edit."""
        if not content:
            raise InvalidInputError("Message content must not be empty")

        row = await self._get_with_author(message_id)
        if row is None or row[0].user_id != requester_id:
            # Same error either way so non-authors cannot probe for ids
            raise ForbiddenError("Message not found or user does not have permission to edit")

        message, author = row
        message.content = content
        message.is_edited = True
        message.updated_at = utc_now()
        await self.db.flush()

        logger.info(f"[Messages] Message {message_id} edited by user {requester_id}")
        return to_message_response(message, author)

    async def delete_message(self, message_id: int, requester_id: int) -> OperationResult:
        """Permanently delete a message. Allowed for the author and channel owners/admins."""
        result = await self.db.execute(select(Message).where(Message.id == message_id))
        message = result.scalar_one_or_none()
        if message is None:
            raise NotFoundError("Message not found")

        if message.user_id != requester_id and not await self.membership.has_role(
            message.channel_id, requester_id
        ):
            raise ForbiddenError("User does not have permission to delete this message")

        await self.db.delete(message)
        await self.db.flush()

        logger.info(f"[Messages] Message {message_id} deleted by user {requester_id}")
        return OperationResult(success=True, message="Message deleted successfully")
