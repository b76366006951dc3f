"""Domain errors raised by the chat services.

Expected negative outcomes (joining twice, bad credentials, ...) are returned
as ``OperationResult`` payloads instead; these exceptions cover hard denials
and references that should have been valid.
"""


class ChatError(Exception):
    """Base class for chat domain errors."""

    status_code: int = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidInputError(ChatError):
    status_code = 400


class NotFoundError(ChatError):
    status_code = 404


class ReplyTargetNotFoundError(NotFoundError):
    """Reply target missing or not in the same channel."""


class AccessDeniedError(ChatError):
    """Requester may not read the channel."""

    status_code = 403


class NotMemberError(ChatError):
    """Requester may not post to the channel."""

    status_code = 403


class ForbiddenError(ChatError):
    """Requester may not modify the resource."""

    status_code = 403


class ConflictError(ChatError):
    status_code = 409
