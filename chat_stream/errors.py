"""
Errors: Exception hierarchy for the chat streaming client.

Every error raised by this package derives from ChatStreamError and keeps the
underlying cause (if any) on the ``cause`` attribute as well as ``__cause__``.
"""

from typing import Optional


class ChatStreamError(Exception):
    """Base class for all chat_stream errors."""

    def __init__(self, message: str, *, cause: Optional[BaseException] = None):
        super().__init__(message)
        self.message = message
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause


class StreamConfigurationError(ChatStreamError):
    """The call was misconfigured and was rejected before any network activity."""


class StreamTransportError(ChatStreamError):
    """The event source failed (connection, HTTP status, content type)."""


class StreamDecodeError(StreamTransportError):
    """A stream payload could not be deserialized."""


class StreamTimeoutError(StreamTransportError):
    """No event arrived within the configured chunk timeout."""


class ChatRequestError(ChatStreamError):
    """A non-streaming chat completion request failed."""

    def __init__(
        self,
        message: str,
        *,
        status_code: Optional[int] = None,
        cause: Optional[BaseException] = None,
    ):
        super().__init__(message, cause=cause)
        self.status_code = status_code
