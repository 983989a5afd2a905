"""Chat completion client that recovers JSON objects from streamed responses."""

from .client import ChatClient
from .config import ClientSettings
from .errors import (
    ChatStreamError,
    StreamConfigurationError,
    StreamTransportError,
    StreamDecodeError,
    StreamTimeoutError,
    ChatRequestError,
)
from .schema import ChatModel, ChatRequest, ChatResponse, JsonResponse, UserMessage, SystemMessage
from .streaming import IncrementalJsonExtractor, StreamingJsonHandler, extract_json_from_stream

__all__ = [
    "ChatClient",
    "ClientSettings",
    "ChatStreamError",
    "StreamConfigurationError",
    "StreamTransportError",
    "StreamDecodeError",
    "StreamTimeoutError",
    "ChatRequestError",
    "ChatModel",
    "ChatRequest",
    "ChatResponse",
    "JsonResponse",
    "UserMessage",
    "SystemMessage",
    "IncrementalJsonExtractor",
    "StreamingJsonHandler",
    "extract_json_from_stream",
]
