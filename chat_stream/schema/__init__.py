"""Pydantic models for chat completion requests, responses and stream chunks."""

from .chat_schema import (
    ChatModel,
    ChatMessage,
    UserMessage,
    SystemMessage,
    AssistantMessage,
    FunctionMessage,
    FunctionCall,
    Function,
    FunctionCallName,
    ChatRequest,
    ChatResponse,
    ChatChoice,
    ChatUsage,
    ChatDelta,
    StreamChoice,
    ChatStreamChunk,
    JsonResponse,
    message_content,
)

__all__ = [
    "ChatModel",
    "ChatMessage",
    "UserMessage",
    "SystemMessage",
    "AssistantMessage",
    "FunctionMessage",
    "FunctionCall",
    "Function",
    "FunctionCallName",
    "ChatRequest",
    "ChatResponse",
    "ChatChoice",
    "ChatUsage",
    "ChatDelta",
    "StreamChoice",
    "ChatStreamChunk",
    "JsonResponse",
    "message_content",
]
