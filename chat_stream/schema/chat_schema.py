"""
Chat Schema: Pydantic models for the chat completions API.

This module provides the request, response and streaming chunk models used by
the client, plus the JsonResponse returned by a JSON-extracting stream.

Key Features:
- Role-tagged messages (user, system, assistant, function)
- Sampling parameters clamped to the API's accepted ranges
- Function definitions generated from Pydantic models
- Streaming chunks whose empty deltas deserialize to None
"""

import json as jsonlib
from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict, List, Literal, Optional, Type, TypeVar, Union, Annotated

from pydantic import BaseModel, Field, field_validator, model_validator


T = TypeVar("T", bound=BaseModel)

TEMPERATURE_RANGE = (0.0, 2.0)
FREQUENCY_PENALTY_RANGE = (-2.0, 2.0)


def clamp(value: float, low: float, high: float) -> float:
    """Clamp value into [low, high]."""
    if value > high:
        return high
    if value < low:
        return low
    return value


# =============================================================================
# Models
# =============================================================================

class ChatModel(str, Enum):
    """Chat models accepted by the completions endpoint."""
    GPT3 = "gpt-3.5-turbo-0613"
    GPT3_16K = "gpt-3.5-turbo-16k-0613"
    GPT4_MAY = "gpt-4"
    GPT4 = "gpt-4-0613"
    GPT4_TURBO = "gpt-4-1106-preview"


# =============================================================================
# Messages
# =============================================================================

class FunctionCall(BaseModel):
    """A function invocation requested by the assistant."""
    name: str
    arguments: str = Field(..., description="JSON-encoded arguments")

    def to_type(self, model: Type[T]) -> T:
        """Validate the arguments against a Pydantic model."""
        return model.model_validate_json(self.arguments)


class UserMessage(BaseModel):
    role: Literal["user"] = "user"
    content: str
    name: Optional[str] = None


class SystemMessage(BaseModel):
    role: Literal["system"] = "system"
    content: str


class AssistantMessage(BaseModel):
    """Assistant turn carrying either text content or a function call."""
    role: Literal["assistant"] = "assistant"
    content: Optional[str] = None
    function_call: Optional[FunctionCall] = None
    name: Optional[str] = None

    @model_validator(mode="after")
    def content_or_function_call(self) -> "AssistantMessage":
        if (self.content is None) == (self.function_call is None):
            raise ValueError("assistant message needs exactly one of 'content' or 'function_call'")
        return self


class FunctionMessage(BaseModel):
    """Result of a function, whose name is given by the name field."""
    role: Literal["function"] = "function"
    content: str
    name: str


ChatMessage = Annotated[
    Union[UserMessage, SystemMessage, AssistantMessage, FunctionMessage],
    Field(discriminator="role")
]


def message_content(message: ChatMessage) -> Optional[str]:
    """Text content of a message, or None for an assistant function call."""
    return message.content


# =============================================================================
# Functions
# =============================================================================

class Function(BaseModel):
    """A function the model may call."""
    name: str
    description: Optional[str] = None
    parameters: Optional[Dict[str, Any]] = Field(None, description="JSON schema of the arguments")

    @classmethod
    def from_model(
        cls,
        name: str,
        model: Type[BaseModel],
        description: Optional[str] = None,
    ) -> "Function":
        """Build a function whose parameters are a Pydantic model's JSON schema."""
        return cls(name=name, description=description, parameters=model.model_json_schema())


class FunctionCallName(BaseModel):
    name: str


FunctionCallType = Union[Literal["auto", "none"], FunctionCallName]


# =============================================================================
# Request
# =============================================================================

class ChatRequest(BaseModel):
    """
    Outbound chat completion request.

    Example:
        >>> request = ChatRequest(messages=[UserMessage(content="hi")], temperature=5)
        >>> request.temperature
        2.0
    """
    model: ChatModel = ChatModel.GPT4
    messages: List[ChatMessage]
    functions: Optional[List[Function]] = None
    function_call: Optional[FunctionCallType] = None
    temperature: float = 0.7
    stream: bool = False
    stop: Optional[List[str]] = None
    frequency_penalty: float = 0.0
    n: Optional[int] = Field(None, ge=1)
    max_tokens: Optional[int] = Field(None, ge=1)

    @field_validator("temperature")
    @classmethod
    def clamp_temperature(cls, v: float) -> float:
        return clamp(v, *TEMPERATURE_RANGE)

    @field_validator("frequency_penalty")
    @classmethod
    def clamp_frequency_penalty(cls, v: float) -> float:
        return clamp(v, *FREQUENCY_PENALTY_RANGE)

    def to_payload(self) -> Dict[str, Any]:
        """Serialize to the JSON body sent to the API, dropping unset optionals."""
        return self.model_dump(mode="json", exclude_none=True)


# =============================================================================
# Non-streaming response
# =============================================================================

class ChatUsage(BaseModel):
    prompt_tokens: int = 0
    completion_tokens: int = 0
    total_tokens: int = 0


class ChatChoice(BaseModel):
    index: int
    message: ChatMessage
    finish_reason: Optional[str] = None


class ChatResponse(BaseModel):
    """Complete (non-streaming) chat completion response."""
    id: str
    object: str
    created: int
    choices: List[ChatChoice]
    usage: ChatUsage = Field(default_factory=ChatUsage)

    def message(self) -> Optional[ChatMessage]:
        """First choice's message."""
        if not self.choices:
            return None
        return self.choices[0].message

    def function_call(self) -> Optional[FunctionCall]:
        message = self.message()
        if isinstance(message, AssistantMessage):
            return message.function_call
        return None

    def messages(self) -> List[ChatMessage]:
        return [choice.message for choice in self.choices]

    def tokens(self) -> ChatUsage:
        return self.usage


# =============================================================================
# Streaming chunks
# =============================================================================

class ChatDelta(BaseModel):
    """Incremental update in a stream chunk: a role announcement or content."""
    role: Optional[str] = None
    content: Optional[str] = None


class StreamChoice(BaseModel):
    index: int
    delta: Optional[ChatDelta] = None
    finish_reason: Optional[str] = None

    @field_validator("delta", mode="before")
    @classmethod
    def empty_delta_is_none(cls, v: Any) -> Any:
        if isinstance(v, dict) and not v:
            return None
        return v


class ChatStreamChunk(BaseModel):
    """One `data:` payload of a streamed chat completion."""
    id: str
    object: str
    created: int
    choices: List[StreamChoice]

    def delta(self) -> Optional[ChatDelta]:
        """First choice's delta, if any."""
        if not self.choices:
            return None
        return self.choices[0].delta


# =============================================================================
# Stream result
# =============================================================================

@dataclass(frozen=True)
class JsonResponse:
    """
    Result of a JSON-extracting stream.

    antecedent holds the narration received before (or instead of) the JSON
    object; json holds the first balanced object, or None if none completed.
    """
    antecedent: str = ""
    json: Optional[str] = None

    def to_full_string(self) -> str:
        """Antecedent followed by the captured JSON text."""
        if self.json is None:
            return self.antecedent
        return self.antecedent + self.json

    def deserialize(self, model: Optional[Type[T]] = None) -> Union[T, Any, None]:
        """
        Parse the captured JSON.

        Args:
            model: Optional Pydantic model to validate against

        Returns:
            None when no object was captured, a model instance when model is
            given, otherwise the decoded JSON value

        Raises:
            json.JSONDecodeError / pydantic.ValidationError on invalid input
        """
        if self.json is None:
            return None
        if model is not None:
            return model.model_validate_json(self.json)
        return jsonlib.loads(self.json)
