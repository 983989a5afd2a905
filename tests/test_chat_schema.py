"""Tests for request/response models and the stream result."""

from __future__ import annotations

import json

import pytest
from pydantic import BaseModel, ValidationError

from chat_stream.schema.chat_schema import (
    AssistantMessage,
    ChatModel,
    ChatRequest,
    ChatResponse,
    ChatStreamChunk,
    Function,
    FunctionCall,
    FunctionCallName,
    FunctionMessage,
    JsonResponse,
    SystemMessage,
    UserMessage,
    message_content,
)


class Weather(BaseModel):
    city: str
    celsius: float


def _request(**kwargs) -> ChatRequest:
    return ChatRequest(messages=[UserMessage(content="hi")], **kwargs)


def test_request_defaults():
    request = _request()
    assert request.model is ChatModel.GPT4
    assert request.temperature == 0.7
    assert request.frequency_penalty == 0.0
    assert request.stream is False


@pytest.mark.parametrize(
    "field, value, expected",
    [
        ("temperature", 5.0, 2.0),
        ("temperature", -1.0, 0.0),
        ("temperature", 1.3, 1.3),
        ("frequency_penalty", -3.0, -2.0),
        ("frequency_penalty", 2.5, 2.0),
        ("frequency_penalty", 0.5, 0.5),
    ],
)
def test_sampling_parameters_are_clamped(field, value, expected):
    assert getattr(_request(**{field: value}), field) == expected


def test_request_rejects_non_positive_limits():
    with pytest.raises(ValidationError):
        _request(max_tokens=0)
    with pytest.raises(ValidationError):
        _request(n=0)


def test_payload_drops_unset_optionals():
    payload = ChatRequest(
        model=ChatModel.GPT3,
        messages=[SystemMessage(content="be terse"), UserMessage(content="hi")],
        stream=True,
    ).to_payload()

    assert payload == {
        "model": "gpt-3.5-turbo-0613",
        "messages": [
            {"role": "system", "content": "be terse"},
            {"role": "user", "content": "hi"},
        ],
        "temperature": 0.7,
        "stream": True,
        "frequency_penalty": 0.0,
    }
    json.dumps(payload)


def test_payload_with_functions():
    payload = _request(
        functions=[Function.from_model("get_weather", Weather, "Look up the weather")],
        function_call=FunctionCallName(name="get_weather"),
        stop=["\n\n"],
        max_tokens=64,
    ).to_payload()

    function = payload["functions"][0]
    assert function["name"] == "get_weather"
    assert function["description"] == "Look up the weather"
    assert set(function["parameters"]["properties"]) == {"city", "celsius"}
    assert payload["function_call"] == {"name": "get_weather"}
    assert payload["stop"] == ["\n\n"]
    assert payload["max_tokens"] == 64


def test_function_call_mode_literal():
    assert _request(function_call="auto").to_payload()["function_call"] == "auto"
    with pytest.raises(ValidationError):
        _request(function_call="sometimes")


def test_messages_are_tagged_by_role():
    request = ChatRequest.model_validate(
        {
            "messages": [
                {"role": "user", "content": "q", "name": "ann"},
                {"role": "function", "content": "{}", "name": "lookup"},
            ]
        }
    )
    assert isinstance(request.messages[0], UserMessage)
    assert request.messages[0].name == "ann"
    assert isinstance(request.messages[1], FunctionMessage)


def test_assistant_message_needs_content_or_function_call():
    with pytest.raises(ValidationError):
        AssistantMessage()
    with pytest.raises(ValidationError):
        AssistantMessage(content="x", function_call=FunctionCall(name="f", arguments="{}"))

    call = AssistantMessage(function_call=FunctionCall(name="f", arguments="{}"))
    assert message_content(call) is None
    assert message_content(AssistantMessage(content="text")) == "text"


def test_chat_response_accessors():
    response = ChatResponse.model_validate(
        {
            "id": "chatcmpl-1",
            "object": "chat.completion",
            "created": 1700000000,
            "choices": [
                {
                    "index": 0,
                    "message": {
                        "role": "assistant",
                        "content": None,
                        "function_call": {
                            "name": "get_weather",
                            "arguments": '{"city": "Oslo", "celsius": -3.5}',
                        },
                    },
                    "finish_reason": "function_call",
                }
            ],
            "usage": {"prompt_tokens": 10, "completion_tokens": 5, "total_tokens": 15},
        }
    )

    call = response.function_call()
    assert call is not None
    assert call.name == "get_weather"
    assert call.to_type(Weather) == Weather(city="Oslo", celsius=-3.5)
    assert len(response.messages()) == 1
    assert response.tokens().total_tokens == 15


def test_stream_chunk_delta():
    role = ChatStreamChunk.model_validate_json(
        '{"id":"c","object":"chat.completion.chunk","created":1,'
        '"choices":[{"index":0,"delta":{"role":"assistant"},"finish_reason":null}]}'
    )
    assert role.delta().role == "assistant"
    assert role.delta().content is None

    empty = ChatStreamChunk.model_validate_json(
        '{"id":"c","object":"chat.completion.chunk","created":1,'
        '"choices":[{"index":0,"delta":{},"finish_reason":"stop"}]}'
    )
    assert empty.delta() is None

    no_choices = ChatStreamChunk(id="c", object="chat.completion.chunk", created=1, choices=[])
    assert no_choices.delta() is None


def test_json_response_full_string_and_deserialize():
    found = JsonResponse(antecedent="Here: ", json='{"city": "Oslo", "celsius": 1}')
    assert found.to_full_string() == 'Here: {"city": "Oslo", "celsius": 1}'
    assert found.deserialize() == {"city": "Oslo", "celsius": 1}
    assert found.deserialize(Weather) == Weather(city="Oslo", celsius=1)

    missing = JsonResponse(antecedent="nothing")
    assert missing.to_full_string() == "nothing"
    assert missing.deserialize() is None
    assert missing.deserialize(Weather) is None
