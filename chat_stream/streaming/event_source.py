"""
Event Source: Server-Sent Events subscription over httpx.

The stream consumer only sees an ordered sequence of OpenEvent / MessageEvent /
ErrorEvent values and an idempotent aclose(). SSEEventSource provides that
sequence for a streaming HTTP response.

Key Features:
- SSE format parsing (multi-line data, comments, event and id fields)
- HTTP status and content-type checks before the first message
- httpx errors surfaced as StreamTransportError
- One-shot, idempotent close
"""

import logging
from typing import Annotated, Any, AsyncIterator, List, Literal, Optional, Protocol, Union, runtime_checkable

import httpx
from pydantic import BaseModel, ConfigDict, Field

from ..errors import StreamTransportError


logger = logging.getLogger(__name__)

SSE_CONTENT_TYPE = "text/event-stream"


# =============================================================================
# Events
# =============================================================================

class OpenEvent(BaseModel):
    """The connection is established."""
    type: Literal["open"] = "open"


class MessageEvent(BaseModel):
    """One dispatched SSE message."""
    type: Literal["message"] = "message"
    data: str = Field(..., description="Message payload (data lines joined by newlines)")
    event: Optional[str] = Field(None, description="SSE event name, if sent")
    id: Optional[str] = Field(None, description="SSE last event id, if sent")


class ErrorEvent(BaseModel):
    """The source reported an error in-band."""
    model_config = ConfigDict(arbitrary_types_allowed=True)

    type: Literal["error"] = "error"
    error: Any = Field(..., description="Underlying exception or error description")


SourceEvent = Annotated[
    Union[OpenEvent, MessageEvent, ErrorEvent],
    Field(discriminator="type")
]


@runtime_checkable
class EventSource(Protocol):
    """Ordered event subscription that the consumer can cancel."""

    def __aiter__(self) -> AsyncIterator[SourceEvent]:
        ...

    async def aclose(self) -> None:
        ...


# =============================================================================
# SSE line parsing
# =============================================================================

class SSEDecoder:
    """
    Incremental SSE line decoder.

    Feed lines without their terminators; a blank line dispatches the pending
    message.

    Example:
        >>> decoder = SSEDecoder()
        >>> decoder.decode('data: {"a":1}')
        >>> decoder.decode('').data
        '{"a":1}'
    """

    def __init__(self):
        self._data: List[str] = []
        self._event: Optional[str] = None
        self._last_event_id: Optional[str] = None

    def decode(self, line: str) -> Optional[MessageEvent]:
        if not line:
            return self.flush()

        # Comment / keep-alive
        if line.startswith(":"):
            return None

        field, _, value = line.partition(":")
        if value.startswith(" "):
            value = value[1:]

        if field == "data":
            self._data.append(value)
        elif field == "event":
            self._event = value
        elif field == "id":
            if "\0" not in value:
                self._last_event_id = value
        # "retry" and unknown fields are ignored

        return None

    def flush(self) -> Optional[MessageEvent]:
        """Dispatch the pending message, if any data lines were seen."""
        if not self._data:
            self._event = None
            return None

        message = MessageEvent(
            data="\n".join(self._data),
            event=self._event,
            id=self._last_event_id,
        )
        self._data = []
        self._event = None
        return message


# =============================================================================
# httpx event source
# =============================================================================

class SSEEventSource:
    """
    Event source backed by a streaming httpx response.

    Example:
        >>> request = client.build_request("POST", url, json=payload)
        >>> source = SSEEventSource(client, request)
        >>> async for event in source:
        ...     print(event)
        >>> await source.aclose()
    """

    def __init__(self, client: httpx.AsyncClient, request: httpx.Request):
        self.client = client
        self.request = request
        self._response: Optional[httpx.Response] = None
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def __aiter__(self) -> AsyncIterator[SourceEvent]:
        return self._events()

    async def _events(self) -> AsyncIterator[SourceEvent]:
        if self._closed:
            return

        try:
            self._response = await self.client.send(self.request, stream=True)
        except httpx.HTTPError as e:
            logger.warning("Event source failed to connect: %s", e)
            raise StreamTransportError(f"Error opening event stream: {e}", cause=e) from e

        await self._check_response(self._response)
        logger.debug("Event stream opened: %s", self.request.url)
        yield OpenEvent()

        decoder = SSEDecoder()
        try:
            async for line in self._response.aiter_lines():
                if self._closed:
                    return
                message = decoder.decode(line.rstrip("\r\n"))
                if message is not None:
                    yield message
        except (httpx.HTTPError, httpx.StreamError) as e:
            if self._closed:
                return
            logger.warning("Event stream failed: %s", e)
            raise StreamTransportError(f"Error reading event stream: {e}", cause=e) from e

        message = decoder.flush()
        if message is not None and not self._closed:
            yield message

    async def _check_response(self, response: httpx.Response) -> None:
        if response.is_success:
            content_type = response.headers.get("content-type", "")
            if content_type.split(";")[0].strip().lower() == SSE_CONTENT_TYPE:
                return
            await self.aclose()
            raise StreamTransportError(
                f"Invalid content type for event stream: {content_type or '<missing>'}"
            )

        body = (await response.aread()).decode("utf-8", errors="replace")
        await self.aclose()
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise StreamTransportError(
                f"Event stream request failed with status {response.status_code}: {body}",
                cause=e,
            ) from e
        raise StreamTransportError(
            f"Event stream request failed with status {response.status_code}: {body}"
        )

    async def aclose(self) -> None:
        """Close the underlying response. Safe to call more than once."""
        if self._closed:
            return
        self._closed = True
        if self._response is not None:
            await self._response.aclose()
        logger.debug("Event stream closed: %s", self.request.url)
