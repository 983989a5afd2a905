"""
Streaming Handler: Drives JSON extraction over a streamed chat completion.

This module consumes events from an event source, unwraps each message into a
content fragment, feeds it through the incremental JSON extractor, and stops
reading the moment the first JSON object is complete.

Key Features:
- Strict arrival order, one event at a time
- Early cancel: the source is closed as soon as the object is captured
- "[DONE]" sentinel handling
- Transport and decoding errors surfaced with their cause
- Optional timeout between events
"""

import asyncio
import logging
from typing import AsyncIterator, Callable, List, Optional

from pydantic import ValidationError

from ..errors import ChatStreamError, StreamDecodeError, StreamTimeoutError, StreamTransportError
from ..schema.chat_schema import ChatStreamChunk, JsonResponse
from .event_source import EventSource, SourceEvent
from .json_extractor import ExtractionState, Idle, discard_unterminated, extract_json_from_stream


logger = logging.getLogger(__name__)

DONE_SENTINEL = "[DONE]"


class StreamingJsonHandler:
    """
    Consumes a chat completion event stream and recovers the first JSON object.

    Example:
        >>> handler = StreamingJsonHandler()
        >>> result = await handler.consume(source)
        >>> result.antecedent, result.json
        ('Sure, here it is: ', '{"answer": 42}')
    """

    def __init__(
        self,
        chunk_timeout: Optional[float] = None,
        preserve_escapes: bool = True,
        on_fragment: Optional[Callable[[str], None]] = None,
    ):
        """
        Initialize streaming handler.

        Args:
            chunk_timeout: Maximum seconds to wait for each event. None waits
                indefinitely.
            preserve_escapes: Keep backslashes of escape sequences in the
                captured JSON text
            on_fragment: Called with every content fragment as it arrives
        """
        self.chunk_timeout = chunk_timeout
        self.preserve_escapes = preserve_escapes
        self.on_fragment = on_fragment

    async def consume(self, source: EventSource) -> JsonResponse:
        """
        Read events until the JSON object completes, the sentinel arrives, or
        the source is exhausted.

        Args:
            source: Event source to pull from; it is always closed on return

        Returns:
            JsonResponse with the narration and the captured object (if any)

        Raises:
            StreamTransportError: The source failed or reported an error
            StreamDecodeError: A message payload could not be deserialized
            StreamTimeoutError: No event arrived within chunk_timeout
        """
        state: ExtractionState = Idle()
        antecedent: List[str] = []
        completed_json: Optional[str] = None
        events = source.__aiter__()

        try:
            while True:
                try:
                    event = await self._next_event(events)
                except StopAsyncIteration:
                    logger.debug("Event stream ended without %s", DONE_SENTINEL)
                    break

                if event.type == "open":
                    continue

                if event.type == "error":
                    cause = event.error if isinstance(event.error, BaseException) else None
                    logger.warning("Event source reported an error: %s", event.error)
                    raise StreamTransportError(f"Event source error: {event.error}", cause=cause)

                if event.data == DONE_SENTINEL:
                    logger.debug("Received %s sentinel", DONE_SENTINEL)
                    break

                content = self._content_of(event.data)
                if not content:
                    continue

                if self.on_fragment is not None:
                    self.on_fragment(content)

                result = extract_json_from_stream(content, state, preserve_escapes=self.preserve_escapes)
                state = result.state
                antecedent.append(result.passthrough)

                if result.completed_json is not None:
                    completed_json = result.completed_json
                    logger.info("Captured JSON object (%d chars); closing stream", len(completed_json))
                    break
        finally:
            await self._close(source, events)

        if completed_json is None:
            discard_unterminated(state)

        return JsonResponse(antecedent="".join(antecedent), json=completed_json)

    async def _next_event(self, events: AsyncIterator[SourceEvent]) -> SourceEvent:
        """
        Await the next event, with timeout protection when configured.

        Raises:
            StopAsyncIteration: The source is exhausted
        """
        try:
            if self.chunk_timeout is None:
                return await events.__anext__()
            return await asyncio.wait_for(events.__anext__(), timeout=self.chunk_timeout)
        except StopAsyncIteration:
            raise
        except asyncio.TimeoutError as e:
            logger.warning("No event received for %ss", self.chunk_timeout)
            raise StreamTimeoutError(
                f"No event received for {self.chunk_timeout}s. "
                f"The LLM service may have stopped responding.",
                cause=e,
            ) from e
        except ChatStreamError:
            raise
        except Exception as e:
            logger.warning("Event source failed: %s", e)
            raise StreamTransportError(f"Error reading event stream: {e}", cause=e) from e

    def _content_of(self, data: str) -> Optional[str]:
        """Deserialize a message payload and return its content fragment."""
        try:
            chunk = ChatStreamChunk.model_validate_json(data)
        except ValidationError as e:
            logger.warning("Undecodable stream payload: %.200s", data)
            raise StreamDecodeError(f"Error decoding stream payload: {e}", cause=e) from e

        delta = chunk.delta()
        if delta is None:
            return None
        return delta.content

    async def _close(self, source: EventSource, events: AsyncIterator[SourceEvent]) -> None:
        await source.aclose()
        # Finalize a generator-based iterator that is still suspended
        aclose = getattr(events, "aclose", None)
        if aclose is not None and events is not source:
            await aclose()
