"""Client for the chat completions API: plain requests and JSON-extracting streams."""

import logging
from typing import Any, Callable, Dict, Optional

import httpx
from pydantic import ValidationError

from .config import ClientSettings
from .errors import ChatRequestError, StreamConfigurationError
from .schema.chat_schema import ChatRequest, ChatResponse, JsonResponse
from .streaming.event_source import SSEEventSource
from .streaming.streaming_handler import StreamingJsonHandler


logger = logging.getLogger(__name__)


class ChatClient:
    """Encapsulates chat completion and streaming interactions."""

    def __init__(
        self,
        settings: Optional[ClientSettings] = None,
        *,
        http_client: Optional[httpx.AsyncClient] = None,
    ) -> None:
        self.settings = settings or ClientSettings()
        if self.settings.api_key:
            logger.info("API key loaded successfully.")
        else:
            logger.warning("API key not found in settings or environment.")

        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=self.settings.timeout)

    async def __aenter__(self) -> "ChatClient":
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    def _headers(self) -> Dict[str, str]:
        if not self.settings.api_key:
            raise StreamConfigurationError("An API key is required (set OPENAI_API_KEY).")
        return {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.settings.api_key}",
        }

    def _build_request(self, request: ChatRequest) -> httpx.Request:
        return self._client.build_request(
            "POST",
            self.settings.completions_url,
            headers=self._headers(),
            json=request.to_payload(),
        )

    async def request(self, request: ChatRequest) -> ChatResponse:
        """Send a non-streaming chat completion request."""
        http_request = self._build_request(request)
        try:
            response = await self._client.send(http_request)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            raise ChatRequestError(
                f"Chat completion failed with status {e.response.status_code}: {e.response.text}",
                status_code=e.response.status_code,
                cause=e,
            ) from e
        except httpx.HTTPError as e:
            raise ChatRequestError(f"Error contacting the chat completion service: {e}", cause=e) from e

        try:
            return ChatResponse.model_validate_json(response.content)
        except ValidationError as e:
            raise ChatRequestError(
                f"Error decoding chat completion response: {e}",
                status_code=response.status_code,
                cause=e,
            ) from e

    async def stream_json(
        self,
        request: ChatRequest,
        *,
        on_fragment: Optional[Callable[[str], None]] = None,
        preserve_escapes: bool = True,
    ) -> JsonResponse:
        """
        Stream a completion and return the first JSON object it contains.

        Args:
            request: Chat request with stream=True
            on_fragment: Called with every content fragment as it arrives
            preserve_escapes: Keep backslashes of escape sequences in the
                captured JSON text

        Returns:
            JsonResponse; json is None if the stream ended before an object
            completed

        Raises:
            StreamConfigurationError: stream is not enabled or no API key is set
            StreamTransportError: The stream failed (including decode/timeout)
        """
        if not request.stream:
            raise StreamConfigurationError('"stream" must be set to true')

        source = SSEEventSource(self._client, self._build_request(request))
        handler = StreamingJsonHandler(
            chunk_timeout=self.settings.chunk_timeout,
            preserve_escapes=preserve_escapes,
            on_fragment=on_fragment,
        )
        return await handler.consume(source)
