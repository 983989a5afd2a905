"""Client configuration loaded from environment variables or a .env file."""

from typing import Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


DEFAULT_BASE_URL = "https://api.openai.com/v1"
CHAT_COMPLETIONS_PATH = "/chat/completions"


class ClientSettings(BaseSettings):
    """
    Settings for ChatClient.

    Environment variables use the CHAT_STREAM_ prefix (CHAT_STREAM_BASE_URL,
    CHAT_STREAM_TIMEOUT, CHAT_STREAM_CHUNK_TIMEOUT); the API key is also read
    from OPENAI_API_KEY.
    """

    api_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("api_key", "OPENAI_API_KEY", "CHAT_STREAM_API_KEY"),
    )
    base_url: str = DEFAULT_BASE_URL
    timeout: float = Field(default=60.0, gt=0, description="HTTP timeout in seconds")
    # None waits for the next stream event indefinitely
    chunk_timeout: Optional[float] = Field(default=None, gt=0)

    model_config = SettingsConfigDict(
        env_prefix="CHAT_STREAM_",
        env_file=".env",
        extra="ignore",
    )

    @property
    def completions_url(self) -> str:
        return self.base_url.rstrip("/") + CHAT_COMPLETIONS_PATH
