"""
Gemini streaming client.

Thin wrapper over the Google Gen AI SDK (google-genai) exposing one
operation: stream the text of a single prompt as it is generated.

The client is constructed once in the application lifespan and injected into
the query strategies; there is no module-level client instance.
"""

import logging
from typing import AsyncIterator, Optional, Protocol

from google import genai
from google.genai import types

from cardquery.services.errors import LLMNotConfiguredError, LLMProviderError

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-2.5-flash"


class TextStreamProvider(Protocol):
    """Anything that can stream the text of a prompt completion."""

    def stream_text(self, prompt: str) -> AsyncIterator[str]:
        ...


class GeminiStreamClient:
    """Streams Gemini completions chunk by chunk."""

    def __init__(
        self,
        api_key: str,
        model: str = DEFAULT_MODEL,
        temperature: Optional[float] = None,
    ):
        self.model = model
        self.temperature = temperature
        self._client: Optional[genai.Client] = None

        if api_key:
            self._client = genai.Client(api_key=api_key)
            logger.info(f"Gemini client initialized (model={model})")
        else:
            logger.warning(
                "GOOGLE_API_KEY not configured. Query endpoint will report errors. "
                "Please set GOOGLE_API_KEY in your .env file."
            )

    @property
    def is_configured(self) -> bool:
        return self._client is not None

    async def stream_text(self, prompt: str) -> AsyncIterator[str]:
        """
        Yield text fragments of the model's response to `prompt`.

        Raises:
            LLMNotConfiguredError: If no API key was provided
            LLMProviderError: If the provider call fails at any point
        """
        if self._client is None:
            raise LLMNotConfiguredError("Gemini client is not configured (missing GOOGLE_API_KEY)")

        config = None
        if self.temperature is not None:
            config = types.GenerateContentConfig(temperature=self.temperature)

        try:
            stream = await self._client.aio.models.generate_content_stream(
                model=self.model,
                contents=prompt,
                config=config,
            )
            async for chunk in stream:
                text = chunk.text
                if text:
                    yield text
        except Exception as e:
            logger.error(f"Gemini streaming call failed: {e}")
            raise LLMProviderError(f"Gemini streaming call failed: {e}") from e

    def close(self) -> None:
        """Drop the SDK client; called on application shutdown."""
        if self._client is not None:
            logger.info("Releasing Gemini client")
            self._client = None
