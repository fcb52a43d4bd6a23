"""Gemini-based response generator.

Calls the Gemini ``generateContent`` REST endpoint directly over httpx, so
no Google SDK is required.

Requirements:
    - GEMINI_API_KEY set in the environment (or passed explicitly)

Generation options understood:
- temperature
- max_output_tokens
- top_p / top_k
"""

import logging
from typing import Any

import httpx

from wardrobe_cache.config import settings
from wardrobe_cache.exceptions import GenerationError

logger = logging.getLogger(__name__)

OPTION_NAMES = {
    "temperature": "temperature",
    "max_output_tokens": "maxOutputTokens",
    "top_p": "topP",
    "top_k": "topK",
}


class GeminiResponseGenerator:
    """Gemini implementation of the ResponseGenerator protocol.

    This class satisfies the ResponseGenerator protocol through structural
    typing - no explicit inheritance needed.

    Example:
        ```python
        generator = GeminiResponseGenerator.create()
        text = await generator.generate("Suggest an outfit", {"temperature": 0.7})
        ```
    """

    def __init__(
        self,
        api_key: str | None = None,
        model_name: str | None = None,
        base_url: str | None = None,
        timeout: float | None = None,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the Gemini generator.

        Args:
            api_key: Gemini API key. Defaults to settings.gemini_api_key.
            model_name: Gemini model. Defaults to settings.gemini_model.
            base_url: API base URL. Defaults to settings.gemini_base_url.
            timeout: Request timeout in seconds.
            http_client: Pre-configured async client. If None, one is created lazily.
        """
        self._api_key = api_key or settings.gemini_api_key
        self._model_name = model_name or settings.gemini_model
        self._base_url = (base_url or settings.gemini_base_url).rstrip("/")
        self._timeout = timeout or settings.gemini_timeout
        self._client: httpx.AsyncClient | None = http_client

    @property
    def client(self) -> httpx.AsyncClient:
        """Lazy-load the async HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self._timeout,
                limits=httpx.Limits(max_connections=100, max_keepalive_connections=20),
            )
        return self._client

    @classmethod
    def create(
        cls,
        model_name: str | None = None,
        api_key: str | None = None,
    ) -> "GeminiResponseGenerator":
        """Factory method to create GeminiResponseGenerator with defaults.

        Args:
            model_name: Model name. If None, uses settings.
            api_key: API key. If None, uses settings.

        Returns:
            Configured GeminiResponseGenerator
        """
        return cls(api_key=api_key, model_name=model_name)

    @property
    def model_name(self) -> str:
        """Get the model name/identifier."""
        return self._model_name

    @staticmethod
    def build_payload(prompt: str, options: dict[str, Any] | None = None) -> dict[str, Any]:
        """Build the generateContent request body."""
        generation_config = {
            OPTION_NAMES[name]: value
            for name, value in (options or {}).items()
            if name in OPTION_NAMES and value is not None
        }
        payload: dict[str, Any] = {"contents": [{"parts": [{"text": prompt}]}]}
        if generation_config:
            payload["generationConfig"] = generation_config
        return payload

    async def generate(self, prompt: str, options: dict[str, Any] | None = None) -> str:
        """Generate text for a prompt.

        Args:
            prompt: The full prompt text
            options: Generation options

        Returns:
            The generated text

        Raises:
            GenerationError: If the API key is missing, the request fails or
                the response has no text
        """
        if not self._api_key:
            raise GenerationError("GEMINI_API_KEY is not configured")

        url = f"{self._base_url}/models/{self._model_name}:generateContent"

        try:
            response = await self.client.post(
                url,
                headers={"x-goog-api-key": self._api_key},
                json=self.build_payload(prompt, options),
            )
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as e:
            raise GenerationError(f"Gemini API returned HTTP {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise GenerationError(f"Gemini API request failed: {type(e).__name__}") from e
        except ValueError as e:
            raise GenerationError("Gemini API returned a non-JSON body") from e

        try:
            parts = data["candidates"][0]["content"]["parts"]
            text = "".join(part.get("text", "") for part in parts)
        except (KeyError, IndexError, TypeError) as e:
            raise GenerationError(f"Unexpected Gemini response format: {data}") from e

        if not text:
            raise GenerationError("Gemini returned an empty response")

        return text

    async def is_available(self) -> bool:
        """Check if the generator has credentials configured."""
        return bool(self._api_key)

    async def close(self) -> None:
        """Close the async HTTP client.

        Should be called when shutting down the application.
        """
        if self._client is not None:
            await self._client.aclose()
            self._client = None
