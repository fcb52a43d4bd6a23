"""Response generator protocol.

Defines the interface for the LLM that produces the responses being
cached. The cache treats it as opaque, slow and fallible.

Implementations can include:
- Gemini REST API (default)
- HuggingFace inference API
- A canned responder for tests
"""

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class ResponseGenerator(Protocol):
    """Protocol for text generation services."""

    @property
    def model_name(self) -> str:
        """Return the name/identifier of the model."""
        ...

    async def generate(self, prompt: str, options: dict[str, Any] | None = None) -> str:
        """Generate text for a prompt.

        Args:
            prompt: The full prompt text
            options: Generation options such as ``temperature`` and
                ``max_output_tokens``

        Returns:
            The generated text

        Raises:
            GenerationError: If the generator fails
        """
        ...

    async def is_available(self) -> bool:
        """Check if the generator is configured and reachable."""
        ...
