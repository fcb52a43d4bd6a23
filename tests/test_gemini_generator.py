"""
Tests for the Gemini generator, using httpx's mock transport.
"""

import json

import httpx
import pytest

from wardrobe_cache.exceptions import GenerationError
from wardrobe_cache.repositories import GeminiResponseGenerator


def make_generator(handler, api_key="test-key") -> GeminiResponseGenerator:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return GeminiResponseGenerator(
        api_key=api_key,
        model_name="gemini-test",
        base_url="https://gemini.example/v1beta/",
        http_client=client,
    )


def gemini_reply(text: str) -> dict:
    return {"candidates": [{"content": {"parts": [{"text": text}]}}]}


class TestGeminiResponseGenerator:
    def test_build_payload(self):
        payload = GeminiResponseGenerator.build_payload(
            "hello", {"temperature": 0.7, "max_output_tokens": 1500, "unknown": 1, "top_p": None}
        )
        assert payload == {
            "contents": [{"parts": [{"text": "hello"}]}],
            "generationConfig": {"temperature": 0.7, "maxOutputTokens": 1500},
        }

    def test_build_payload_without_options(self):
        assert "generationConfig" not in GeminiResponseGenerator.build_payload("hello")

    @pytest.mark.asyncio
    async def test_generate(self):
        seen = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["url"] = str(request.url)
            seen["api_key"] = request.headers.get("x-goog-api-key")
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json=gemini_reply('{"name": "Look A"}'))

        generator = make_generator(handler)
        text = await generator.generate("Suggest an outfit", {"temperature": 0.5})

        assert text == '{"name": "Look A"}'
        assert seen["url"].startswith(
            "https://gemini.example/v1beta/models/gemini-test:generateContent"
        )
        assert "test-key" not in seen["url"]
        assert seen["api_key"] == "test-key"
        assert seen["body"]["generationConfig"] == {"temperature": 0.5}
        await generator.close()

    @pytest.mark.asyncio
    async def test_http_error(self):
        generator = make_generator(lambda request: httpx.Response(429, json={"error": "quota"}))

        with pytest.raises(GenerationError):
            await generator.generate("prompt")

    @pytest.mark.asyncio
    async def test_http_error_does_not_expose_api_key(self):
        generator = make_generator(
            lambda request: httpx.Response(400, json={"error": "bad request"}),
            api_key="SECRET-KEY-123",
        )

        with pytest.raises(GenerationError) as exc_info:
            await generator.generate("prompt")

        assert "SECRET-KEY-123" not in str(exc_info.value)
        assert "400" in str(exc_info.value)

    @pytest.mark.asyncio
    async def test_non_json_body(self):
        generator = make_generator(lambda request: httpx.Response(200, text="<html>oops</html>"))

        with pytest.raises(GenerationError):
            await generator.generate("prompt")

    @pytest.mark.asyncio
    async def test_unexpected_format(self):
        generator = make_generator(lambda request: httpx.Response(200, json={"candidates": []}))

        with pytest.raises(GenerationError):
            await generator.generate("prompt")

    @pytest.mark.asyncio
    async def test_empty_text(self):
        generator = make_generator(lambda request: httpx.Response(200, json=gemini_reply("")))

        with pytest.raises(GenerationError):
            await generator.generate("prompt")

    @pytest.mark.asyncio
    async def test_missing_api_key(self, monkeypatch):
        generator = make_generator(lambda request: httpx.Response(200), api_key=None)
        monkeypatch.setattr(generator, "_api_key", None)

        with pytest.raises(GenerationError):
            await generator.generate("prompt")
        assert await generator.is_available() is False
