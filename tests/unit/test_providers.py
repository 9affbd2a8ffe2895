from __future__ import annotations

import asyncio
import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from cooked.services.errors import ProviderTransportError, SchemaViolation, UpstreamHttpError
from cooked.services.images import ImagePayload
from cooked.services.providers import (
    ANTHROPIC_VERSION,
    AnthropicProvider,
    ExtractionPayload,
    GeminiProvider,
    OpenAIProvider,
)

RECIPE_JSON = json.dumps({
    "title": "Omelette",
    "ingredients": [{"name": "eggs", "quantity": "2"}],
    "steps": [{"order": 1, "instruction": "Whisk and fry."}],
})


def _client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


def _run(provider_factory, handler, payload: ExtractionPayload, credential: str = "secret"):
    async def scenario():
        async with _client(handler) as client:
            return await provider_factory(client).try_extract(payload, credential)

    return asyncio.run(scenario())


class TestAnthropicProvider:
    def test_request_shape_and_reply_parsing(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={
                "content": [{"type": "text", "text": f"Here it is: {RECIPE_JSON}"}],
            })

        result = _run(AnthropicProvider, handler, ExtractionPayload(prompt="PROMPT"))

        assert result.title == "Omelette"
        request = seen[0]
        assert request.headers["x-api-key"] == "secret"
        assert request.headers["anthropic-version"] == ANTHROPIC_VERSION
        body = json.loads(request.content)
        assert body["model"] == "claude-sonnet-4-20250514"
        assert body["max_tokens"] == 2048
        assert body["messages"][0]["content"] == "PROMPT"

    def test_images_become_base64_blocks(self) -> None:
        seen: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(json.loads(request.content))
            return httpx.Response(200, json={"content": [{"type": "text", "text": RECIPE_JSON}]})

        image = ImagePayload(data=b"abc", media_type="image/png")
        _run(AnthropicProvider, handler, ExtractionPayload(prompt="P", images=[image]))

        blocks = seen[0]["messages"][0]["content"]
        assert blocks[0]["type"] == "image"
        assert blocks[0]["source"] == {"type": "base64", "media_type": "image/png", "data": "YWJj"}
        assert blocks[-1] == {"type": "text", "text": "P"}

    def test_non_2xx_raises_upstream_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(529, text="overloaded")

        with pytest.raises(UpstreamHttpError) as exc_info:
            _run(AnthropicProvider, handler, ExtractionPayload(prompt="P"))
        assert exc_info.value.status_code == 529
        assert exc_info.value.body == "overloaded"
        assert exc_info.value.provider == "Anthropic"

    def test_transport_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectTimeout("timed out", request=request)

        with pytest.raises(ProviderTransportError):
            _run(AnthropicProvider, handler, ExtractionPayload(prompt="P"))

    def test_reply_without_text_block(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"content": []})

        with pytest.raises(SchemaViolation):
            _run(AnthropicProvider, handler, ExtractionPayload(prompt="P"))


class TestOpenAIProvider:
    def test_request_shape_and_reply_parsing(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"choices": [{"message": {"content": RECIPE_JSON}}]})

        result = _run(OpenAIProvider, handler, ExtractionPayload(prompt="PROMPT"))

        assert result.steps[0].instruction == "Whisk and fry."
        assert seen[0].headers["authorization"] == "Bearer secret"
        body = json.loads(seen[0].content)
        assert body["model"] == "gpt-4o-mini"
        assert body["temperature"] == 0.3
        assert body["response_format"] == {"type": "json_object"}

    def test_images_become_data_urls(self) -> None:
        seen: list[dict] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(json.loads(request.content))
            return httpx.Response(200, json={"choices": [{"message": {"content": RECIPE_JSON}}]})

        image = ImagePayload(data=b"abc", media_type="image/jpeg")
        _run(OpenAIProvider, handler, ExtractionPayload(prompt="P", images=[image]))

        parts = seen[0]["messages"][0]["content"]
        assert parts[0] == {"type": "text", "text": "P"}
        assert parts[1]["image_url"]["url"] == "data:image/jpeg;base64,YWJj"

    def test_missing_choices(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"choices": []})

        with pytest.raises(SchemaViolation):
            _run(OpenAIProvider, handler, ExtractionPayload(prompt="P"))

    def test_non_json_body(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, text="<html>gateway</html>")

        with pytest.raises(SchemaViolation):
            _run(OpenAIProvider, handler, ExtractionPayload(prompt="P"))

    def test_rate_limited(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(429, json={"error": "slow down"})

        with pytest.raises(UpstreamHttpError) as exc_info:
            _run(OpenAIProvider, handler, ExtractionPayload(prompt="P"))
        assert exc_info.value.status_code == 429


class TestGeminiProvider:
    def _patched_client(self, response) -> MagicMock:
        client = MagicMock()
        client.aio.models.generate_content = AsyncMock(return_value=response)
        return client

    def test_uses_sdk_with_json_mime_type(self) -> None:
        client = self._patched_client(SimpleNamespace(text=RECIPE_JSON))
        with patch("cooked.services.providers.genai.Client", return_value=client) as client_cls:
            result = asyncio.run(GeminiProvider().try_extract(ExtractionPayload(prompt="P"), "g-key"))

        assert result.title == "Omelette"
        client_cls.assert_called_once_with(api_key="g-key")
        kwargs = client.aio.models.generate_content.call_args.kwargs
        assert kwargs["model"] == "gemini-2.0-flash"
        assert kwargs["contents"] == ["P"]
        assert kwargs["config"].response_mime_type == "application/json"
        assert kwargs["config"].temperature == 0.3

    def test_images_are_sent_before_prompt(self) -> None:
        client = self._patched_client(SimpleNamespace(text=RECIPE_JSON))
        image = ImagePayload(data=b"abc", media_type="image/png")
        with patch("cooked.services.providers.genai.Client", return_value=client):
            asyncio.run(GeminiProvider().try_extract(ExtractionPayload(prompt="P", images=[image]), "g-key"))

        contents = client.aio.models.generate_content.call_args.kwargs["contents"]
        assert len(contents) == 2
        assert contents[-1] == "P"

    def test_empty_text_is_schema_violation(self) -> None:
        client = self._patched_client(SimpleNamespace(text=None))
        with patch("cooked.services.providers.genai.Client", return_value=client):
            with pytest.raises(SchemaViolation):
                asyncio.run(GeminiProvider().try_extract(ExtractionPayload(prompt="P"), "g-key"))

    def test_client_is_reused_per_key(self) -> None:
        client = self._patched_client(SimpleNamespace(text=RECIPE_JSON))
        provider = GeminiProvider()

        async def scenario() -> None:
            await provider.try_extract(ExtractionPayload(prompt="P"), "g-key")
            await provider.try_extract(ExtractionPayload(prompt="P"), "g-key")
            await provider.try_extract(ExtractionPayload(prompt="P"), "other-key")

        with patch("cooked.services.providers.genai.Client", return_value=client) as client_cls:
            asyncio.run(scenario())

        assert [c.kwargs["api_key"] for c in client_cls.call_args_list] == ["g-key", "other-key"]
        assert client.aio.models.generate_content.await_count == 3
