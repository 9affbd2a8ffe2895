from __future__ import annotations

import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any

import httpx
from google import genai
from google.genai import errors as genai_errors
from google.genai import types as genai_types

from cooked.app.domain.models import ParsedRecipeData

from .errors import ProviderTransportError, SchemaViolation, UpstreamHttpError
from .images import ImagePayload
from .validator import parse_recipe_reply

logger = logging.getLogger(__name__)

ANTHROPIC_URL = "https://api.anthropic.com/v1/messages"
ANTHROPIC_VERSION = "2023-06-01"
OPENAI_URL = "https://api.openai.com/v1/chat/completions"


@dataclass(frozen=True)
class ExtractionPayload:
    """What a provider is asked to read: a prompt and, optionally, images."""
    prompt: str
    images: list[ImagePayload] = field(default_factory=list)

    @property
    def has_images(self) -> bool:
        return bool(self.images)


class ExtractionProvider(ABC):
    """
    One AI vendor behind the extraction capability.

    Implementations keep all vendor-specific request and response shaping
    inside `try_extract` and report failures only as ProviderError subclasses.
    """

    name: str = "provider"
    supports_images: bool = True

    @abstractmethod
    async def try_extract(self, payload: ExtractionPayload, credential: str) -> ParsedRecipeData:
        pass


class HttpExtractionProvider(ExtractionProvider):
    def __init__(self, client: httpx.AsyncClient, model: str) -> None:
        self.client = client
        self.model = model

    async def _post_json(self, url: str, headers: dict[str, str], body: dict[str, Any]) -> dict[str, Any]:
        try:
            response = await self.client.post(url, headers=headers, json=body)
        except httpx.HTTPError as error:
            raise ProviderTransportError(self.name, str(error) or type(error).__name__) from error

        if not response.is_success:
            raise UpstreamHttpError(self.name, response.status_code, response.text)

        try:
            data = response.json()
        except (json.JSONDecodeError, ValueError) as error:
            raise SchemaViolation(f"{self.name} returned a non-JSON body") from error
        if not isinstance(data, dict):
            raise SchemaViolation(f"{self.name} returned an unexpected body")
        return data


class AnthropicProvider(HttpExtractionProvider):
    name = "Anthropic"

    def __init__(self, client: httpx.AsyncClient, model: str = "claude-sonnet-4-20250514", max_tokens: int = 2048) -> None:
        super().__init__(client, model)
        self.max_tokens = max_tokens

    def _content(self, payload: ExtractionPayload) -> str | list[dict[str, Any]]:
        if not payload.has_images:
            return payload.prompt
        blocks: list[dict[str, Any]] = [
            {
                "type": "image",
                "source": {"type": "base64", "media_type": image.media_type, "data": image.to_base64()},
            }
            for image in payload.images
        ]
        blocks.append({"type": "text", "text": payload.prompt})
        return blocks

    async def try_extract(self, payload: ExtractionPayload, credential: str) -> ParsedRecipeData:
        data = await self._post_json(
            ANTHROPIC_URL,
            headers={
                "x-api-key": credential,
                "anthropic-version": ANTHROPIC_VERSION,
                "content-type": "application/json",
            },
            body={
                "model": self.model,
                "max_tokens": self.max_tokens,
                "messages": [{"role": "user", "content": self._content(payload)}],
            },
        )
        content = data.get("content")
        text = None
        if isinstance(content, list):
            text = next(
                (block.get("text") for block in content if isinstance(block, dict) and block.get("type") == "text"),
                None,
            )
        return parse_recipe_reply(text)


class OpenAIProvider(HttpExtractionProvider):
    name = "OpenAI"

    def __init__(self, client: httpx.AsyncClient, model: str = "gpt-4o-mini", temperature: float = 0.3) -> None:
        super().__init__(client, model)
        self.temperature = temperature

    def _content(self, payload: ExtractionPayload) -> str | list[dict[str, Any]]:
        if not payload.has_images:
            return payload.prompt
        parts: list[dict[str, Any]] = [{"type": "text", "text": payload.prompt}]
        parts.extend(
            {"type": "image_url", "image_url": {"url": image.to_data_url()}}
            for image in payload.images
        )
        return parts

    async def try_extract(self, payload: ExtractionPayload, credential: str) -> ParsedRecipeData:
        data = await self._post_json(
            OPENAI_URL,
            headers={"Authorization": f"Bearer {credential}", "Content-Type": "application/json"},
            body={
                "model": self.model,
                "messages": [{"role": "user", "content": self._content(payload)}],
                "temperature": self.temperature,
                "response_format": {"type": "json_object"},
            },
        )
        try:
            text = data["choices"][0]["message"]["content"]
        except (KeyError, IndexError, TypeError) as error:
            raise SchemaViolation("No content in OpenAI response") from error
        return parse_recipe_reply(text)


class GeminiProvider(ExtractionProvider):
    name = "Gemini"

    def __init__(self, model: str = "gemini-2.0-flash", temperature: float = 0.3) -> None:
        self.model = model
        self.temperature = temperature
        self._clients: dict[str, genai.Client] = {}

    def _client(self, credential: str) -> genai.Client:
        client = self._clients.get(credential)
        if client is None:
            client = self._clients[credential] = genai.Client(api_key=credential)
        return client

    def _contents(self, payload: ExtractionPayload) -> list[Any]:
        parts: list[Any] = [
            genai_types.Part.from_bytes(data=image.data, mime_type=image.media_type)
            for image in payload.images
        ]
        parts.append(payload.prompt)
        return parts

    async def try_extract(self, payload: ExtractionPayload, credential: str) -> ParsedRecipeData:
        try:
            response = await self._client(credential).aio.models.generate_content(
                model=self.model,
                contents=self._contents(payload),
                config=genai_types.GenerateContentConfig(
                    temperature=self.temperature,
                    response_mime_type="application/json",
                ),
            )
        except genai_errors.APIError as error:
            status_code = getattr(error, "code", None) or 502
            raise UpstreamHttpError(self.name, int(status_code), str(getattr(error, "message", "") or error)) from error
        except httpx.HTTPError as error:
            raise ProviderTransportError(self.name, str(error) or type(error).__name__) from error

        text = getattr(response, "text", None)
        if not text:
            raise SchemaViolation("No content in Gemini response")
        return parse_recipe_reply(text)
