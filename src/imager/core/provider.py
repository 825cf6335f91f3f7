"""External generation provider boundary.

The orchestrator talks to the provider through one operation::

    generate_content(model_name, api_key, parts, aspect_ratio) -> list[ContentPart]

:class:`GeminiProvider` implements it against the Gemini
``models/{model}:generateContent`` REST endpoint using ``httpx``.  Tests and
alternative backends subclass :class:`GenerationProvider` instead.

Wire format (request)::

    {
      "contents": [{"parts": [{"text": "..."},
                              {"inlineData": {"mimeType": "image/jpeg",
                                              "data": "<base64>"}}]}],
      "generationConfig": {"imageConfig": {"aspectRatio": "9:16"}}
    }

The response's first candidate's ``content.parts`` are converted back into
:class:`ContentPart` objects in order.  Any failure is raised as
:class:`~imager.core.errors.ProviderError` carrying the provider's message.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

import httpx

from .errors import ProviderError
from .models import AspectRatio

logger = logging.getLogger(__name__)

GENERIC_FAILURE_MESSAGE = "Failed to generate image"
MALFORMED_RESPONSE_MESSAGE = "Provider returned a malformed response"


@dataclass(frozen=True)
class ContentPart:
    """One part of a provider request or response.

    A part carries either text or inline (base64) data with its mime type.
    """

    text: str | None = None
    inline_data: str | None = None
    mime_type: str | None = None

    @property
    def has_image(self) -> bool:
        return bool(self.inline_data)

    def to_wire(self) -> dict[str, Any]:
        if self.inline_data is not None:
            return {"inlineData": {"mimeType": self.mime_type, "data": self.inline_data}}
        return {"text": self.text or ""}

    @classmethod
    def from_wire(cls, raw: dict[str, Any]) -> ContentPart:
        inline = raw.get("inlineData") or raw.get("inline_data") or {}
        if not isinstance(inline, dict):
            raise ProviderError(MALFORMED_RESPONSE_MESSAGE)
        return cls(
            text=raw.get("text"),
            inline_data=inline.get("data"),
            mime_type=inline.get("mimeType") or inline.get("mime_type"),
        )


class GenerationProvider(ABC):
    """Interface of an external generative-image service."""

    @abstractmethod
    async def generate_content(
        self,
        model_name: str,
        api_key: str,
        parts: list[ContentPart],
        aspect_ratio: AspectRatio,
    ) -> list[ContentPart]:
        """Run one generation call and return the response parts in order.

        Raises:
            ProviderError: On any transport or provider-level failure.
        """


def _error_message(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or f"Provider returned HTTP {response.status_code}"
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and error.get("message"):
            return str(error["message"])
    return f"Provider returned HTTP {response.status_code}"


def _as_dict(value: Any) -> dict[str, Any]:
    """Return *value* if it is an object, ``{}`` if absent."""
    if value is None:
        return {}
    if not isinstance(value, dict):
        raise ProviderError(MALFORMED_RESPONSE_MESSAGE)
    return value


class GeminiProvider(GenerationProvider):
    """Gemini REST implementation of :class:`GenerationProvider`.

    No timeout is applied: the call resolves on the provider's response or
    on a transport error.

    Args:
        base_url: API root, e.g. ``https://generativelanguage.googleapis.com/v1beta``.
        client: Optional shared ``httpx.AsyncClient``.  When omitted, a client
            is opened and closed around each call.
    """

    def __init__(self, base_url: str, client: httpx.AsyncClient | None = None) -> None:
        self.base_url = base_url.rstrip("/")
        self._client = client

    def _build_payload(self, parts: list[ContentPart], aspect_ratio: AspectRatio) -> dict:
        return {
            "contents": [{"parts": [part.to_wire() for part in parts]}],
            "generationConfig": {"imageConfig": {"aspectRatio": AspectRatio(aspect_ratio).value}},
        }

    async def _post(self, url: str, headers: dict, payload: dict) -> httpx.Response:
        if self._client is not None:
            return await self._client.post(url, headers=headers, json=payload)
        async with httpx.AsyncClient(timeout=None) as client:
            return await client.post(url, headers=headers, json=payload)

    async def generate_content(
        self,
        model_name: str,
        api_key: str,
        parts: list[ContentPart],
        aspect_ratio: AspectRatio,
    ) -> list[ContentPart]:
        url = f"{self.base_url}/models/{model_name}:generateContent"
        headers = {"x-goog-api-key": api_key, "Content-Type": "application/json"}
        payload = self._build_payload(parts, aspect_ratio)

        try:
            response = await self._post(url, headers, payload)
        except httpx.HTTPError as e:
            raise ProviderError(str(e) or GENERIC_FAILURE_MESSAGE) from e

        if response.is_error:
            raise ProviderError(_error_message(response), status_code=response.status_code)

        try:
            body = response.json()
        except ValueError as e:
            raise ProviderError(MALFORMED_RESPONSE_MESSAGE) from e
        if not isinstance(body, dict):
            raise ProviderError(MALFORMED_RESPONSE_MESSAGE)

        candidates = body.get("candidates") or []
        if not candidates:
            feedback = _as_dict(body.get("promptFeedback"))
            block_reason = feedback.get("blockReason")
            if block_reason:
                raise ProviderError(f"Request blocked by provider: {block_reason}")
            return []
        if not isinstance(candidates, list):
            raise ProviderError(MALFORMED_RESPONSE_MESSAGE)

        content = _as_dict(_as_dict(candidates[0]).get("content"))
        raw_parts = content.get("parts") or []
        if not isinstance(raw_parts, list):
            raise ProviderError(MALFORMED_RESPONSE_MESSAGE)
        return [ContentPart.from_wire(raw) for raw in raw_parts if isinstance(raw, dict)]
