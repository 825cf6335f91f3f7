"""Tests for imager.core.provider - the Gemini REST provider.

All HTTP traffic goes through ``httpx.MockTransport`` so no network access
occurs.  Tests cover request shape (URL, auth header, parts, aspect ratio),
response part extraction, and the mapping of every failure to ProviderError.
"""

from __future__ import annotations

import asyncio
import json

import httpx
import pytest

from imager.core.errors import ProviderError
from imager.core.models import AspectRatio
from imager.core.provider import ContentPart, GeminiProvider

BASE_URL = "https://provider.test/v1beta"


def _run(provider: GeminiProvider, parts=None, aspect_ratio=AspectRatio.PORTRAIT):
    parts = parts or [ContentPart(text="a red fox")]
    return asyncio.run(provider.generate_content("model-x", "key-x", parts, aspect_ratio))


def _provider(handler) -> GeminiProvider:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return GeminiProvider(BASE_URL, client=client)


def _image_response(*parts: dict) -> dict:
    return {"candidates": [{"content": {"parts": list(parts)}}]}


class TestContentPart:
    def test_text_to_wire(self):
        assert ContentPart(text="hi").to_wire() == {"text": "hi"}

    def test_inline_to_wire(self):
        part = ContentPart(inline_data="AAAA", mime_type="image/jpeg")
        assert part.to_wire() == {"inlineData": {"mimeType": "image/jpeg", "data": "AAAA"}}

    def test_from_wire_accepts_snake_case(self):
        part = ContentPart.from_wire({"inline_data": {"mime_type": "image/png", "data": "AA"}})
        assert part.has_image
        assert part.mime_type == "image/png"

    def test_text_part_has_no_image(self):
        assert not ContentPart.from_wire({"text": "hello"}).has_image


class TestRequestShape:
    def test_url_headers_and_payload(self):
        captured: dict = {}

        def handler(request: httpx.Request) -> httpx.Response:
            captured["url"] = str(request.url)
            captured["key"] = request.headers["x-goog-api-key"]
            captured["body"] = json.loads(request.content)
            return httpx.Response(200, json=_image_response({"inlineData": {"data": "AA"}}))

        parts = [
            ContentPart(text="make it blue"),
            ContentPart(inline_data="SRC", mime_type="image/jpeg"),
        ]
        _run(_provider(handler), parts, AspectRatio.LANDSCAPE)

        assert captured["url"] == f"{BASE_URL}/models/model-x:generateContent"
        assert captured["key"] == "key-x"
        assert captured["body"]["contents"][0]["parts"] == [
            {"text": "make it blue"},
            {"inlineData": {"mimeType": "image/jpeg", "data": "SRC"}},
        ]
        assert captured["body"]["generationConfig"] == {"imageConfig": {"aspectRatio": "16:9"}}

    def test_aspect_ratio_not_in_text(self):
        captured: dict = {}

        def handler(request: httpx.Request) -> httpx.Response:
            captured["body"] = json.loads(request.content)
            return httpx.Response(200, json=_image_response())

        _run(_provider(handler))
        assert "9:16" not in captured["body"]["contents"][0]["parts"][0]["text"]


class TestResponseParsing:
    def test_returns_parts_in_order(self):
        def handler(request):
            return httpx.Response(
                200,
                json=_image_response(
                    {"text": "Here you go"},
                    {"inlineData": {"mimeType": "image/png", "data": "IMG1"}},
                    {"inlineData": {"mimeType": "image/png", "data": "IMG2"}},
                ),
            )

        parts = _run(_provider(handler))
        assert [p.text for p in parts] == ["Here you go", None, None]
        assert [p.inline_data for p in parts] == [None, "IMG1", "IMG2"]

    def test_no_candidates_returns_empty(self):
        parts = _run(_provider(lambda request: httpx.Response(200, json={"candidates": []})))
        assert parts == []

    def test_blocked_prompt(self):
        def handler(request):
            return httpx.Response(200, json={"promptFeedback": {"blockReason": "SAFETY"}})

        with pytest.raises(ProviderError, match="SAFETY"):
            _run(_provider(handler))


class TestFailures:
    def test_error_message_from_provider(self):
        def handler(request):
            return httpx.Response(
                400, json={"error": {"code": 400, "message": "API key not valid."}}
            )

        with pytest.raises(ProviderError, match="API key not valid.") as exc_info:
            _run(_provider(handler))
        assert exc_info.value.status_code == 400

    def test_quota_error(self):
        def handler(request):
            return httpx.Response(429, json={"error": {"message": "Quota exceeded"}})

        with pytest.raises(ProviderError, match="Quota exceeded") as exc_info:
            _run(_provider(handler))
        assert exc_info.value.status_code == 429

    def test_error_without_message_uses_status(self):
        def handler(request):
            return httpx.Response(503, json={})

        with pytest.raises(ProviderError, match="HTTP 503"):
            _run(_provider(handler))

    def test_malformed_json(self):
        def handler(request):
            return httpx.Response(200, content=b"<html>oops</html>")

        with pytest.raises(ProviderError, match="malformed"):
            _run(_provider(handler))

    def test_transport_error(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        with pytest.raises(ProviderError, match="connection refused"):
            _run(_provider(handler))

    @pytest.mark.parametrize(
        "body",
        [
            {"candidates": [{"content": {"parts": [{"inlineData": "abc"}]}}]},
            {"candidates": [{"content": "not-an-object"}]},
            {"candidates": ["not-an-object"]},
            {"candidates": {"content": {}}},
            {"candidates": [{"content": {"parts": "abc"}}]},
            {"promptFeedback": "SAFETY"},
        ],
    )
    def test_unexpected_shapes_are_malformed(self, body):
        with pytest.raises(ProviderError, match="Provider returned a malformed response"):
            _run(_provider(lambda request: httpx.Response(200, json=body)))
