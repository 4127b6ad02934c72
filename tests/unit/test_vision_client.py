# ============================================================================
# tests/unit/test_vision_client.py
# ============================================================================
"""
Tests for the OpenAI vision client and image encoding helpers
"""

import json

import pytest

from medireader.errors import ApiKeyMissingError, ErrorCode, ExtractionCallError, MalformedOutputError
from medireader.services.vision_client import (
    VisionClient,
    encode_image,
    to_data_url,
    to_image_bytes,
)
from tests.conftest import TEST_IMAGE, chat_completion, json_transport


class TestImageHelpers:
    """Test base64 and data URL handling"""

    def test_data_url_wrapping(self):
        """Test bare payloads get a JPEG prefix and data URLs pass through"""
        assert to_data_url("abc") == "data:image/jpeg;base64,abc"
        assert to_data_url("data:image/png;base64,abc") == "data:image/png;base64,abc"

    def test_bytes_roundtrip(self):
        """Test decoding accepts both forms"""
        encoded = encode_image(b"\xff\xd8 jpeg")
        assert to_image_bytes(encoded) == b"\xff\xd8 jpeg"
        assert to_image_bytes(to_data_url(encoded)) == b"\xff\xd8 jpeg"


class TestVisionClient:
    """Test chat-completions calls"""

    @pytest.mark.asyncio
    async def test_request_shape(self, settings):
        """Test URL, auth header and message body"""
        seen = {}

        def handler(request):
            seen["url"] = str(request.url)
            seen["auth"] = request.headers["Authorization"]
            seen["body"] = json.loads(request.content)
            return 200, chat_completion("[]")

        client = VisionClient(settings, transport=json_transport(handler))
        reply = await client.complete(TEST_IMAGE, "read the screen")

        assert reply == "[]"
        assert seen["url"] == "https://vision.test/v1/chat/completions"
        assert seen["auth"] == "Bearer sk-test"
        body = seen["body"]
        assert body["model"] == "gpt-4o"
        assert body["max_tokens"] == 2000
        assert body["temperature"] == 0.1
        content = body["messages"][0]["content"]
        assert content[0] == {"type": "text", "text": "read the screen"}
        assert content[1]["image_url"]["url"].startswith("data:image/jpeg;base64,")
        assert content[1]["image_url"]["detail"] == "high"

    @pytest.mark.asyncio
    async def test_overrides(self, settings):
        """Test per-call token and temperature overrides"""
        seen = {}

        def handler(request):
            seen.update(json.loads(request.content))
            return 200, chat_completion("surdialx")

        client = VisionClient(settings, transport=json_transport(handler))
        await client.complete(TEST_IMAGE, "which device?", max_tokens=50, temperature=0.0)

        assert seen["max_tokens"] == 50
        assert seen["temperature"] == 0.0

    @pytest.mark.asyncio
    async def test_error_status(self, settings):
        """Test non-2xx replies raise with the API's own message"""
        body = {"error": {"message": "Invalid image", "type": "invalid_request_error"}}
        client = VisionClient(settings, transport=json_transport(lambda r: (400, body)))

        with pytest.raises(ExtractionCallError) as exc:
            await client.complete(TEST_IMAGE, "p")

        assert exc.value.code == ErrorCode.OPENAI_API_ERROR
        assert exc.value.upstream_status == 400
        assert exc.value.message == "OpenAI API Error: 400 - Invalid image"
        assert exc.value.status_code == 502

    @pytest.mark.asyncio
    async def test_error_body_truncated(self, settings):
        """Test long error bodies are cut to 200 characters"""
        client = VisionClient(settings, transport=json_transport(lambda r: (500, "e" * 1000)))

        with pytest.raises(ExtractionCallError) as exc:
            await client.complete(TEST_IMAGE, "p")

        assert len(exc.value.body) == 200

    @pytest.mark.asyncio
    async def test_missing_key(self, settings):
        """Test calls fail fast without an API key"""
        settings.openai_api_key = ""
        client = VisionClient(settings, transport=json_transport(lambda r: (200, chat_completion(""))))

        with pytest.raises(ApiKeyMissingError) as exc:
            await client.complete(TEST_IMAGE, "p", purpose="device detection")

        assert exc.value.status_code == 503
        assert "device detection" in exc.value.message

    @pytest.mark.asyncio
    async def test_null_content(self, settings):
        """Test a null message content becomes an empty string"""
        body = {"choices": [{"message": {"role": "assistant", "content": None}}]}
        client = VisionClient(settings, transport=json_transport(lambda r: (200, body)))
        assert await client.complete(TEST_IMAGE, "p") == ""

    @pytest.mark.parametrize("status,body", [
        (200, {"object": "error"}),
        (200, {"choices": []}),
        (200, "<html>gateway page</html>"),
    ])
    @pytest.mark.asyncio
    async def test_unexpected_success_body(self, settings, status, body):
        """Test 2xx replies without a chat completion become typed errors"""
        client = VisionClient(settings, transport=json_transport(lambda r: (status, body)))

        with pytest.raises(MalformedOutputError) as exc:
            await client.complete(TEST_IMAGE, "p")

        assert exc.value.code == ErrorCode.PROCESSING_FAILED
        assert exc.value.message == "Invalid JSON response from OpenAI API"
