# ============================================================================
# FILE: tests/conftest.py
# ============================================================================
"""
Pytest configuration and shared fixtures for testing.
"""

import json
from typing import Any, Callable, Optional

import httpx
import pytest

from medireader.config import Settings
from medireader.devices.catalog import PROFILES
from medireader.devices.fresenius_4008s import PROFILE as FRESENIUS_4008S
from medireader.schemas.devices import ProcessingContext, ProcessingOptions
from medireader.services.device_registry import DeviceRegistry

TEST_IMAGE = "aGVsbG8gZGlhbHlzaXMgbWFjaGluZQ=="


class FakeVisionClient:
    """Stands in for VisionClient: replays canned replies in order."""

    def __init__(self, replies: Optional[list[Any]] = None, model: str = "gpt-4o"):
        self.replies = list(replies or [])
        self.calls: list[dict[str, Any]] = []
        self._model = model

    @property
    def model(self) -> str:
        return self._model

    async def complete(self, image, prompt, max_tokens=None, temperature=None, purpose="image processing"):
        self.calls.append({
            "image": image,
            "prompt": prompt,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "purpose": purpose,
        })
        reply = self.replies.pop(0) if self.replies else ""
        if isinstance(reply, Exception):
            raise reply
        return reply


class FakeRedis:
    """In-memory replacement for the redis.asyncio client."""

    def __init__(self):
        self.store: dict[str, str] = {}
        self.expiry: dict[str, int] = {}

    async def get(self, key):
        return self.store.get(key)

    async def set(self, key, value, ex=None):
        self.store[key] = value
        if ex is not None:
            self.expiry[key] = ex
        return True

    async def aclose(self):
        pass


def chat_completion(content: str) -> dict[str, Any]:
    """Build an OpenAI chat-completions response body."""
    return {
        "id": "chatcmpl-test",
        "choices": [{"index": 0, "message": {"role": "assistant", "content": content}}],
    }


def json_transport(handler: Callable[[httpx.Request], tuple[int, Any]]) -> httpx.MockTransport:
    """MockTransport whose handler returns ``(status, json_body)``."""

    def _handle(request: httpx.Request) -> httpx.Response:
        status, body = handler(request)
        if isinstance(body, str):
            return httpx.Response(status, text=body)
        return httpx.Response(status, content=json.dumps(body), headers={"Content-Type": "application/json"})

    return httpx.MockTransport(_handle)


@pytest.fixture
def settings():
    """Settings isolated from the developer's environment files."""
    return Settings(
        _env_file=None,
        openai_api_key="sk-test",
        openai_base_url="https://vision.test/v1",
        gateway_base_url="https://gateway.test/hdimsAdapterWeb",
        backend_extraction_url="https://gateway.test/hdimsAdapterWeb/extract",
        jwt_secret="test-access-secret",
        jwt_refresh_secret="test-refresh-secret",
        enterprise_max_retries=3,
    )


@pytest.fixture
def fake_vision():
    return FakeVisionClient()


@pytest.fixture
def fake_redis():
    return FakeRedis()


@pytest.fixture
def fresenius_profile():
    return FRESENIUS_4008S


@pytest.fixture
def registry(fake_vision):
    """Registry over every shipped profile, without a detector."""
    return DeviceRegistry(PROFILES, fake_vision)


@pytest.fixture
def make_context():
    """Factory for a ProcessingContext bound to a profile."""

    def _make(profile, **options):
        return ProcessingContext(
            device_model=profile.model,
            image_uri=TEST_IMAGE[:50],
            patient_id="P001",
            device_master_id="DEV001",
            processing_options=ProcessingOptions(**options),
        )

    return _make
