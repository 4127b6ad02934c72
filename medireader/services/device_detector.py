"""
Device Detector.

Guesses which dialysis machine a photo shows by asking the vision
model three different questions (overall look, visible text, screen
layout) and taking a weighted vote. Results are cached in Redis so a
burst of photos of the same screen is only classified once.
"""

from __future__ import annotations

import hashlib
from typing import Awaitable, Callable, Optional

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from medireader.config import Settings
from medireader.logging_config import get_logger
from medireader.services.vision_client import VisionClient

logger = get_logger(__name__)

UNKNOWN_DEVICE = "unknown"

# Redis key prefix
DETECTION_KEY = "detection:{}"

# Substring -> device key, checked in order.
DEVICE_MARKERS: tuple[tuple[tuple[str, ...], str], ...] = (
    (("surdial55plus", "surdial 55 plus", "55plus", "55 plus"), "nipro-surdial55plus"),
    (("surdialx", "surdial x", "surdial-x"), "nipro-surdialx"),
    (("fresenius4008s", "4008s", "4008 s"), "fresenius-4008s"),
    (("fresenius4008b", "4008b", "4008 b"), "fresenius-4008b"),
    (("nikkisodbb27", "dbb27", "dbb-27", "dbb 27"), "nikkiso-dbb27"),
)

VISUAL_PROMPT = """Look at this dialysis machine display image and identify the device model.

1. NIPRO SURDIAL 55 PLUS: dark blue background with yellow/white text, simple LCD-style display. Answer: surdial55plus
2. NIPRO SURDIALX: light blue/cyan background, modern touchscreen with bar graphs. Answer: surdialx
3. FRESENIUS 4008 S: beige housing, blue "Dialysis" header tabs, vertical orange bar gauges on the left, black digital displays on the right. Answer: fresenius4008s
4. FRESENIUS 4008 B: like the 4008 S, may show additional substitution displays. Answer: fresenius4008b
5. NIKKISO DBB-27: touchscreen with NIKKISO branding and digital parameter displays. Answer: nikkisodbb27

Answer with ONLY: surdial55plus OR surdialx OR fresenius4008s OR fresenius4008b OR nikkisodbb27"""

TEXT_PROMPT = """Extract ANY visible text in this medical device display image that might indicate the device model.

Look specifically for:
1. Model names: "Surdial 55 Plus", "SurdialX", "4008 S", "4008 B", "DBB-27"
2. Brand text: "NIPRO", "Fresenius", "NIKKISO"
3. Version numbers or model identifiers

Return ONLY the extracted text, one item per line."""

LAYOUT_PROMPT = """Judge ONLY the layout and visual style of this dialysis machine display.

SURDIAL 55 PLUS: dark blue background, bright yellow/white text, rectangular text boxes, LCD style.
SURDIALX: light blue/cyan background, touchscreen, horizontal pressure bar graphs, "MC:NO XXXX" at the top.
4008 S / 4008 B: beige housing, vertical LED bar gauges, black digital boxes.
DBB-27: NIKKISO touchscreen with digital parameter boxes.

Answer with ONLY one of: surdial55plus, surdialx, fresenius4008s, fresenius4008b, nikkisodbb27"""


def parse_detection_result(text: str) -> str:
    """Map a free-text answer onto a device key, or ``unknown``."""
    folded = (text or "").strip().lower()
    for markers, device_key in DEVICE_MARKERS:
        if any(marker in folded for marker in markers):
            return device_key
    return UNKNOWN_DEVICE


def select_best_device(votes: list[tuple[str, float]], fallback: str) -> str:
    """Sum weights per device and return the heaviest; ties keep the first seen."""
    scores: dict[str, float] = {}
    for device_key, weight in votes:
        scores[device_key] = scores.get(device_key, 0.0) + weight

    best, best_score = fallback, 0.0
    for device_key, score in scores.items():
        if score > best_score:
            best, best_score = device_key, score
    return best


class DetectionCache:
    """
    Redis-backed cache of image fingerprint -> detected device key.

    Redis errors are logged and treated as cache misses.
    """

    def __init__(self, redis_url: str, ttl_seconds: int) -> None:
        self._redis_url = redis_url
        self._ttl = ttl_seconds
        self._redis: Optional[aioredis.Redis] = None

    @property
    def ttl_seconds(self) -> int:
        return self._ttl

    async def initialize(self) -> None:
        """Connect to Redis."""
        self._redis = aioredis.from_url(self._redis_url, decode_responses=True)
        logger.info("detection_cache_initialized", ttl_seconds=self._ttl)

    async def close(self) -> None:
        """Cleanup connections."""
        if self._redis:
            await self._redis.aclose()

    @property
    def redis(self) -> aioredis.Redis:
        if not self._redis:
            raise RuntimeError("DetectionCache not initialized. Call initialize() first.")
        return self._redis

    @staticmethod
    def fingerprint(image: str) -> str:
        return hashlib.sha256(image.encode("utf-8")).hexdigest()[:32]

    async def get(self, image: str) -> Optional[str]:
        try:
            return await self.redis.get(DETECTION_KEY.format(self.fingerprint(image)))
        except (RedisError, RuntimeError, OSError) as e:
            logger.warning("detection_cache_read_failed", error=str(e))
            return None

    async def set(self, image: str, device_key: str) -> None:
        try:
            await self.redis.set(
                DETECTION_KEY.format(self.fingerprint(image)),
                device_key,
                ex=self._ttl,
            )
        except (RedisError, RuntimeError, OSError) as e:
            logger.warning("detection_cache_write_failed", error=str(e))


class DeviceDetector:
    """
    Weighted-vote device classifier.

    Args:
        vision_client: Used for the three classification prompts.
        settings: Supplies the fallback device key.
        cache: Optional detection cache; detection is uncached without it.
    """

    def __init__(
        self,
        vision_client: VisionClient,
        settings: Settings,
        cache: Optional[DetectionCache] = None,
    ) -> None:
        self._vision = vision_client
        self._fallback = settings.fallback_device_key
        self._cache = cache
        self._methods: tuple[tuple[str, Callable[[str], Awaitable[str]], float], ...] = (
            ("visual", self.detect_by_visual_analysis, 0.4),
            ("text", self.detect_by_text_analysis, 0.3),
            ("layout", self.detect_by_layout_analysis, 0.3),
        )

    @property
    def fallback_key(self) -> str:
        return self._fallback

    async def detect(self, image: str, use_cache: bool = True) -> str:
        """
        Return the most likely device key for ``image``.

        Failing methods abstain; if no method votes, the fallback key
        is returned.
        """
        if use_cache and self._cache is not None:
            cached = await self._cache.get(image)
            if cached:
                logger.info("device_detected", device=cached, cached=True)
                return cached

        votes: list[tuple[str, float]] = []
        for name, method, weight in self._methods:
            try:
                result = await method(image)
            except Exception as e:
                logger.warning("detection_method_failed", method=name, error=str(e))
                continue
            if result != UNKNOWN_DEVICE:
                votes.append((result, weight))
                logger.debug("detection_vote", method=name, device=result, weight=weight)

        device_key = select_best_device(votes, self._fallback)

        if use_cache and self._cache is not None:
            await self._cache.set(image, device_key)

        logger.info("device_detected", device=device_key, votes=len(votes), cached=False)
        return device_key

    async def detect_by_visual_analysis(self, image: str) -> str:
        reply = await self._vision.complete(
            image, VISUAL_PROMPT, max_tokens=50, temperature=0.0, purpose="device detection"
        )
        return parse_detection_result(reply)

    async def detect_by_text_analysis(self, image: str) -> str:
        reply = await self._vision.complete(
            image, TEXT_PROMPT, max_tokens=200, temperature=0.0, purpose="text analysis"
        )
        return parse_detection_result(reply)

    async def detect_by_layout_analysis(self, image: str) -> str:
        reply = await self._vision.complete(
            image, LAYOUT_PROMPT, max_tokens=50, temperature=0.0, purpose="layout analysis"
        )
        return parse_detection_result(reply)

    def get_detection_stats(self) -> dict:
        return {
            "methods": [{"name": name, "weight": weight} for name, _, weight in self._methods],
            "fallbackDevice": self._fallback,
            "cacheEnabled": self._cache is not None,
            "cacheTtlSeconds": self._cache.ttl_seconds if self._cache else 0,
        }
