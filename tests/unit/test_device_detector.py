# ============================================================================
# tests/unit/test_device_detector.py
# ============================================================================
"""
Tests for weighted-vote device detection and the Redis detection cache
"""

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from medireader.errors import ExtractionCallError
from medireader.services.device_detector import (
    DETECTION_KEY,
    UNKNOWN_DEVICE,
    DetectionCache,
    DeviceDetector,
    parse_detection_result,
    select_best_device,
)
from tests.conftest import TEST_IMAGE, FakeVisionClient


@pytest.fixture
def cache(fake_redis):
    cache = DetectionCache("redis://unused", ttl_seconds=1800)
    cache._redis = fake_redis
    return cache


class TestParseDetectionResult:
    """Test free-text answer mapping"""

    @pytest.mark.parametrize("text,expected", [
        ("surdial55plus", "nipro-surdial55plus"),
        ("NIPRO Surdial 55 Plus", "nipro-surdial55plus"),
        ("surdialx", "nipro-surdialx"),
        ("  Fresenius4008S\n", "fresenius-4008s"),
        ("This looks like a 4008 B", "fresenius-4008b"),
        ("NIKKISO DBB-27", "nikkiso-dbb27"),
    ])
    def test_known_answers(self, text, expected):
        """Test markers are matched case-insensitively"""
        assert parse_detection_result(text) == expected

    @pytest.mark.parametrize("text", ["", "no idea", "Baxter AK 96"])
    def test_unknown_answers(self, text):
        """Test unrecognized answers abstain"""
        assert parse_detection_result(text) == UNKNOWN_DEVICE


class TestSelectBestDevice:
    """Test weighted voting"""

    def test_heaviest_wins(self):
        """Test two lighter votes beat one heavier vote"""
        votes = [("fresenius-4008s", 0.4), ("nikkiso-dbb27", 0.3), ("nikkiso-dbb27", 0.3)]
        assert select_best_device(votes, "nipro-surdialx") == "nikkiso-dbb27"

    def test_tie_keeps_first(self):
        """Test ties go to the first device seen"""
        votes = [("nikkiso-dbb27", 0.3), ("fresenius-4008b", 0.3)]
        assert select_best_device(votes, "nipro-surdialx") == "nikkiso-dbb27"

    def test_no_votes(self):
        """Test the fallback is used when nobody votes"""
        assert select_best_device([], "nipro-surdialx") == "nipro-surdialx"


class TestDeviceDetector:
    """Test the three-method detector"""

    @pytest.mark.asyncio
    async def test_vote(self, settings):
        """Test visual/text/layout answers are combined"""
        vision = FakeVisionClient(["fresenius4008s", "NIKKISO\nDBB-27", "nikkisodbb27"])
        detector = DeviceDetector(vision, settings)

        assert await detector.detect(TEST_IMAGE) == "nikkiso-dbb27"
        assert [c["max_tokens"] for c in vision.calls] == [50, 200, 50]
        assert all(c["temperature"] == 0.0 for c in vision.calls)

    @pytest.mark.asyncio
    async def test_failing_methods_abstain(self, settings):
        """Test exceptions from one method do not stop the others"""
        vision = FakeVisionClient([
            ExtractionCallError(500, "boom"),
            "4008 S",
            ExtractionCallError(500, "boom"),
        ])
        detector = DeviceDetector(vision, settings)

        assert await detector.detect(TEST_IMAGE) == "fresenius-4008s"

    @pytest.mark.asyncio
    async def test_all_unknown_falls_back(self, settings):
        """Test the configured fallback when every method abstains"""
        detector = DeviceDetector(FakeVisionClient(["?", "?", "?"]), settings)
        assert await detector.detect(TEST_IMAGE) == settings.fallback_device_key

    @pytest.mark.asyncio
    async def test_cache_hit_skips_vision(self, settings, cache, fake_redis):
        """Test a cached answer is returned without model calls"""
        fake_redis.store[DETECTION_KEY.format(DetectionCache.fingerprint(TEST_IMAGE))] = "fresenius-4008b"
        vision = FakeVisionClient()
        detector = DeviceDetector(vision, settings, cache=cache)

        assert await detector.detect(TEST_IMAGE) == "fresenius-4008b"
        assert vision.calls == []

    @pytest.mark.asyncio
    async def test_result_cached_with_ttl(self, settings, cache, fake_redis):
        """Test fresh detections are written back with the TTL"""
        detector = DeviceDetector(FakeVisionClient(["surdialx"] * 3), settings, cache=cache)

        await detector.detect(TEST_IMAGE)

        key = DETECTION_KEY.format(DetectionCache.fingerprint(TEST_IMAGE))
        assert fake_redis.store[key] == "nipro-surdialx"
        assert fake_redis.expiry[key] == 1800

    @pytest.mark.asyncio
    async def test_cache_bypassed(self, settings, cache, fake_redis):
        """Test use_cache=False neither reads nor writes"""
        key = DETECTION_KEY.format(DetectionCache.fingerprint(TEST_IMAGE))
        fake_redis.store[key] = "fresenius-4008b"
        detector = DeviceDetector(FakeVisionClient(["surdialx"] * 3), settings, cache=cache)

        assert await detector.detect(TEST_IMAGE, use_cache=False) == "nipro-surdialx"
        assert fake_redis.store[key] == "fresenius-4008b"

    def test_stats(self, settings, cache):
        """Test stats describe methods and cache"""
        stats = DeviceDetector(FakeVisionClient(), settings, cache=cache).get_detection_stats()
        assert [m["weight"] for m in stats["methods"]] == [0.4, 0.3, 0.3]
        assert stats["cacheEnabled"] is True
        assert stats["cacheTtlSeconds"] == 1800


class TestDetectionCache:
    """Test Redis failure handling"""

    @pytest.mark.asyncio
    async def test_uninitialized_cache_misses(self):
        """Test a cache that never connected behaves as a miss"""
        cache = DetectionCache("redis://unused", ttl_seconds=60)
        assert await cache.get(TEST_IMAGE) is None
        await cache.set(TEST_IMAGE, "nipro-surdialx")

    @pytest.mark.asyncio
    async def test_redis_errors_swallowed(self, cache, fake_redis):
        """Test connection errors are logged, not raised"""

        async def broken(*args, **kwargs):
            raise RedisConnectionError("down")

        fake_redis.get = broken
        fake_redis.set = broken

        assert await cache.get(TEST_IMAGE) is None
        await cache.set(TEST_IMAGE, "nipro-surdialx")

    def test_fingerprint_stable(self):
        """Test fingerprints are deterministic and short"""
        assert DetectionCache.fingerprint("abc") == DetectionCache.fingerprint("abc")
        assert len(DetectionCache.fingerprint("abc")) == 32
