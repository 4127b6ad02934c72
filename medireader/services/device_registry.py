"""
Device Registry.

Static lookup table from device key to its processor and configuration,
built once at startup and never mutated. Unknown keys resolve to None;
callers decide how to report them.
"""

from __future__ import annotations

from types import MappingProxyType
from typing import Iterable, Optional

from medireader.devices.base import DeviceProfile
from medireader.logging_config import get_logger
from medireader.schemas.devices import DeviceModel, SupportedDevice
from medireader.services.device_detector import DeviceDetector
from medireader.services.device_processor import DeviceProcessor
from medireader.services.vision_client import BackendExtractionClient, VisionClient

logger = get_logger(__name__)


class DeviceRegistry:
    """
    Holds one processor per supported device key.

    Args:
        profiles: Device profiles to register, in listing order.
        vision_client: Shared vision-model collaborator.
        detector: Heuristic device detector. Optional; without one,
            detection always yields ``fallback_key``.
        fallback_key: Key returned whenever detection fails.
        backend_client: Shared collaborator for backend forwarding.
    """

    def __init__(
        self,
        profiles: Iterable[DeviceProfile],
        vision_client: VisionClient,
        detector: Optional[DeviceDetector] = None,
        fallback_key: str = "nipro-surdialx",
        backend_client: Optional[BackendExtractionClient] = None,
    ) -> None:
        processors: dict[str, DeviceProcessor] = {}
        for profile in profiles:
            if profile.key in processors:
                raise ValueError(f"Device key registered twice: {profile.key}")
            processors[profile.key] = DeviceProcessor(profile, vision_client, backend_client)

        self._processors = MappingProxyType(processors)
        self._detector = detector
        self._fallback_key = fallback_key

        logger.info("device_registry_initialized", devices=list(self._processors))

    @property
    def fallback_key(self) -> str:
        return self._fallback_key

    def get_processor(self, device_key: str) -> Optional[DeviceProcessor]:
        processor = self._processors.get(device_key)
        if processor is None:
            logger.warning("device_processor_not_found", device=device_key)
        return processor

    def get_model(self, device_key: str) -> Optional[DeviceModel]:
        processor = self._processors.get(device_key)
        if processor is None:
            logger.warning("device_model_not_found", device=device_key)
            return None
        return processor.get_config()

    def get_profile(self, device_key: str) -> Optional[DeviceProfile]:
        processor = self._processors.get(device_key)
        return processor.profile if processor else None

    async def detect_device(self, image: str, use_cache: bool = True) -> str:
        """Best-guess device key for ``image``. Never raises."""
        if self._detector is None:
            return self._fallback_key
        try:
            return await self._detector.detect(image, use_cache=use_cache)
        except Exception as e:
            logger.error("device_detection_failed", error=str(e), fallback=self._fallback_key)
            return self._fallback_key

    def get_all_models(self) -> list[DeviceModel]:
        return [processor.get_config() for processor in self._processors.values()]

    def get_supported_devices(self) -> list[SupportedDevice]:
        return [
            SupportedDevice(key=key, model=processor.get_config())
            for key, processor in self._processors.items()
        ]

    def validate_device_support(self, device_key: str) -> bool:
        return device_key in self._processors

    def get_registry_stats(self) -> dict:
        models = self.get_all_models()
        return {
            "totalDevices": len(models),
            "supportedBrands": sorted({m.brand for m in models}),
            "deviceKeys": list(self._processors),
        }
