"""
Extraction Service.

Request-level orchestration around the device registry: resolves the
device (detecting it when the caller gave no key), builds the
processing context, picks the direct or backend path and keeps the
in-flight bookkeeping map. Results are never shared between calls;
every request runs the full pipeline.
"""

from __future__ import annotations

import asyncio
import itertools
from typing import Optional

from medireader.config import Settings
from medireader.errors import DeviceNotSupportedError
from medireader.logging_config import bind_device, get_logger
from medireader.schemas.devices import ProcessingContext, ProcessingOptions, ProcessingResult
from medireader.services.device_registry import DeviceRegistry

logger = get_logger(__name__)

FINGERPRINT_IMAGE_PREFIX = 50


class InFlightTracker:
    """
    Fingerprint -> set of in-flight request tokens.

    Entries for one key never disturb another key, and a duplicate
    fingerprint gets its own token instead of sharing a result.
    """

    def __init__(self) -> None:
        self._entries: dict[str, set[int]] = {}
        self._lock = asyncio.Lock()
        self._tokens = itertools.count(1)

    async def add(self, fingerprint: str) -> int:
        async with self._lock:
            token = next(self._tokens)
            self._entries.setdefault(fingerprint, set()).add(token)
            return token

    async def remove(self, fingerprint: str, token: int) -> None:
        async with self._lock:
            tokens = self._entries.get(fingerprint)
            if tokens is None:
                return
            tokens.discard(token)
            if not tokens:
                del self._entries[fingerprint]

    def active_count(self) -> int:
        return sum(len(tokens) for tokens in self._entries.values())

    def in_flight(self, fingerprint: str) -> int:
        return len(self._entries.get(fingerprint, ()))


def make_fingerprint(image: str, device_override: Optional[str]) -> str:
    return f"{image[:FINGERPRINT_IMAGE_PREFIX]}_{device_override or 'auto'}"


class ExtractionService:
    """
    Entry point for one extraction request.

    Args:
        registry: Device registry built at startup.
        settings: Supplies the backend flag and URL.
        tracker: In-flight bookkeeping map; one is created if omitted.
    """

    def __init__(
        self,
        registry: DeviceRegistry,
        settings: Settings,
        tracker: Optional[InFlightTracker] = None,
    ) -> None:
        self._registry = registry
        self._settings = settings
        self.tracker = tracker or InFlightTracker()

    async def extract(
        self,
        image: str,
        device_override: Optional[str] = None,
        patient_id: Optional[str] = None,
        device_master_id: Optional[str] = None,
        options: Optional[ProcessingOptions] = None,
    ) -> tuple[ProcessingResult, ProcessingContext]:
        """
        Run the full extraction pipeline for one image.

        Raises:
            DeviceNotSupportedError: the (given or detected) key has no processor.
            ProcessingError: any failure from the extraction call itself.
        """
        fingerprint = make_fingerprint(image, device_override)
        token = await self.tracker.add(fingerprint)
        try:
            return await self._run(image, device_override, patient_id, device_master_id, options)
        finally:
            await self.tracker.remove(fingerprint, token)

    async def _run(
        self,
        image: str,
        device_override: Optional[str],
        patient_id: Optional[str],
        device_master_id: Optional[str],
        options: Optional[ProcessingOptions],
    ) -> tuple[ProcessingResult, ProcessingContext]:
        device_key = device_override or await self._registry.detect_device(image, use_cache=False)
        bind_device(device_key)

        processor = self._registry.get_processor(device_key)
        if processor is None:
            raise DeviceNotSupportedError(device_key)

        context = ProcessingContext(
            device_model=processor.get_config(),
            image_uri=image[:FINGERPRINT_IMAGE_PREFIX],
            patient_id=patient_id or "unknown",
            device_master_id=device_master_id or "unknown",
            device_override=device_override,
            processing_options=options or ProcessingOptions(),
        )

        use_backend = self._settings.feature_use_backend_extraction
        logger.info(
            "extraction_started",
            device=device_key,
            detected=device_override is None,
            backend=use_backend,
            patient_id=context.patient_id,
        )

        if use_backend:
            result = await processor.process_image_via_backend(
                image, context, self._settings.backend_extraction_url
            )
        else:
            result = await processor.process_image(image, context)

        logger.info(
            "extraction_complete",
            device=device_key,
            data_points=len(result.data),
            model_used=result.model_used,
            processing_time=result.processing_time,
        )
        return result, context
