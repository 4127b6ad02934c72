"""
Device Processor.

Runs one photo through the extraction pipeline for one device model:
prompt -> vision call -> refusal check -> JSON array -> clean ->
validate (once) -> stamp. The same class serves every device; all
device-specific behavior lives in the ``DeviceProfile`` it is given.
"""

from __future__ import annotations

import json
import time
from typing import Any, Optional

from pydantic import ValidationError

from medireader.devices.base import GENERIC_PROMPT, DeviceProfile
from medireader.errors import ErrorCode, MalformedOutputError, ProcessingError, RefusalError
from medireader.logging_config import get_logger
from medireader.schemas.devices import (
    DeviceDataPoint,
    DeviceModel,
    ExtractionResultItem,
    ProcessingContext,
    ProcessingResult,
)
from medireader.services import confidence_validator, result_cleaner
from medireader.services.json_extraction import JSONArrayNotFound, extract_json_array
from medireader.services.vision_client import BackendExtractionClient, VisionClient

logger = get_logger(__name__)

REFUSAL_PHRASES = (
    "i'm unable to analyze images directly",
    "i cannot analyze",
    "i'm not able to",
    "i'm sorry, i can't extract data from this image",
    "i'm sorry, but i can't analyze the image",
    "i can't analyze the image",
)

# Weaker hints, only consulted once no JSON array could be found.
SOFT_REFUSAL_MARKERS = ("sorry", "can't")


def _fold(text: str) -> str:
    return text.replace("’", "'").replace("‘", "'").lower()


def is_refusal(text: str) -> bool:
    """True when the reply contains one of the known refusal phrases."""
    folded = _fold(text)
    return any(phrase in folded for phrase in REFUSAL_PHRASES)


def parse_raw_items(raw: list[Any]) -> list[ExtractionResultItem]:
    """Coerce parsed JSON elements into items, skipping anything malformed."""
    items: list[ExtractionResultItem] = []
    for element in raw:
        if not isinstance(element, dict) or not element.get("label"):
            logger.warning("skipping_malformed_item", item=element)
            continue
        try:
            items.append(
                ExtractionResultItem(
                    label=str(element["label"]),
                    value=element.get("value"),
                    unit=element.get("unit"),
                    confidence=element.get("confidence"),
                )
            )
        except (ValidationError, TypeError, ValueError) as e:
            logger.warning("skipping_malformed_item", item=element, error=str(e))
    return items


class DeviceProcessor:
    """
    Extraction pipeline bound to one device profile.

    Args:
        profile: The device's configuration bundle.
        vision_client: Collaborator for the direct vision-model path.
        backend_client: Collaborator for the backend-forwarding path.
    """

    def __init__(
        self,
        profile: DeviceProfile,
        vision_client: VisionClient,
        backend_client: Optional[BackendExtractionClient] = None,
    ) -> None:
        self.profile = profile
        self._vision = vision_client
        self._backend = backend_client or BackendExtractionClient()

    @property
    def key(self) -> str:
        return self.profile.key

    # -- Accessors --

    def get_config(self) -> DeviceModel:
        return self.profile.model

    def get_supported_units(self, field_label: str) -> list[str]:
        return self.profile.units_for(field_label)

    # -- Direct path --

    def build_prompt(self, context: ProcessingContext) -> str:
        if context.processing_options.use_device_specific_prompt:
            return self.profile.prompt
        return GENERIC_PROMPT

    async def process_image(self, image: str, context: ProcessingContext) -> ProcessingResult:
        """
        Extract readings from ``image`` with the vision model.

        Raises:
            ExtractionCallError: the vision API returned a non-2xx status.
            RefusalError: the model declined to analyze the image.
            MalformedOutputError: no parseable JSON array in the reply.
        """
        start = time.monotonic()
        logger.info(
            "device_processing_started",
            device=self.key,
            device_specific_prompt=context.processing_options.use_device_specific_prompt,
        )

        raw_text = await self._vision.complete(image, self.build_prompt(context))
        raw_items = self._parse_reply(raw_text)

        items = result_cleaner.clean(raw_items, self.profile.normalizer)
        result = ProcessingResult(
            data=self._stamp(items),
            processing_time=0.0,
            model_used=f"{self._vision.model}-{self.key}",
        )
        if context.processing_options.validate_results:
            result = self.apply_validation(result)

        result.processing_time = round(time.monotonic() - start, 1)

        logger.info(
            "device_processing_complete",
            device=self.key,
            raw_items=len(raw_items),
            data_points=len(result.data),
            processing_time=result.processing_time,
        )
        return result

    def _parse_reply(self, raw_text: str) -> list[ExtractionResultItem]:
        if is_refusal(raw_text):
            logger.warning("vision_refusal", device=self.key, response=raw_text[:200])
            raise RefusalError(raw_text)

        try:
            parsed = extract_json_array(raw_text)
        except JSONArrayNotFound:
            self._check_soft_refusal(raw_text)
            logger.error("vision_reply_without_json", device=self.key, response=raw_text[:200])
            raise MalformedOutputError("OpenAI did not return expected JSON format", raw_text)
        except json.JSONDecodeError as e:
            self._check_soft_refusal(raw_text)
            logger.error(
                "vision_reply_invalid_json",
                device=self.key,
                error=str(e),
                response=raw_text[:200],
            )
            raise MalformedOutputError("OpenAI returned invalid JSON format", raw_text)

        return parse_raw_items(parsed)

    def _check_soft_refusal(self, raw_text: str) -> None:
        folded = _fold(raw_text)
        if any(marker in folded for marker in SOFT_REFUSAL_MARKERS):
            logger.warning("vision_refusal", device=self.key, response=raw_text[:200])
            raise RefusalError(raw_text)

    def apply_validation(self, result: ProcessingResult) -> ProcessingResult:
        """
        Adjust confidences on ``result`` against the device's range rules.

        Raises:
            ProcessingError: the result has already been validated.
        """
        if result.validated:
            raise ProcessingError(
                ErrorCode.VALIDATION_ALREADY_APPLIED,
                "Confidence validation has already been applied to this result",
                {"device": self.key},
            )

        adjusted = confidence_validator.validate(result.data, self.profile.model.validation_rules)
        return result.model_copy(update={"data": adjusted, "validated": True})

    def _stamp(self, items: list[ExtractionResultItem]) -> list[DeviceDataPoint]:
        display_name = self.profile.model.display_name
        return [
            DeviceDataPoint(
                id=str(position),
                label=item.label,
                value=item.value,
                unit=item.unit,
                confidence=item.confidence,
                device_model=display_name,
                category=self.profile.category_for(item.label),
            )
            for position, item in enumerate(items, start=1)
        ]

    # -- Backend path --

    async def process_image_via_backend(
        self,
        image: str,
        context: ProcessingContext,
        backend_url: str,
    ) -> ProcessingResult:
        """
        Forward ``image`` to the backend and return its readings.

        Raises:
            BackendForwardError: the backend returned a non-2xx status.
            MalformedOutputError: the backend reply has no ``data`` list.
        """
        start = time.monotonic()
        logger.info("backend_processing_started", device=self.key, url=backend_url)

        payload = await self._backend.forward(
            backend_url,
            image,
            {
                "deviceOverride": context.device_override or self.key,
                "patientId": context.patient_id,
                "deviceMasterId": context.device_master_id,
            },
        )

        raw_data = payload.get("data") if isinstance(payload, dict) else None
        if not isinstance(raw_data, list):
            raise MalformedOutputError("Backend returned no data list", json.dumps(payload)[:200])

        rows: list[DeviceDataPoint] = []
        for position, element in enumerate(raw_data, start=1):
            if not isinstance(element, dict):
                logger.warning("skipping_malformed_item", item=element)
                continue
            element = {
                "id": str(position),
                "deviceModel": self.profile.model.display_name,
                **element,
            }
            element.pop("category", None)
            try:
                rows.append(DeviceDataPoint.model_validate(element))
            except ValidationError as e:
                logger.warning("skipping_malformed_item", item=element, error=str(e))

        data = [
            row.model_copy(update={"category": self.profile.category_for(row.label)})
            for row in result_cleaner.clean(rows, self.profile.normalizer)
        ]

        result = ProcessingResult(
            data=data,
            processing_time=round(time.monotonic() - start, 1),
            model_used=f"backend-{self.key}",
            validated=True,
        )
        logger.info(
            "backend_processing_complete",
            device=self.key,
            data_points=len(data),
            processing_time=result.processing_time,
        )
        return result
