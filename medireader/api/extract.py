"""
API Router: Image Extraction.

Accepts a photo of a dialysis machine display and returns the
readings extracted from it.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from medireader.api.dependencies import get_app_settings, get_extraction_service
from medireader.config import Settings
from medireader.errors import ProcessingError
from medireader.logging_config import get_logger
from medireader.schemas.devices import DeviceDataPoint, ProcessingOptions
from medireader.services.extraction_service import ExtractionService
from medireader.services.vision_client import encode_image

logger = get_logger(__name__)
router = APIRouter(prefix="/api", tags=["Extraction"])


class ExtractResponse(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        protected_namespaces=(),
    )

    success: bool = True
    data: list[DeviceDataPoint]
    processing_time: float
    model_used: str
    patient_id: str
    device_master_id: str


@router.post("/extract", response_model=ExtractResponse, response_model_by_alias=True)
async def extract(
    image: UploadFile = File(...),
    device_override: Optional[str] = Form(default=None, alias="deviceOverride"),
    patient_id: Optional[str] = Form(default=None, alias="patientId"),
    device_master_id: Optional[str] = Form(default=None, alias="deviceMasterId"),
    use_device_specific_prompt: bool = Form(default=True, alias="useDeviceSpecificPrompt"),
    validate_results: bool = Form(default=True, alias="validateResults"),
    service: ExtractionService = Depends(get_extraction_service),
    settings: Settings = Depends(get_app_settings),
) -> ExtractResponse:
    """Extract readings from an uploaded display photo."""
    content = await image.read()
    if not content:
        raise HTTPException(status_code=400, detail="No image provided")
    if len(content) > settings.max_upload_bytes:
        raise HTTPException(status_code=413, detail="Image too large")

    logger.info(
        "extract_request",
        filename=image.filename,
        size=len(content),
        device_override=device_override,
    )

    try:
        result, context = await service.extract(
            encode_image(content),
            device_override=device_override or None,
            patient_id=patient_id,
            device_master_id=device_master_id,
            options=ProcessingOptions(
                use_device_specific_prompt=use_device_specific_prompt,
                validate_results=validate_results,
            ),
        )
    except ProcessingError:
        raise
    except Exception as e:
        logger.error("extract_error", error=str(e))
        raise HTTPException(status_code=500, detail=str(e))

    return ExtractResponse(
        data=result.data,
        processing_time=result.processing_time,
        model_used=result.model_used,
        patient_id=context.patient_id,
        device_master_id=context.device_master_id,
    )
