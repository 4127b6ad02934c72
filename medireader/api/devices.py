"""
API Router: Device Catalogue.

Lists supported dialysis machines, exposes each model's field
configuration, and runs device detection on a photo.
"""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile

from medireader.api.dependencies import get_detector, get_registry
from medireader.logging_config import get_logger
from medireader.schemas.devices import DeviceDetail
from medireader.services.device_detector import DeviceDetector
from medireader.services.device_registry import DeviceRegistry
from medireader.services.vision_client import encode_image

logger = get_logger(__name__)
router = APIRouter(prefix="/api/devices", tags=["Devices"])


@router.get("")
async def list_devices(registry: DeviceRegistry = Depends(get_registry)) -> dict[str, Any]:
    """All supported device models plus registry statistics."""
    return {
        "success": True,
        "devices": [d.model_dump(by_alias=True) for d in registry.get_supported_devices()],
        "stats": registry.get_registry_stats(),
    }


@router.get("/{device_key}", response_model=DeviceDetail, response_model_by_alias=True)
async def get_device(
    device_key: str,
    registry: DeviceRegistry = Depends(get_registry),
) -> DeviceDetail:
    """Full field configuration for one device model."""
    profile = registry.get_profile(device_key)
    if profile is None:
        raise HTTPException(status_code=404, detail=f"Device model {device_key} is not supported")

    return DeviceDetail(
        key=profile.key,
        model=profile.model,
        units={name: list(units) for name, units in profile.units.items()},
        categories={name: profile.category_for(name) for name in profile.model.supported_data_points},
        synonyms={name: sorted(names) for name, names in profile.synonyms.items()},
    )


@router.post("/detect")
async def detect_device(
    image: UploadFile = File(...),
    registry: DeviceRegistry = Depends(get_registry),
    detector: DeviceDetector = Depends(get_detector),
) -> dict[str, Any]:
    """Guess the device model shown in a photo. Falls back rather than failing."""
    content = await image.read()
    if not content:
        raise HTTPException(status_code=400, detail="No image provided")

    device_key = await registry.detect_device(encode_image(content), use_cache=True)
    model = registry.get_model(device_key)
    return {
        "success": True,
        "deviceKey": device_key,
        "displayName": model.display_name if model else None,
        "detection": detector.get_detection_stats(),
    }
