"""
CLI tool to run one extraction against a local photo.

Usage:
    python scripts/extract_image.py <image_path> [--device KEY]
    python scripts/extract_image.py --list-devices

Examples:
    # Let the detector pick the device model
    python scripts/extract_image.py display.jpg

    # Force a model and skip range validation
    python scripts/extract_image.py display.jpg --device fresenius-4008s --no-validate
"""

import argparse
import asyncio
import json
import os
import sys
from pathlib import Path

sys.path.append(os.path.abspath(os.path.join(os.path.dirname(__file__), "..")))

from dotenv import load_dotenv
load_dotenv(".env.local")

from medireader.config import get_settings
from medireader.devices.catalog import PROFILES
from medireader.errors import ProcessingError
from medireader.logging_config import get_logger, setup_logging
from medireader.schemas.devices import ProcessingOptions
from medireader.services.device_detector import DeviceDetector
from medireader.services.device_registry import DeviceRegistry
from medireader.services.extraction_service import ExtractionService
from medireader.services.vision_client import BackendExtractionClient, VisionClient, encode_image

setup_logging()
logger = get_logger(__name__)


def build_service() -> tuple[DeviceRegistry, ExtractionService]:
    """Same collaborators as the API server, minus the Redis cache."""
    settings = get_settings()
    vision = VisionClient(settings)
    registry = DeviceRegistry(
        PROFILES,
        vision,
        detector=DeviceDetector(vision, settings),
        fallback_key=settings.fallback_device_key,
        backend_client=BackendExtractionClient(timeout=settings.vision_timeout_seconds),
    )
    return registry, ExtractionService(registry, settings)


async def extract_image(
    image_path: str,
    device: str | None = None,
    patient_id: str | None = None,
    device_master_id: str | None = None,
    generic_prompt: bool = False,
    validate: bool = True,
) -> int:
    """Extract readings from one photo and print them as JSON."""
    path = Path(image_path)
    if not path.is_file():
        print(f"Image not found: {image_path}", file=sys.stderr)
        return 1

    _, service = build_service()
    try:
        result, context = await service.extract(
            encode_image(path.read_bytes()),
            device_override=device,
            patient_id=patient_id,
            device_master_id=device_master_id,
            options=ProcessingOptions(
                use_device_specific_prompt=not generic_prompt,
                validate_results=validate,
            ),
        )
    except ProcessingError as e:
        print(json.dumps(e.to_dict(), indent=2), file=sys.stderr)
        return 2

    output = result.model_dump(mode="json", by_alias=True)
    output["patientId"] = context.patient_id
    output["deviceMasterId"] = context.device_master_id
    print(json.dumps(output, indent=2))
    return 0


def list_devices() -> int:
    registry, _ = build_service()
    for device in registry.get_supported_devices():
        model = device.model
        print(f"  {device.key:<22} {model.display_name} ({len(model.supported_data_points)} fields)")
    return 0


def main() -> None:
    parser = argparse.ArgumentParser(description="Extract readings from a dialysis machine photo")
    parser.add_argument("image_path", nargs="?", help="Path to a JPEG/PNG photo of the display")
    parser.add_argument("--device", help="Device key; skips detection")
    parser.add_argument("--patient-id", help="Patient identifier echoed in the result")
    parser.add_argument("--device-master-id", help="Device master identifier echoed in the result")
    parser.add_argument("--generic-prompt", action="store_true", help="Use the generic extraction prompt")
    parser.add_argument("--no-validate", action="store_true", help="Skip range validation")
    parser.add_argument("--list-devices", action="store_true", help="List supported devices and exit")

    args = parser.parse_args()

    if args.list_devices:
        sys.exit(list_devices())

    if not args.image_path:
        parser.error("image_path is required unless --list-devices is given")

    sys.exit(asyncio.run(extract_image(
        image_path=args.image_path,
        device=args.device,
        patient_id=args.patient_id,
        device_master_id=args.device_master_id,
        generic_prompt=args.generic_prompt,
        validate=not args.no_validate,
    )))


if __name__ == "__main__":
    main()
