"""
Enterprise Service.

Fetches an enterprise's business units from the backend gateway (with
retry and exponential backoff) and turns its patients and IoT devices
into the flat, privacy-masked records the mobile client displays.
"""

from __future__ import annotations

import asyncio
from typing import Any, Optional

import httpx

from medireader.config import Settings
from medireader.errors import GatewayUnavailableError
from medireader.logging_config import get_logger
from medireader.schemas.enterprise import DataModel, DeviceMaster, EnterpriseData, Patient

logger = get_logger(__name__)

BRAND_MAPPING: dict[int, str] = {
    1: "Fresenius",
    2: "Nikkiso",
    3: "Baxter",
    4: "Nipro",
    5: "B. Braun",
    6: "Gambro",
    7: "Toray",
    8: "Asahi Kasei",
    9: "Bellco",
    10: "Medtronic",
}

MODEL_MAPPING: dict[int, str] = {
    1: "4008 S",
    2: "4008 B",
    3: "4008 S Artis",
    4: "4008 S Fresenius",
    5: "DBB-27",
    6: "DBB-27C",
    7: "DBB-06",
    8: "Surdial 55 Plus",
    9: "SurdialX",
    10: "Surdial-55",
    11: "AK 96",
    12: "AK 98",
    13: "AK 200 Ultra",
    14: "AK 200 Ultra S",
    15: "Dialog+",
    16: "Dialog iQ",
    17: "Integra",
    18: "Integra iQ",
    19: "Integra iQ+",
    20: "Integra iQ+ with Citrate",
}

GENDERS = {1: "Male", 2: "Female"}


# ── Masking helpers ──────────────────────────────────────────────


def mask_nric(nric: Optional[str]) -> str:
    """Keep the first and last characters, star out the rest."""
    if not nric or len(nric) < 4:
        return "S****000A"
    return f"{nric[0]}{'*' * max(4, len(nric) - 2)}{nric[-1]}"


def mask_name(name: Optional[str]) -> str:
    if not name or not name.strip():
        return "Patient ***"

    parts = name.strip().split()
    if len(parts) == 1:
        single = parts[0]
        if len(single) <= 2:
            return f"{single}***"
        return f"{single[:2]}***{single[-1]}"
    return f"{parts[0]} ***{parts[-1][0]}"


def brand_name(brand_id: Any) -> str:
    return BRAND_MAPPING.get(_as_int(brand_id), f"Brand {brand_id}")


def model_name(model_id: Any) -> str:
    return MODEL_MAPPING.get(_as_int(model_id), f"Model {model_id}")


def _as_int(value: Any) -> Optional[int]:
    try:
        return int(value)
    except (TypeError, ValueError):
        return None


def _padded(prefix: str, value: Any) -> str:
    number = _as_int(value)
    return f"{prefix}{number:03d}" if number is not None else f"{prefix}{value}"


# ── Transformers ─────────────────────────────────────────────────


def enterprise_node(payload: dict[str, Any]) -> dict[str, Any]:
    """Unwrap ``{data: {enterprise: ...}}`` / ``{enterprise: ...}`` / bare node."""
    data = payload.get("data")
    if isinstance(data, dict) and isinstance(data.get("enterprise"), dict):
        return data["enterprise"]
    if isinstance(payload.get("enterprise"), dict):
        return payload["enterprise"]
    return payload


def _business_units(enterprise: dict[str, Any], business_unit_id: Optional[int]) -> list[dict[str, Any]]:
    units = enterprise.get("businessUnits") or []
    if business_unit_id is None:
        return units
    return [u for u in units if _as_int(u.get("businessUnitId")) == business_unit_id]


def transform_patients(payload: dict[str, Any], business_unit_id: Optional[int] = None) -> list[Patient]:
    enterprise = enterprise_node(payload)
    enterprise_code = _padded("ENT", enterprise.get("enterpriseId", 1))

    patients: list[Patient] = []
    for unit in _business_units(enterprise, business_unit_id):
        for record in unit.get("patients") or []:
            patient_id = record.get("patientId")
            patients.append(
                Patient(
                    patient_id=_padded("P", patient_id),
                    registration_number=_padded("REG", patient_id),
                    masked_nric=mask_nric(record.get("nricFinNumber")),
                    masked_name=mask_name(record.get("patientName")),
                    date_of_birth=str(record.get("dateOfBirth") or "").split("T")[0],
                    gender_value=GENDERS.get(_as_int(record.get("gender")), "Unknown"),
                    business_unit_code=unit.get("businessUnit10charCode") or "",
                    enterprise_code=enterprise_code,
                )
            )

    logger.info("patients_transformed", count=len(patients), business_unit_id=business_unit_id)
    return patients


def transform_devices(payload: dict[str, Any], business_unit_id: Optional[int] = None) -> list[DeviceMaster]:
    enterprise = enterprise_node(payload)

    devices: list[DeviceMaster] = []
    for unit in _business_units(enterprise, business_unit_id):
        for record in unit.get("iotDevices") or []:
            device_id = record.get("deviceId")
            devices.append(
                DeviceMaster(
                    device_id=_padded("DEV", device_id),
                    device_name=record.get("deviceName") or f"Device {device_id}",
                    device_model=model_name(record.get("model")),
                    brand=brand_name(record.get("brandName")),
                    serial_number=record.get("serialNumber") or _padded("SN", device_id),
                    location=unit.get("businessUnitName") or "",
                    business_unit_code=unit.get("businessUnit10charCode") or "",
                    notes=record.get("remarks") or record.get("deviceDescription") or "",
                )
            )

    logger.info("devices_transformed", count=len(devices), business_unit_id=business_unit_id)
    return devices


# ── Gateway client ───────────────────────────────────────────────


class EnterpriseService:
    """
    Enterprise lookups against the backend gateway.

    Args:
        settings: Gateway URL, timeout and retry count.
        transport: Optional httpx transport, used by tests.
        backoff_base: Seconds; attempt ``n`` waits ``backoff_base ** n``
            before retrying.
    """

    def __init__(
        self,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        backoff_base: float = 2.0,
    ) -> None:
        self._settings = settings
        self._transport = transport
        self._backoff_base = backoff_base

    def enterprise_url(self, enterprise_id: str) -> str:
        return f"{self._settings.gateway_base_url.rstrip('/')}/enterprise/{enterprise_id}"

    async def _fetch_once(self, enterprise_id: str, business_unit_id: Optional[int]) -> dict[str, Any]:
        params = {"businessUnitId": business_unit_id} if business_unit_id is not None else None
        async with httpx.AsyncClient(
            timeout=self._settings.enterprise_timeout_seconds,
            transport=self._transport,
        ) as client:
            response = await client.get(
                self.enterprise_url(enterprise_id),
                params=params,
                headers={"Accept": "application/json"},
            )
            response.raise_for_status()
            return response.json()

    async def fetch_enterprise(
        self,
        enterprise_id: str,
        business_unit_id: Optional[int] = None,
    ) -> dict[str, Any]:
        """
        Fetch the raw enterprise payload, retrying with exponential backoff.

        Raises:
            GatewayUnavailableError: every attempt failed.
        """
        max_retries = self._settings.enterprise_max_retries
        last_error: Optional[Exception] = None

        for attempt in range(1, max_retries + 1):
            try:
                payload = await self._fetch_once(enterprise_id, business_unit_id)
                logger.info("enterprise_fetched", enterprise_id=enterprise_id, attempt=attempt)
                return payload
            except (httpx.HTTPError, ValueError) as e:
                last_error = e
                logger.warning(
                    "enterprise_fetch_attempt_failed",
                    enterprise_id=enterprise_id,
                    attempt=attempt,
                    max_retries=max_retries,
                    error=str(e),
                )
                if attempt < max_retries:
                    await asyncio.sleep(self._backoff_base ** attempt)

        logger.error("enterprise_fetch_failed", enterprise_id=enterprise_id, error=str(last_error))
        raise GatewayUnavailableError(
            "HDIMS adapter service unavailable",
            {
                "error": str(last_error),
                "enterpriseId": enterprise_id,
                "url": self.enterprise_url(enterprise_id),
            },
        )

    async def get_enterprise_data(
        self,
        enterprise_id: str,
        business_unit_id: Optional[int],
        data_model: str,
    ) -> EnterpriseData:
        """
        Fetch and transform the records selected by ``data_model``.

        Raises:
            ValueError: ``data_model`` is not patients, devices or both.
            GatewayUnavailableError: the gateway could not be reached.
        """
        selection = DataModel((data_model or "").lower())
        payload = await self.fetch_enterprise(enterprise_id, business_unit_id)

        result = EnterpriseData()
        if selection in (DataModel.PATIENTS, DataModel.BOTH):
            result.patients = transform_patients(payload, business_unit_id)
        if selection in (DataModel.DEVICES, DataModel.BOTH):
            result.devices = transform_devices(payload, business_unit_id)
        if selection == DataModel.BOTH:
            result.enterprise = enterprise_node(payload)
        return result
