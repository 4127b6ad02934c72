"""
Data models for device configuration and extraction results.

Serialized with camelCase aliases so the mobile client receives the
same field names it always has (``displayName``, ``processingTime``...).
"""

from __future__ import annotations

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


class _CamelModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        protected_namespaces=(),
    )


class _FrozenCamelModel(_CamelModel):
    model_config = ConfigDict(frozen=True)


class Category(str, Enum):
    ULTRAFILTRATION = "ultrafiltration"
    TEMPERATURE = "temperature"
    CONDUCTIVITY = "conductivity"
    CONCENTRATION = "concentration"
    PRESSURE = "pressure"
    FLOW = "flow"
    TIME = "time"
    OTHER = "other"


class RuleType(str, Enum):
    RANGE = "range"
    PATTERN = "pattern"


class ValidationRule(_FrozenCamelModel):
    """A per-field numeric range or regex pattern."""

    field: str
    type: RuleType
    min: Optional[float] = None
    max: Optional[float] = None
    pattern: Optional[str] = None
    message: str = ""


class ConfidenceThresholds(_FrozenCamelModel):
    """Display bands only. Nothing is filtered on these."""

    high: float = Field(default=0.95, ge=0.0, le=1.0)
    medium: float = Field(default=0.85, ge=0.0, le=1.0)
    low: float = Field(default=0.70, ge=0.0, le=1.0)


class DeviceModel(_FrozenCamelModel):
    brand: str
    model: str
    version: str
    display_name: str
    supported_data_points: tuple[str, ...]
    confidence_thresholds: ConfidenceThresholds = ConfidenceThresholds()
    validation_rules: tuple[ValidationRule, ...] = ()

    @field_validator("supported_data_points")
    @classmethod
    def _dedupe_fields(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        # First occurrence keeps its priority slot.
        return tuple(dict.fromkeys(value))

    def rule_for(self, label: str) -> ValidationRule | None:
        for rule in self.validation_rules:
            if rule.field == label:
                return rule
        return None


class ExtractionResultItem(_CamelModel):
    """One reading as reported by the vision model."""

    label: str
    value: str
    unit: Optional[str] = None
    confidence: float = 0.5

    @field_validator("value", mode="before")
    @classmethod
    def _stringify_value(cls, value: Any) -> str:
        if value is None:
            return ""
        return value if isinstance(value, str) else str(value)

    @field_validator("unit", mode="before")
    @classmethod
    def _stringify_unit(cls, value: Any) -> Optional[str]:
        if value is None or isinstance(value, str):
            return value
        return str(value)

    @field_validator("confidence", mode="before")
    @classmethod
    def _clamp_confidence(cls, value: Any) -> float:
        if value is None or value == "":
            return 0.5
        return max(0.0, min(1.0, float(value)))


class DeviceDataPoint(ExtractionResultItem):
    """Final output row."""

    id: str
    device_model: str
    category: Category = Category.OTHER

    @field_validator("id", mode="before")
    @classmethod
    def _stringify_id(cls, value: Any) -> str:
        return str(value)


class ProcessingOptions(_CamelModel):
    enhance_image: bool = False  # reserved
    use_device_specific_prompt: bool = True
    validate_results: bool = True


class ProcessingContext(_CamelModel):
    device_model: DeviceModel
    image_uri: str = ""
    patient_id: str = "unknown"
    device_master_id: str = "unknown"
    device_override: Optional[str] = None
    processing_options: ProcessingOptions = ProcessingOptions()


class ProcessingResult(_CamelModel):
    data: list[DeviceDataPoint]
    processing_time: float
    model_used: str
    validated: bool = Field(default=False, exclude=True)


class SupportedDevice(_CamelModel):
    key: str
    model: DeviceModel


class DeviceDetail(_CamelModel):
    key: str
    model: DeviceModel
    units: dict[str, list[str]]
    categories: dict[str, Category]
    synonyms: dict[str, list[str]]
