"""
Device profile container.

A profile bundles everything the pipeline needs to know about one
dialysis machine: its ``DeviceModel`` descriptor, unit and category
tables, the label synonym table and the extraction prompt. Profiles are
module-level constants, validated once when the module is imported.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Mapping

from medireader.errors import DeviceConfigurationError
from medireader.schemas.devices import Category, DeviceModel, RuleType, ValidationRule
from medireader.services.label_normalizer import LabelNormalizer

GENERIC_PROMPT = (
    "Analyze this medical device display and extract visible data points. "
    "Return as JSON array with label, value, unit, and confidence fields."
)

OUTPUT_INSTRUCTIONS = """
OUTPUT FORMAT:
Return ONLY a JSON array. Each element must look like:
{"label": "<exact field name from the list above>", "value": "<value as shown>", "unit": "<unit or empty string>", "confidence": <0.0-1.0>}

RULES:
- Use the exact field names listed above for "label".
- Copy values exactly as displayed; do not convert units.
- Omit any field that is not visible. Never invent values.
- Confidence reflects how clearly the value can be read."""


@dataclass(frozen=True)
class DeviceProfile:
    key: str
    model: DeviceModel
    units: Mapping[str, tuple[str, ...]]
    categories: Mapping[str, Category]
    synonyms: Mapping[str, frozenset[str]]
    prompt: str
    normalizer: LabelNormalizer = field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        # LabelNormalizer raises on synonym conflicts.
        normalizer = LabelNormalizer(self.key, self.model.supported_data_points, self.synonyms)

        supported = set(self.model.supported_data_points)
        problems: list[str] = []

        seen_rules: set[str] = set()
        for rule in self.model.validation_rules:
            if rule.field not in supported:
                problems.append(f"rule for unsupported field '{rule.field}'")
            if rule.field in seen_rules:
                problems.append(f"more than one rule for '{rule.field}'")
            seen_rules.add(rule.field)

        for table_name, table in (("unit", self.units), ("category", self.categories)):
            for name in table:
                if name not in supported:
                    problems.append(f"{table_name} entry for unsupported field '{name}'")

        if problems:
            raise DeviceConfigurationError(self.key, problems)

        object.__setattr__(self, "units", MappingProxyType(dict(self.units)))
        object.__setattr__(self, "categories", MappingProxyType(dict(self.categories)))
        object.__setattr__(self, "synonyms", normalizer.synonyms)
        object.__setattr__(self, "normalizer", normalizer)

    def category_for(self, label: str) -> Category:
        return self.categories.get(label, Category.OTHER)

    def units_for(self, label: str) -> list[str]:
        return list(self.units.get(label, ()))


def build_prompt(header: str, field_guide: str) -> str:
    """Join a device header, its field guide and the shared output rules."""
    return f"{header.strip()}\n\n{field_guide.strip()}\n{OUTPUT_INSTRUCTIONS}"


def range_rule(field_name: str, low: float, high: float, message: str) -> ValidationRule:
    return ValidationRule(field=field_name, type=RuleType.RANGE, min=low, max=high, message=message)


def pattern_rule(field_name: str, pattern: str, message: str) -> ValidationRule:
    return ValidationRule(field=field_name, type=RuleType.PATTERN, pattern=pattern, message=message)
