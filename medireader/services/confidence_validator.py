"""
Confidence adjustment against per-field validation rules.

Range rules nudge confidence up when a reading is plausible and down
(floored at 0.5) when it is not. A reading is never rejected here.

Applying ``validate`` twice compounds the adjustment, so callers must
run it exactly once per extraction. ``ProcessingResult.validated``
records that it has run.
"""

from __future__ import annotations

import re
from typing import Iterable, Optional, Sequence

from medireader.schemas.devices import ExtractionResultItem, RuleType, ValidationRule

IN_RANGE_BONUS = 0.05
OUT_OF_RANGE_PENALTY = 0.2
OUT_OF_RANGE_FLOOR = 0.5
CONFIDENCE_CEILING = 1.0

# Leading numeric prefix, e.g. "450 mL" -> 450, "-120mmHg" -> -120.
_NUMERIC_PREFIX = re.compile(r"^\s*[+-]?(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][+-]?\d+)?")


def parse_number(value: str) -> Optional[float]:
    """Parse the leading number of ``value``; None when there is none."""
    match = _NUMERIC_PREFIX.match(value or "")
    if not match:
        return None
    return float(match.group(0))


def adjust_confidence(confidence: float, value: str, rule: ValidationRule) -> float:
    """Return the confidence after applying one range rule."""
    if rule.type != RuleType.RANGE:
        return confidence

    number = parse_number(value)
    if number is None:
        return confidence

    low = rule.min if rule.min is not None else float("-inf")
    high = rule.max if rule.max is not None else float("inf")

    if low <= number <= high:
        return min(confidence + IN_RANGE_BONUS, CONFIDENCE_CEILING)
    return max(confidence - OUT_OF_RANGE_PENALTY, OUT_OF_RANGE_FLOOR)


def validate(
    items: Sequence[ExtractionResultItem],
    rules: Iterable[ValidationRule],
) -> list[ExtractionResultItem]:
    """Return confidence-adjusted copies of ``items``."""
    by_field = {rule.field: rule for rule in rules}

    adjusted: list[ExtractionResultItem] = []
    for item in items:
        rule = by_field.get(item.label)
        if rule is None:
            adjusted.append(item.model_copy())
            continue
        adjusted.append(
            item.model_copy(
                update={"confidence": adjust_confidence(item.confidence, item.value, rule)}
            )
        )
    return adjusted


def check_pattern(item: ExtractionResultItem, rule: ValidationRule) -> bool:
    """
    Check a reading against a pattern rule.

    Pattern rules never change confidence. This is for request-time
    field checks only; non-pattern rules always pass.
    """
    if rule.type != RuleType.PATTERN or not rule.pattern:
        return True
    return re.search(rule.pattern, item.value) is not None
