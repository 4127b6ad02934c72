"""
Result cleaning and deduplication.

Turns the vision model's raw list into at most one reading per
supported field, ordered by the device's priority list rather than by
the order the model happened to answer in.
"""

from __future__ import annotations

from typing import Sequence

from medireader.logging_config import get_logger
from medireader.schemas.devices import ExtractionResultItem
from medireader.services.label_normalizer import LabelNormalizer

logger = get_logger(__name__)


def clean(
    raw_items: Sequence[ExtractionResultItem],
    normalizer: LabelNormalizer,
) -> list[ExtractionResultItem]:
    """
    Deduplicate and order raw readings for one device.

    For each supported field in priority order, the first raw item
    labelled with the exact canonical name wins; failing that, the first
    item labelled with a listed synonym. Matches are returned as copies
    carrying the canonical label. Fields nobody reported are left out,
    and raw items matching no field are dropped.
    """
    cleaned: list[ExtractionResultItem] = []
    emitted: set[str] = set()

    for field in normalizer.supported:
        if field in emitted:
            continue

        match = next((item for item in raw_items if item.label == field), None)
        if match is None:
            match = next(
                (item for item in raw_items if normalizer.is_variant(item.label, field)),
                None,
            )
        if match is None:
            continue

        cleaned.append(match.model_copy(update={"label": normalizer.normalize(match.label)}))
        emitted.add(field)

    dropped = len(raw_items) - len(cleaned)
    if dropped:
        logger.debug(
            "raw_items_discarded",
            device=normalizer.device_key,
            raw_count=len(raw_items),
            kept=len(cleaned),
        )

    return cleaned
