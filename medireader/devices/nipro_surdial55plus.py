"""Nipro Surdial 55 Plus: fields, limits and prompt."""

from __future__ import annotations

from medireader.devices.base import DeviceProfile, build_prompt, range_rule
from medireader.schemas.devices import Category, ConfidenceThresholds, DeviceModel

KEY = "nipro-surdial55plus"

MODEL = DeviceModel(
    brand="Nipro",
    model="Surdial 55 Plus",
    version="1.0",
    display_name="Nipro Surdial 55 Plus",
    supported_data_points=(
        "UF REMOVED",
        "UF GOAL",
        "UF LEFT",
        "UF RATE",
        "UF FINISH TIME",
        "TEMP",
        "COND",
        "B COND",
        "Na",
        "Bic",
        "HEPARIN PUMP",
        "DEVICE ID",
        "CURRENT TIME",
        "DIA LEFT",
        "BLOOD PUMP",
        "DIALYSATE FLOW",
        "TMP",
        "VENOUS PRESSURE",
        "ARTERIAL PRESSURE",
    ),
    confidence_thresholds=ConfidenceThresholds(high=0.95, medium=0.85, low=0.70),
    validation_rules=(
        range_rule("TEMP", 30, 40, "Temperature should be between 30-40°C"),
        range_rule("UF REMOVED", 0, 10, "UF Removed should be between 0-10 L"),
        range_rule("COND", 10, 20, "Conductivity should be between 10-20 mS/cm"),
        range_rule("Na", 130, 150, "Sodium should be between 130-150 mEq/L"),
        range_rule("Bic", 20, 40, "Bicarbonate should be between 20-40 mEq/L"),
    ),
)

UNITS: dict[str, tuple[str, ...]] = {
    "UF REMOVED": ("L", "mL"),
    "UF GOAL": ("L", "mL"),
    "UF RATE": ("mL/min", "L/h"),
    "TEMP": ("°C",),
    "COND": ("mS/cm",),
    "B COND": ("mS/cm",),
    "Na": ("mEq/L", "mmol/L"),
    "Bic": ("mEq/L", "mmol/L"),
    "HEPARIN PUMP": ("mL/h",),
    "BLOOD PUMP": ("mL/min",),
    "DIALYSATE FLOW": ("mL/min",),
    "TMP": ("mmHg",),
    "VENOUS PRESSURE": ("mmHg",),
    "ARTERIAL PRESSURE": ("mmHg",),
}

CATEGORIES: dict[str, Category] = {
    "UF REMOVED": Category.ULTRAFILTRATION,
    "UF GOAL": Category.ULTRAFILTRATION,
    "UF LEFT": Category.TIME,
    "UF RATE": Category.ULTRAFILTRATION,
    "UF FINISH TIME": Category.TIME,
    "TEMP": Category.TEMPERATURE,
    "COND": Category.CONDUCTIVITY,
    "B COND": Category.CONDUCTIVITY,
    "Na": Category.CONCENTRATION,
    "Bic": Category.CONCENTRATION,
    "HEPARIN PUMP": Category.FLOW,
    "DEVICE ID": Category.OTHER,
    "CURRENT TIME": Category.TIME,
    "DIA LEFT": Category.TIME,
    "BLOOD PUMP": Category.FLOW,
    "DIALYSATE FLOW": Category.FLOW,
    "TMP": Category.PRESSURE,
    "VENOUS PRESSURE": Category.PRESSURE,
    "ARTERIAL PRESSURE": Category.PRESSURE,
}

SYNONYMS: dict[str, frozenset[str]] = {
    "TEMP": frozenset({"Temperature"}),
    "COND": frozenset({"Conductivity"}),
    "Na": frozenset({"Sodium"}),
    "Bic": frozenset({"Bicarbonate"}),
}

PROMPT = build_prompt(
    """
You are reading a NIPRO SURDIAL 55 PLUS dialysis machine display.

DEVICE:
- Dark blue background with bright yellow/white text.
- Simple rectangular text boxes on an LCD-style display, minimal graphics.
- UF panel at the top, dialysate panel in the middle, pumps and pressures below.
""",
    """
FIELDS in priority order:
1. UF REMOVED: L or mL
2. UF GOAL: L or mL
3. UF LEFT: h:mm
4. UF RATE: mL/min or L/h
5. UF FINISH TIME: clock time
6. TEMP: °C, 30-40
7. COND: mS/cm, 10-20
8. B COND: mS/cm
9. Na: mEq/L, 130-150
10. Bic: mEq/L, 20-40
11. HEPARIN PUMP: mL/h
12. DEVICE ID
13. CURRENT TIME
14. DIA LEFT: h:mm
15. BLOOD PUMP: mL/min
16. DIALYSATE FLOW: mL/min
17. TMP, 18. VENOUS PRESSURE, 19. ARTERIAL PRESSURE: mmHg
""",
)

PROFILE = DeviceProfile(
    key=KEY,
    model=MODEL,
    units=UNITS,
    categories=CATEGORIES,
    synonyms=SYNONYMS,
    prompt=PROMPT,
)
