"""Fresenius 4008 B: fields, limits and prompt."""

from __future__ import annotations

from medireader.devices.base import DeviceProfile, build_prompt, range_rule
from medireader.schemas.devices import Category, ConfidenceThresholds, DeviceModel

KEY = "fresenius-4008b"

MODEL = DeviceModel(
    brand="Fresenius",
    model="4008 B",
    version="1.0",
    display_name="Fresenius 4008 B",
    supported_data_points=(
        "UF VOLUME",
        "TIME LEFT",
        "UF RATE",
        "UF GOAL",
        "ARTERIAL PRESSURE",
        "VENOUS PRESSURE",
        "TMP",
        "CONDUCTIVITY",
        "BOTTOM_DISPLAY_1",
        "BOTTOM_DISPLAY_2",
    ),
    confidence_thresholds=ConfidenceThresholds(high=0.95, medium=0.85, low=0.70),
    validation_rules=(
        range_rule("UF VOLUME", 0, 10000, "UF Volume should be between 0-10000 mL"),
        range_rule("UF RATE", 0, 3000, "UF Rate should be between 0-3000 mL/h"),
        range_rule("UF GOAL", 0, 10000, "UF Goal should be between 0-10000 mL"),
        range_rule("ARTERIAL PRESSURE", -400, 0, "Arterial pressure should be between -400 to 0 mmHg"),
        range_rule("VENOUS PRESSURE", 0, 400, "Venous pressure should be between 0-400 mmHg"),
        range_rule("TMP", 0, 500, "TMP should be between 0-500 mmHg"),
        range_rule("CONDUCTIVITY", 10, 20, "Conductivity should be between 10-20 mS/cm"),
    ),
)

UNITS: dict[str, tuple[str, ...]] = {
    "UF VOLUME": ("mL",),
    "TIME LEFT": ("h:mm",),
    "UF RATE": ("mL/h",),
    "UF GOAL": ("mL",),
    "ARTERIAL PRESSURE": ("mmHg",),
    "VENOUS PRESSURE": ("mmHg",),
    "TMP": ("mmHg",),
    "CONDUCTIVITY": ("mS/cm",),
    "BOTTOM_DISPLAY_1": (),
    "BOTTOM_DISPLAY_2": (),
}

CATEGORIES: dict[str, Category] = {
    "UF VOLUME": Category.ULTRAFILTRATION,
    "TIME LEFT": Category.TIME,
    "UF RATE": Category.ULTRAFILTRATION,
    "UF GOAL": Category.ULTRAFILTRATION,
    "ARTERIAL PRESSURE": Category.PRESSURE,
    "VENOUS PRESSURE": Category.PRESSURE,
    "TMP": Category.PRESSURE,
    "CONDUCTIVITY": Category.CONDUCTIVITY,
}

SYNONYMS: dict[str, frozenset[str]] = {
    "UF VOLUME": frozenset({"UF Volume", "Ultrafiltration Volume", "UF VOL"}),
    "TIME LEFT": frozenset({"UF Time Left", "UF TIME LEFT", "Time Left", "REMAINING"}),
    "UF RATE": frozenset({"UF Rate", "Ultrafiltration Rate"}),
    "UF GOAL": frozenset({"UF Goal", "Ultrafiltration Goal"}),
    "ARTERIAL PRESSURE": frozenset({"Arterial Pressure", "Art. Pressure"}),
    "VENOUS PRESSURE": frozenset({"Venous Pressure", "Ven. Pressure"}),
    "TMP": frozenset({"Transmembrane Pressure"}),
    "CONDUCTIVITY": frozenset({"Conductivity", "Cond"}),
    "BOTTOM_DISPLAY_1": frozenset({"BOTTOM DISPLAY 1", "Bottom Display 1"}),
    "BOTTOM_DISPLAY_2": frozenset({"BOTTOM DISPLAY 2", "Bottom Display 2"}),
}

PROMPT = build_prompt(
    """
This is a data extraction task for a FRESENIUS 4008 B dialysis machine display.

DIGITAL DISPLAYS:
- Black background displays with white numbers contain the most reliable data.

VERTICAL BAR GAUGES:
- The current value is the brightest, thickest, saturated yellow/orange LED.
- Dim, pale or thin LEDs mark alarm bounds and must be ignored.
- LED position maps proportionally onto the printed scale numbers.

CONFIDENCE LEVELS:
- Digital black displays: 0.95-1.0
- Yellow LED vertical bars: 0.85-0.94
- Green bottom LED displays: 0.70-0.84
""",
    """
FIELDS:
1. UF VOLUME (mL)
2. TIME LEFT (h:mm)
3. UF RATE (mL/h)
4. UF GOAL (mL)
5. ARTERIAL PRESSURE (mmHg, brightest yellow LED)
6. VENOUS PRESSURE (mmHg, brightest yellow LED)
7. TMP (mmHg, brightest yellow LED)
8. CONDUCTIVITY (mS/cm, brightest yellow LED)
9. BOTTOM_DISPLAY_1 (left green display at the bottom)
10. BOTTOM_DISPLAY_2 (right green display at the bottom)
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
