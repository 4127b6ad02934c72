"""Nikkiso DBB-27: fields, limits and prompt."""

from __future__ import annotations

from medireader.devices.base import DeviceProfile, build_prompt, range_rule
from medireader.schemas.devices import Category, ConfidenceThresholds, DeviceModel

KEY = "nikkiso-dbb27"

MODEL = DeviceModel(
    brand="Nikkiso",
    model="DBB-27",
    version="1.0",
    display_name="Nikkiso DBB-27",
    supported_data_points=(
        "VEN PRESS",
        "DIALY PRESS",
        "UF VOLUME",
        "UF GOAL",
        "UF RATE",
        "START TIME",
        "ELAPSED TIME",
        "COMPLETE TIME",
        "REMAIN TIME",
        "DIALY FLOW",
        "DIALY TEMP",
        "T CONDUCT",
        "B CONDUCT",
        "IP TOTAL",
        "Na CONDUCT",
        "B. FLOW",
    ),
    confidence_thresholds=ConfidenceThresholds(high=0.95, medium=0.85, low=0.70),
    validation_rules=(
        range_rule("UF VOLUME", 0, 10000, "UF Volume should be between 0-10000 mL"),
        range_rule("UF RATE", 0, 3000, "UF Rate should be between 0-3000 mL/h"),
        range_rule("UF GOAL", 0, 10000, "UF Goal should be between 0-10000 mL"),
        range_rule("B. FLOW", 50, 500, "Blood flow should be between 50-500 mL/min"),
        range_rule("DIALY FLOW", 300, 800, "Dialysate flow should be between 300-800 mL/min"),
        range_rule("VEN PRESS", 0, 400, "Venous pressure should be between 0-400 mmHg"),
        range_rule("DIALY PRESS", 0, 500, "Dialysate pressure should be between 0-500 mmHg"),
        range_rule("T CONDUCT", 10, 20, "Total conductivity should be between 10-20 mS/cm"),
        range_rule("B CONDUCT", 10, 20, "Bicarbonate conductivity should be between 10-20 mS/cm"),
        range_rule("DIALY TEMP", 30, 40, "Dialysate temperature should be between 30-40°C"),
        range_rule("IP TOTAL", 0, 10.0, "Infusion total should be between 0-10"),
        range_rule("Na CONDUCT", 130, 150, "Sodium should be between 130-150 mEq/L"),
    ),
)

UNITS: dict[str, tuple[str, ...]] = {
    "UF VOLUME": ("mL", "L"),
    "UF RATE": ("mL/h", "L/h"),
    "UF GOAL": ("mL", "L"),
    "START TIME": ("h:mm",),
    "ELAPSED TIME": ("h:mm",),
    "COMPLETE TIME": ("h:mm",),
    "REMAIN TIME": ("h:mm",),
    "B. FLOW": ("mL/min",),
    "DIALY FLOW": ("mL/min",),
    "VEN PRESS": ("mmHg",),
    "DIALY PRESS": ("mmHg",),
    "T CONDUCT": ("mS/cm",),
    "B CONDUCT": ("mS/cm",),
    "DIALY TEMP": ("°C",),
    "IP TOTAL": ("mL", "L"),
    "Na CONDUCT": ("mEq/L", "mmol/L"),
}

CATEGORIES: dict[str, Category] = {
    "VEN PRESS": Category.PRESSURE,
    "DIALY PRESS": Category.PRESSURE,
    "UF VOLUME": Category.ULTRAFILTRATION,
    "UF GOAL": Category.ULTRAFILTRATION,
    "UF RATE": Category.ULTRAFILTRATION,
    "START TIME": Category.TIME,
    "ELAPSED TIME": Category.TIME,
    "COMPLETE TIME": Category.TIME,
    "REMAIN TIME": Category.TIME,
    "DIALY FLOW": Category.FLOW,
    "DIALY TEMP": Category.TEMPERATURE,
    "T CONDUCT": Category.CONDUCTIVITY,
    "B CONDUCT": Category.CONDUCTIVITY,
    "IP TOTAL": Category.FLOW,
    "Na CONDUCT": Category.CONCENTRATION,
    "B. FLOW": Category.FLOW,
}

SYNONYMS: dict[str, frozenset[str]] = {
    "VEN PRESS": frozenset({"Venous Pressure", "Ven Pressure", "PV", "VENOUS PRESS"}),
    "DIALY PRESS": frozenset({"DIALYSATE PRESS", "Dialysate Pressure", "DP"}),
    "UF VOLUME": frozenset({"UF Volume", "Ultrafiltration Volume", "UF Vol", "UF VOL"}),
    "UF GOAL": frozenset({"UF Goal", "Ultrafiltration Goal", "UF Target"}),
    "UF RATE": frozenset({"UF Rate", "Ultrafiltration Rate"}),
    "START TIME": frozenset({"Start Time"}),
    "ELAPSED TIME": frozenset({"Elapsed Time", "Treatment Time", "Session Time"}),
    "COMPLETE TIME": frozenset({"Complete Time", "Completion Time"}),
    "REMAIN TIME": frozenset({"Time Remaining", "Remaining Time", "Time Left", "REMAINING TIME"}),
    "DIALY FLOW": frozenset({"Dialysate Flow", "QD", "Dialysate Flow Rate", "DIALYSATE FLOW"}),
    "DIALY TEMP": frozenset({"Temperature", "Temp", "DIALYSATE TEMP"}),
    "T CONDUCT": frozenset({"Conductivity", "Cond", "T.CONDUCT"}),
    "B CONDUCT": frozenset({"B.CONDUCT", "BIC CONDUCT"}),
    "IP TOTAL": frozenset({"IP.TOTAL", "IP", "INFUSION", "INF TOTAL", "I.P.", "IP VOL", "IP VOLUME"}),
    "Na CONDUCT": frozenset({"Sodium", "Na", "NA CONDUCT"}),
    "B. FLOW": frozenset({"B.FLOW", "BLOOD FLOW", "Blood Flow", "QB", "BF"}),
}

PROMPT = build_prompt(
    """
You are reading a NIKKISO DBB-27 dialysis machine display.

DEVICE:
- Touchscreen interface with NIKKISO branding and digital parameter boxes.
- Pressures at the top, UF block in the middle, times and dialysate values below.
- UF values may be shown in mL ("4300") or L ("4.3"); copy them as displayed.
""",
    """
FIELDS in priority order (label variations in brackets):
1. VEN PRESS: mmHg, 0-400
2. DIALY PRESS ["DIALYSATE PRESS", "DP"]: mmHg, 0-500
3. UF VOLUME, 4. UF GOAL: mL or L
5. UF RATE: mL/h or L/h
6. START TIME, 7. ELAPSED TIME, 8. COMPLETE TIME, 9. REMAIN TIME: h:mm
10. DIALY FLOW: mL/min, 300-800
11. DIALY TEMP: °C, 30-40
12. T CONDUCT: mS/cm
13. B CONDUCT ["B.CONDUCT", "BIC CONDUCT"]: mS/cm
14. IP TOTAL ["IP.TOTAL", "IP", "INFUSION", "INF TOTAL"]: mL or L
15. Na CONDUCT: mEq/L, 130-150
16. B. FLOW ["B.FLOW", "BLOOD FLOW", "QB", "BF"]: mL/min, 50-500
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
