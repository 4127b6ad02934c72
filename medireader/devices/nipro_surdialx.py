"""Nipro SurdialX: fields, limits and prompt."""

from __future__ import annotations

from medireader.devices.base import DeviceProfile, build_prompt, range_rule
from medireader.schemas.devices import Category, ConfidenceThresholds, DeviceModel

KEY = "nipro-surdialx"

MODEL = DeviceModel(
    brand="Nipro",
    model="SurdialX",
    version="1.0",
    display_name="Nipro SurdialX",
    supported_data_points=(
        "MACHINE_ID",
        "BLOOD_FLOW",
        "TREATMENT_TIME_REMAINING",
        "UF_GOAL",
        "UF_RATE",
        "UF_VOL",
        "ART_PRESSURE",
        "VEN_PRESSURE",
        "TMP",
        "COND",
        "B_COND",
        "TEMP",
        "PRESCR_NA",
        "PRESCR_BIC",
        "HEPARIN_TOTAL_VOL",
        "HEPARIN_RATE",
        "BPM_SYSTOLIC",
        "BPM_DIASTOLIC",
        "BPM_PULSE",
        "CURRENT_DATE",
        "CURRENT_TIME",
        "DIALYSATE_FLOW",
    ),
    confidence_thresholds=ConfidenceThresholds(high=0.95, medium=0.85, low=0.70),
    validation_rules=(
        range_rule("TEMP", 30, 40, "Temperature should be between 30-40°C"),
        range_rule("UF_GOAL", 0, 10, "UF Goal should be between 0-10 L"),
        range_rule("UF_RATE", 0, 2, "UF Rate should be between 0-2 L/h"),
        range_rule("COND", 10, 20, "Conductivity should be between 10-20 mS/cm"),
        range_rule("PRESCR_NA", 130, 150, "Prescribed sodium should be between 130-150 mEq/L"),
        range_rule("PRESCR_BIC", 20, 40, "Prescribed bicarbonate should be between 20-40 mEq/L"),
        range_rule("ART_PRESSURE", -300, 0, "Arterial pressure should be between -300 to 0 mmHg"),
        range_rule("VEN_PRESSURE", 0, 300, "Venous pressure should be between 0-300 mmHg"),
        range_rule("BLOOD_FLOW", 50, 500, "Blood flow should be between 50-500 mL/min"),
    ),
)

UNITS: dict[str, tuple[str, ...]] = {
    "MACHINE_ID": (),
    "BLOOD_FLOW": ("mL/min",),
    "TREATMENT_TIME_REMAINING": ("h:mm",),
    "UF_GOAL": ("L", "mL"),
    "UF_RATE": ("L/h", "mL/min"),
    "UF_VOL": ("L", "mL"),
    "ART_PRESSURE": ("mmHg",),
    "VEN_PRESSURE": ("mmHg",),
    "TMP": ("mmHg",),
    "COND": ("mS/cm",),
    "B_COND": ("mS/cm",),
    "TEMP": ("°C",),
    "PRESCR_NA": ("mEq/L", "mmol/L"),
    "PRESCR_BIC": ("mEq/L", "mmol/L"),
    "HEPARIN_TOTAL_VOL": ("mL",),
    "HEPARIN_RATE": ("mL/h",),
    "BPM_SYSTOLIC": ("mmHg",),
    "BPM_DIASTOLIC": ("mmHg",),
    "BPM_PULSE": ("bpm",),
    "CURRENT_DATE": (),
    "CURRENT_TIME": (),
    "DIALYSATE_FLOW": ("mL/min",),
}

CATEGORIES: dict[str, Category] = {
    "MACHINE_ID": Category.OTHER,
    "BLOOD_FLOW": Category.FLOW,
    "TREATMENT_TIME_REMAINING": Category.TIME,
    "UF_GOAL": Category.ULTRAFILTRATION,
    "UF_RATE": Category.ULTRAFILTRATION,
    "UF_VOL": Category.ULTRAFILTRATION,
    "ART_PRESSURE": Category.PRESSURE,
    "VEN_PRESSURE": Category.PRESSURE,
    "TMP": Category.PRESSURE,
    "COND": Category.CONDUCTIVITY,
    "B_COND": Category.CONDUCTIVITY,
    "TEMP": Category.TEMPERATURE,
    "PRESCR_NA": Category.CONCENTRATION,
    "PRESCR_BIC": Category.CONCENTRATION,
    "HEPARIN_TOTAL_VOL": Category.FLOW,
    "HEPARIN_RATE": Category.FLOW,
    "BPM_SYSTOLIC": Category.PRESSURE,
    "BPM_DIASTOLIC": Category.PRESSURE,
    "BPM_PULSE": Category.OTHER,
    "CURRENT_DATE": Category.TIME,
    "CURRENT_TIME": Category.TIME,
    "DIALYSATE_FLOW": Category.FLOW,
}

SYNONYMS: dict[str, frozenset[str]] = {
    "MACHINE_ID": frozenset({"MC:NO", "MC NO", "Machine ID"}),
    "BLOOD_FLOW": frozenset({"Blood Flow", "BLOOD FLOW", "QB"}),
    "TREATMENT_TIME_REMAINING": frozenset({"Time Remaining", "Remaining Time", "TIME REMAINING"}),
    "UF_GOAL": frozenset({"UF Goal", "UF GOAL"}),
    "UF_RATE": frozenset({"UF Rate", "UF RATE"}),
    "UF_VOL": frozenset({"UF Vol", "UF VOL", "UF Volume", "UF VOLUME"}),
    "ART_PRESSURE": frozenset({"ART", "Arterial Pressure", "ART PRESSURE"}),
    "VEN_PRESSURE": frozenset({"VEN", "Venous Pressure", "VEN PRESSURE"}),
    "TMP": frozenset({"Transmembrane Pressure"}),
    "COND": frozenset({"Conductivity", "Cond"}),
    "B_COND": frozenset({"B-COND", "B COND", "B-Cond"}),
    "TEMP": frozenset({"Temperature", "Temp"}),
    "PRESCR_NA": frozenset({"Prescr. Na", "Na", "Sodium"}),
    "PRESCR_BIC": frozenset({"Prescr. Bic", "Bic", "Bicarbonate"}),
    "HEPARIN_TOTAL_VOL": frozenset({"Heparin Total Vol", "Heparin Volume"}),
    "HEPARIN_RATE": frozenset({"Heparin Rate"}),
    "BPM_SYSTOLIC": frozenset({"Systolic", "SYS"}),
    "BPM_DIASTOLIC": frozenset({"Diastolic", "DIA"}),
    "BPM_PULSE": frozenset({"Pulse", "PULSE"}),
    "CURRENT_DATE": frozenset({"Date", "Current Date"}),
    "CURRENT_TIME": frozenset({"Time", "Current Time"}),
    "DIALYSATE_FLOW": frozenset({"Dialysate Flow", "QD"}),
}

PROMPT = build_prompt(
    """
You are reading a NIPRO SurdialX dialysis machine display.

DEVICE:
- Light blue/cyan background with dark blue text, modern touchscreen interface.
- Machine ID at the top centre in "MC:NO XXXX" format; date and time at the top right.
- Left: ART, VEN and TMP pressures with horizontal bar graphs.
- Middle: COND and B-COND with bar graphs. Temperature at the bottom left.
- Right: treatment parameters, blood flow and heparin.
""",
    """
FIELDS in priority order:
1. MACHINE_ID: number after "MC:NO", e.g. "9137"
2. BLOOD_FLOW: mL/min, e.g. "280"
3. TREATMENT_TIME_REMAINING: h:mm, e.g. "3:43"
4. UF_GOAL: L, e.g. "1.80"
5. UF_RATE: L/h, e.g. "0.45"
6. UF_VOL: L removed so far, e.g. "0.12"
7. ART_PRESSURE: mmHg, negative, e.g. "-119"
8. VEN_PRESSURE: mmHg, e.g. "116"
9. TMP: mmHg, e.g. "8"
10. COND: mS/cm, e.g. "14.2"
11. B_COND: mS/cm, e.g. "3.11"
12. TEMP: °C, e.g. "36.5"
13. PRESCR_NA: mEq/L, e.g. "140"
14. PRESCR_BIC: mEq/L, e.g. "31"
15. HEPARIN_TOTAL_VOL: mL
16. HEPARIN_RATE: mL/h
17. BPM_SYSTOLIC, 18. BPM_DIASTOLIC: mmHg, the two numbers of the BP reading, e.g. "109/57"
19. BPM_PULSE: bpm
20. CURRENT_DATE: e.g. "07.08.2025"
21. CURRENT_TIME
22. DIALYSATE_FLOW: mL/min, if visible
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
