"""Fresenius 4008 S: fields, limits and prompt."""

from __future__ import annotations

from medireader.devices.base import DeviceProfile, build_prompt, pattern_rule, range_rule
from medireader.schemas.devices import Category, ConfidenceThresholds, DeviceModel

KEY = "fresenius-4008s"

MODEL = DeviceModel(
    brand="Fresenius",
    model="4008 S",
    version="1.0",
    display_name="Fresenius 4008 S",
    supported_data_points=(
        "Kt/V",
        "PLASMA NA",
        "GOAL IN",
        "CLEARANCE",
        "UF VOLUME",
        "UF TIME LEFT",
        "UF RATE",
        "UF GOAL",
        "EFF. BLOOD FLOW",
        "CUM. BLOOD VOL",
        "BLOOD PRESSURE SYS",
        "BLOOD PRESSURE DIA",
        "BLOOD PRESSURE MAP",
        "BLOOD PRESSURE PULSE",
        "QB(ml/min)",
        "Anticoagulant (ml)",
        "ARTERIAL PRESSURE",
        "VENOUS PRESSURE",
        "TMP",
        "CONDUCTIVITY",
        # Dialysate menu on newer software
        "BPM_SYS",
        "BPM_DIA",
        "DILUTION",
        "BASE_NA",
        "PRESCRIBED_NA",
        "BICARBONATE",
        "TEMPERATURE",
        "DIALYSATE_FLOW",
        "NA_PROFILE",
        "START_NA",
        "CDS_STATUS",
        "EMPTY_BIBAG",
        "CONDUCTIVITY_WINDOW",
    ),
    confidence_thresholds=ConfidenceThresholds(high=0.95, medium=0.85, low=0.70),
    validation_rules=(
        range_rule("UF VOLUME", 0, 10000, "UF Volume should be between 0-10000 mL"),
        range_rule("UF RATE", 0, 3000, "UF Rate should be between 0-3000 mL/h"),
        range_rule("Kt/V", 0.0, 2.0, "Kt/V should be between 0.0-2.0"),
        range_rule("PLASMA NA", 0, 500, "Plasma Na should be between 0-500 mmol/L"),
        range_rule("UF GOAL", 0, 10000, "UF Goal should be between 0-10000 mL"),
        range_rule("GOAL IN", 0, 5, "Goal In should be between 0 - 5 hours (h:mm)"),
        range_rule("CLEARANCE", 0, 500, "Clearance should be between 0-500 ml/min"),
        range_rule("EFF. BLOOD FLOW", 50, 500, "Effective Blood Flow should be between 50-500 mL/min"),
        range_rule("ARTERIAL PRESSURE", -400, 0, "Arterial pressure should be between -400 to 0 mmHg"),
        range_rule("VENOUS PRESSURE", 0, 400, "Venous pressure should be between 0-400 mmHg"),
        range_rule("TMP", 0, 500, "TMP should be between 0-500 mmHg"),
        range_rule("CONDUCTIVITY", 10, 20, "Conductivity should be between 10-20 mS/cm"),
        range_rule("QB(ml/min)", 0, 1000, "Rate should be between 0-1000 ml/min"),
        range_rule("Anticoagulant (ml)", 0.0, 5.0, "Bolus should be between 0-5 ml"),
        range_rule("BLOOD PRESSURE SYS", 80, 200, "Systolic blood pressure should be between 80-200 mmHg"),
        range_rule("BLOOD PRESSURE DIA", 40, 120, "Diastolic blood pressure should be between 40-120 mmHg"),
        range_rule("BLOOD PRESSURE MAP", 60, 150, "Mean arterial pressure should be between 60-150 mmHg"),
        range_rule("BLOOD PRESSURE PULSE", 40, 120, "Pulse rate should be between 40-120 1/min"),
        range_rule("BPM_SYS", 80, 200, "BPM Systolic should be between 80-200 mmHg"),
        range_rule("BPM_DIA", 40, 120, "BPM Diastolic should be between 40-120 mmHg"),
        pattern_rule("DILUTION", r"^\d+\+\d+$", 'Dilution should be in format like "1+34"'),
        range_rule("BASE_NA", 120, 150, "Base Na+ should be between 120-150 mmol/l"),
        range_rule("PRESCRIBED_NA", 120, 150, "Prescribed Na+ should be between 120-150 mmol/l"),
        range_rule("BICARBONATE", -10, 10, "Bicarbonate should be between -10 to +10 mmol/l"),
        range_rule("TEMPERATURE", 35.0, 40.0, "Temperature should be between 35.0-40.0 °C"),
        range_rule("DIALYSATE_FLOW", 300, 800, "Dialysate flow should be between 300-800 ml/min"),
        range_rule("NA_PROFILE", 0, 10, "Na Profile should be between 0-10"),
        range_rule("START_NA", 0, 150, "Start Na+ should be between 0-150 mmol/l"),
        range_rule("CONDUCTIVITY_WINDOW", 13.0, 15.5, "Conductivity window should be between 13.0-15.5 mS/cm"),
    ),
)

UNITS: dict[str, tuple[str, ...]] = {
    "Kt/V": ("",),
    "PLASMA NA": ("mmol/l",),
    "GOAL IN": ("h:mm",),
    "CLEARANCE": ("ml/min",),
    "UF VOLUME": ("mL",),
    "UF TIME LEFT": ("h:mm",),
    "UF RATE": ("mL/h",),
    "UF GOAL": ("mL",),
    "EFF. BLOOD FLOW": ("mL/min",),
    "CUM. BLOOD VOL": ("L",),
    "BLOOD PRESSURE SYS": ("mmHg",),
    "BLOOD PRESSURE DIA": ("mmHg",),
    "BLOOD PRESSURE MAP": ("mmHg",),
    "BLOOD PRESSURE PULSE": ("1/min",),
    "QB(ml/min)": ("ml/min",),
    "Anticoagulant (ml)": ("ml",),
    "ARTERIAL PRESSURE": ("mmHg",),
    "VENOUS PRESSURE": ("mmHg",),
    "TMP": ("mmHg",),
    "CONDUCTIVITY": ("mS/cm",),
    "BPM_SYS": ("mmHg",),
    "BPM_DIA": ("mmHg",),
    "DILUTION": ("",),
    "BASE_NA": ("mmol/l",),
    "PRESCRIBED_NA": ("mmol/l",),
    "BICARBONATE": ("mmol/l",),
    "TEMPERATURE": ("°C",),
    "DIALYSATE_FLOW": ("ml/min",),
    "NA_PROFILE": ("",),
    "START_NA": ("mmol/l",),
    "CDS_STATUS": ("",),
    "EMPTY_BIBAG": ("",),
    "CONDUCTIVITY_WINDOW": ("mS/cm",),
}

CATEGORIES: dict[str, Category] = {
    "Kt/V": Category.ULTRAFILTRATION,
    "PLASMA NA": Category.CONCENTRATION,
    "GOAL IN": Category.TIME,
    "CLEARANCE": Category.FLOW,
    "UF VOLUME": Category.ULTRAFILTRATION,
    "UF TIME LEFT": Category.TIME,
    "UF RATE": Category.ULTRAFILTRATION,
    "UF GOAL": Category.ULTRAFILTRATION,
    "EFF. BLOOD FLOW": Category.FLOW,
    "CUM. BLOOD VOL": Category.FLOW,
    "BLOOD PRESSURE SYS": Category.PRESSURE,
    "BLOOD PRESSURE DIA": Category.PRESSURE,
    "BLOOD PRESSURE MAP": Category.PRESSURE,
    "BLOOD PRESSURE PULSE": Category.PRESSURE,
    "QB(ml/min)": Category.FLOW,
    "Anticoagulant (ml)": Category.FLOW,
    "ARTERIAL PRESSURE": Category.PRESSURE,
    "VENOUS PRESSURE": Category.PRESSURE,
    "TMP": Category.PRESSURE,
    "CONDUCTIVITY": Category.CONDUCTIVITY,
    "BPM_SYS": Category.PRESSURE,
    "BPM_DIA": Category.PRESSURE,
    "DILUTION": Category.OTHER,
    "BASE_NA": Category.CONCENTRATION,
    "PRESCRIBED_NA": Category.CONCENTRATION,
    "BICARBONATE": Category.CONCENTRATION,
    "TEMPERATURE": Category.TEMPERATURE,
    "DIALYSATE_FLOW": Category.FLOW,
    "NA_PROFILE": Category.OTHER,
    "START_NA": Category.CONCENTRATION,
    "CDS_STATUS": Category.OTHER,
    "EMPTY_BIBAG": Category.OTHER,
    "CONDUCTIVITY_WINDOW": Category.CONDUCTIVITY,
}

SYNONYMS: dict[str, frozenset[str]] = {
    "Kt/V": frozenset({"KT/V", "Kt/v", "KTV"}),
    "PLASMA NA": frozenset({"Plasma Na", "Plasma Na+", "PLASMA NA+"}),
    "GOAL IN": frozenset({"Goal In", "Goal in"}),
    "CLEARANCE": frozenset({"Clearance"}),
    "UF VOLUME": frozenset({
        "UF Volume", "Ultrafiltration Volume", "UF VOL", "UF Vol", "ULTRAFILTRATION", "UF REMOVED",
    }),
    "UF TIME LEFT": frozenset({
        "UF Time Left", "TIME LEFT", "Time Left", "REMAINING", "TIME REM", "TIME TO GO",
    }),
    "UF RATE": frozenset({"UF Rate", "Ultrafiltration Rate", "ULTRAFILTRATION RATE", "UF SPEED", "UF/H"}),
    "UF GOAL": frozenset({
        "UF Goal", "Ultrafiltration Goal", "UF TARGET", "UF SET", "GOAL", "UF PRESCRIPTION",
    }),
    "EFF. BLOOD FLOW": frozenset({
        "Eff. Blood Flow", "Effective Blood Flow", "EFFECTIVE BLOOD FLOW",
        "EFF BLOOD", "EFF BLOOD FLOW", "Blood Flow", "BLOOD FLOW",
    }),
    "CUM. BLOOD VOL": frozenset({
        "Cum. Blood Vol", "Cumulative Blood Volume", "CUMULATIVE BLOOD", "CUM BLOOD",
        "BLOOD VOL", "BLOOD VOLUME", "TOTAL BLOOD",
    }),
    "BLOOD PRESSURE SYS": frozenset({"SYS", "Systolic"}),
    "BLOOD PRESSURE DIA": frozenset({"DIA", "Diastolic"}),
    "BLOOD PRESSURE MAP": frozenset({"MAP"}),
    "BLOOD PRESSURE PULSE": frozenset({"PULSE", "Pulse"}),
    "QB(ml/min)": frozenset({"QB", "Qb", "QB (ml/min)"}),
    "Anticoagulant (ml)": frozenset({"Anticoagulant", "ANTICOAGULANT", "Heparin", "HEPARIN"}),
    "ARTERIAL PRESSURE": frozenset({"Arterial Pressure", "Art. Pressure", "ART PRESS", "PA"}),
    "VENOUS PRESSURE": frozenset({"Venous Pressure", "Ven. Pressure", "VEN PRESS", "PV"}),
    "TMP": frozenset({"Transmembrane Pressure", "TRANSMEMBRANE PRESSURE"}),
    "CONDUCTIVITY": frozenset({"Conductivity", "Cond", "COND"}),
    "BPM_SYS": frozenset({"BPM SYS", "BPM Systolic"}),
    "BPM_DIA": frozenset({"BPM DIA", "BPM Diastolic"}),
    "DILUTION": frozenset({"Dilution"}),
    "BASE_NA": frozenset({"Base Na", "Base Na+", "BASE NA"}),
    "PRESCRIBED_NA": frozenset({"Prescribed Na", "Prescribed Na+", "PRESCRIBED NA"}),
    "BICARBONATE": frozenset({"Bicarbonate", "BIC", "HCO3"}),
    "TEMPERATURE": frozenset({"Temperature", "Temp", "TEMP"}),
    "DIALYSATE_FLOW": frozenset({"Dialysate Flow", "DIALYSATE FLOW", "QD"}),
    "NA_PROFILE": frozenset({"Na Profile", "NA PROFILE"}),
    "START_NA": frozenset({"Start Na", "START NA"}),
    "CDS_STATUS": frozenset({"CDS", "CDS Status"}),
    "EMPTY_BIBAG": frozenset({"Empty bibag", "EMPTY BIBAG"}),
    "CONDUCTIVITY_WINDOW": frozenset({"Conductivity Window", "COND WINDOW"}),
}

PROMPT = build_prompt(
    """
This is a data extraction task for a FRESENIUS 4008 S dialysis machine display.

DEVICE:
- "Fresenius Medical Care" and "4008 S" printed at the top, blue header with "Dialysis" tabs.
- Left side: vertical brown/orange bar gauges with LED indicators (pressures).
- Right side: black rectangular boxes with white digits. Search these first.
- Bottom: green LED-style displays (blood pressure monitor, heparin, blood pump).
- Newer software shows a Dialysate menu with Na+, bicarbonate, temperature and flow.
""",
    """
FIELDS (label variations in brackets):
- UF VOLUME ["UF VOL", "ULTRAFILTRATION", "UF"]: mL, 0-10000.
- UF TIME LEFT ["TIME LEFT", "REMAINING", "TIME REM"]: h:mm.
- UF RATE ["UF SPEED", "ULTRAFILTRATION RATE"]: mL/h, 0-3000.
- UF GOAL ["UF TARGET", "UF SET", "GOAL"]: mL, 0-10000.
- EFF. BLOOD FLOW ["EFFECTIVE BLOOD FLOW", "EFF BLOOD", "BLOOD FLOW"]: mL/min, 50-500.
- CUM. BLOOD VOL ["CUMULATIVE BLOOD", "CUM BLOOD", "BLOOD VOL"]: L.
- Kt/V, PLASMA NA (mmol/l), GOAL IN (h:mm), CLEARANCE (ml/min): OCM panel.
- ARTERIAL PRESSURE (-400 to 0 mmHg), VENOUS PRESSURE (0-400 mmHg), TMP (0-500 mmHg): bar gauges.
- CONDUCTIVITY: mS/cm, 10-20.
- BLOOD PRESSURE SYS, BLOOD PRESSURE DIA, BLOOD PRESSURE MAP (mmHg), BLOOD PRESSURE PULSE (1/min).
- QB(ml/min): blood pump rate. Anticoagulant (ml): heparin bolus, 0-5 ml.
- Dialysate menu: BPM_SYS, BPM_DIA, DILUTION (format "1+34"), BASE_NA, PRESCRIBED_NA,
  BICARBONATE (-10 to +10), TEMPERATURE (35.0-40.0 °C), DIALYSATE_FLOW (300-800 ml/min),
  NA_PROFILE, START_NA, CDS_STATUS, EMPTY_BIBAG, CONDUCTIVITY_WINDOW (13.0-15.5 mS/cm).
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
