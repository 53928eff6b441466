from enum import Enum
from dataclasses import dataclass
VERSION = "1.0.0"

class Severity(Enum):
    MINOR = "minor"
    MODERATE = "moderate"
    SEVERE = "severe"

class KetoneLevel(Enum):
    NONE = "none"
    TRACE = "trace"
    SMALL = "small"
    MODERATE = "moderate"
    LARGE = "large"

class BGUnits(Enum):
    MG_DL = "mg/dL"
    MMOL_L = "mmol/L"

class SupplyType(Enum):
    SHORT_ACTING_INSULIN = "short_acting_insulin"
    LONG_ACTING_INSULIN = "long_acting_insulin"
    NEEDLE = "needle"
    TEST_STRIP = "test_strip"
    LANCET = "lancet"
    KETONE_STRIP = "ketone_strip"
    CGM_SENSOR = "cgm_sensor"
    INFUSION_SET = "infusion_set"
    RESERVOIR = "reservoir"
    OTHER = "other"

class DOSING_CONSTANTS:
    MGDL_PER_MMOL = 18.0
    CORRECTION_RULE_NUMERATOR = 1800.0   # "1800 rule": CF = 1800 / TDD
    DEFAULT_TARGET_BG_MGDL = 120.0
    MAX_CORRECTION_FRACTION_OF_TDD = 0.2 # Hard ceiling, never bypassed
    DOSE_INCREMENT_UNITS = 0.5
    SMALL_CORRECTION_FACTOR = 10.0       # Below this, a mmol/L user stored a mmol factor
    DEFAULT_RATIO_UNITS_PER_10G = 1.0

    SEVERITY_MODIFIER = {
        Severity.MINOR: 1.0,
        Severity.MODERATE: 0.8,
        Severity.SEVERE: 0.6,
    }

    RATIO_MULTIPLIER = {
        Severity.MINOR: 1.1,
        Severity.MODERATE: 1.2,
        Severity.SEVERE: 1.3,
    }

class BG_THRESHOLDS:
    # mg/dL. mmol/L equivalents: 10.0 / 13.9 / 16.7 / 22.2
    ELEVATED = 180.0
    HIGH = 250.0
    VERY_HIGH = 300.0
    CRITICAL = 400.0

    # Published mmol/L readings that sit exactly on a boundary.
    # 16.7 * 18 = 300.6 would otherwise round to 301 and cross the strict "> 300" checks.
    MMOL_EQUIVALENTS = {
        10.0: ELEVATED,
        13.9: HIGH,
        16.7: VERY_HIGH,
        22.2: CRITICAL,
    }

    # (upper bound, inclusive upper?, modifier). Walked in order.
    # >400 drops back to 1.0: the advice there is to seek care, not dose more.
    ZONE_MODIFIERS = (
        (ELEVATED, True, 1.00),
        (HIGH, False, 1.10),
        (VERY_HIGH, False, 1.15),
        (CRITICAL, True, 1.20),
    )
    ABOVE_CRITICAL_MODIFIER = 1.00

class DURATION_THRESHOLDS:
    EXTENDED_HOURS = 24.0
    CONSIDER_CONTACT_HOURS = 48.0
    CONTACT_TEAM_HOURS = 72.0

@dataclass
class SeverityGuidance:
    label: str
    basal_adjustment: str
    hydration: str
    monitoring_frequency: str
    stacking_interval: str
    min_redose_interval_hours: float

class GUIDANCE_LIBRARY:
    """
    Literal advice text and minimum re-dose interval per severity.
    """
    SPECS = {
        Severity.MINOR: SeverityGuidance(
            label="Minor illness",
            basal_adjustment="Keep your usual basal (long-acting) insulin dose. Never stop basal insulin, even if you are not eating.",
            hydration="Sip sugar-free fluids regularly: aim for about 100-200 ml every hour while awake.",
            monitoring_frequency="Check blood glucose every 3-4 hours, including overnight if readings are high.",
            stacking_interval="Wait at least 3 hours between correction doses to avoid stacking insulin.",
            min_redose_interval_hours=3.0,
        ),
        Severity.MODERATE: SeverityGuidance(
            label="Moderate illness",
            basal_adjustment="Keep your basal insulin. Your diabetes team may advise increasing it by 10-20% if glucose stays high.",
            hydration="Drink at least 150-250 ml of fluid every hour. Use sugary fluids if you cannot eat and glucose is below target.",
            monitoring_frequency="Check blood glucose every 2-3 hours and ketones every 4 hours, including overnight.",
            stacking_interval="Wait at least 4 hours between correction doses to avoid stacking insulin.",
            min_redose_interval_hours=4.0,
        ),
        Severity.SEVERE: SeverityGuidance(
            label="Severe illness",
            basal_adjustment="Do not stop basal insulin. Contact your diabetes team today about adjusting basal doses.",
            hydration="Take small, frequent sips (about 250 ml every hour). If you cannot keep fluids down, seek medical help now.",
            monitoring_frequency="Check blood glucose every 1-2 hours and ketones every 2 hours, day and night.",
            stacking_interval="Wait at least 4–5 hours between correction doses, do NOT redose sooner.",
            min_redose_interval_hours=4.0,
        ),
    }

    @staticmethod
    def get(severity: Severity) -> SeverityGuidance:
        return GUIDANCE_LIBRARY.SPECS[severity]

class SUPPLY_MULTIPLIERS:
    """
    How much faster each supply type depletes.
    SICK is keyed by severity, TRAVEL is a single factor per type.
    """
    SICK = {
        SupplyType.SHORT_ACTING_INSULIN: {Severity.MINOR: 1.1, Severity.MODERATE: 1.2, Severity.SEVERE: 1.3},
        SupplyType.LONG_ACTING_INSULIN:  {Severity.MINOR: 1.0, Severity.MODERATE: 1.0, Severity.SEVERE: 1.0},
        SupplyType.NEEDLE:               {Severity.MINOR: 1.2, Severity.MODERATE: 1.5, Severity.SEVERE: 2.0},
        SupplyType.TEST_STRIP:           {Severity.MINOR: 1.5, Severity.MODERATE: 2.0, Severity.SEVERE: 3.0},
        SupplyType.LANCET:               {Severity.MINOR: 1.5, Severity.MODERATE: 2.0, Severity.SEVERE: 3.0},
        SupplyType.KETONE_STRIP:         {Severity.MINOR: 2.0, Severity.MODERATE: 4.0, Severity.SEVERE: 6.0},
        SupplyType.CGM_SENSOR:           {Severity.MINOR: 1.0, Severity.MODERATE: 1.0, Severity.SEVERE: 1.0},
        SupplyType.INFUSION_SET:         {Severity.MINOR: 1.0, Severity.MODERATE: 1.0, Severity.SEVERE: 1.0},
        SupplyType.RESERVOIR:            {Severity.MINOR: 1.1, Severity.MODERATE: 1.2, Severity.SEVERE: 1.3},
        SupplyType.OTHER:                {Severity.MINOR: 1.0, Severity.MODERATE: 1.0, Severity.SEVERE: 1.0},
    }

    TRAVEL = {
        SupplyType.SHORT_ACTING_INSULIN: 1.2,
        SupplyType.LONG_ACTING_INSULIN: 1.0,
        SupplyType.NEEDLE: 1.2,
        SupplyType.TEST_STRIP: 1.3,
        SupplyType.LANCET: 1.3,
        SupplyType.KETONE_STRIP: 1.0,
        SupplyType.CGM_SENSOR: 1.0,
        SupplyType.INFUSION_SET: 1.2,
        SupplyType.RESERVOIR: 1.1,
        SupplyType.OTHER: 1.0,
    }

    DAYS_LEFT_DISPLAY_CAP = 365

    @staticmethod
    def sick(supply_type: SupplyType, severity: Severity) -> float:
        return SUPPLY_MULTIPLIERS.SICK.get(supply_type, SUPPLY_MULTIPLIERS.SICK[SupplyType.OTHER])[severity]

    @staticmethod
    def travel(supply_type: SupplyType) -> float:
        return SUPPLY_MULTIPLIERS.TRAVEL.get(supply_type, 1.0)
