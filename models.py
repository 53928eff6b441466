"""
SickDay Advisor: Data Dictionary
================================
Defines the state space of the sick-day engine: Inputs (user + settings),
the persisted Session and Journal records, and the Outputs (dose advice,
ketone escalation, supply projections).

NO LOGIC is implemented here beyond input validation.
"""

import math
from dataclasses import dataclass, field, asdict
from enum import Enum
from typing import List, Optional
from datetime import datetime
from constants import VERSION, Severity, KetoneLevel, BGUnits, SupplyType

class PreconditionError(ValueError):
    """Raised when required inputs are missing or non-positive. Calculator refuses to run."""
    pass

class DataTypeError(TypeError):
    """Raised when inputs are wrong python types (str instead of float)."""
    pass

class SessionNotActiveError(RuntimeError):
    """Raised when a session operation needs sick-day mode to be active."""
    pass

class JournalEntryNotFoundError(KeyError):
    pass

# --- 1. ENUMS ---

class ActionRequired(Enum):
    NONE = "none"
    MONITOR = "monitor"
    URGENT = "urgent"
    EMERGENCY = "emergency"

    @property
    def rank(self) -> int:
        return _ACTION_RANK[self]

_ACTION_RANK = {
    ActionRequired.NONE: 0,
    ActionRequired.MONITOR: 1,
    ActionRequired.URGENT: 2,
    ActionRequired.EMERGENCY: 3,
}

class TrendDirection(Enum):
    UP = "up"
    DOWN = "down"
    STABLE = "stable"

class DurationTier(Enum):
    NONE = "none"
    EXTENDED = "extended"                  # >= 24h
    CONSIDER_CONTACT = "consider_contact"  # >= 48h
    CONTACT_TEAM = "contact_team"          # >= 72h

class AlertLevel(Enum):
    INFO = "info"
    WARNING = "warning"
    CRITICAL = "critical"

def _coerce_enum(enum_cls, value, field_name: str):
    if value is None:
        raise PreconditionError(f"'{field_name}' is required")
    if isinstance(value, enum_cls):
        return value
    return enum_cls(value)  # ValueError for out-of-domain strings

# --- 2. INPUT LAYER ---

@dataclass
class UserSettings:
    """
    Read-only settings owned by the wider app.
    Ratios are 'units per 10g carb' strings, exactly as the user typed them.
    """
    correction_factor: Optional[float] = None
    target_bg_high: Optional[float] = None
    breakfast_ratio: Optional[str] = None
    lunch_ratio: Optional[str] = None
    dinner_ratio: Optional[str] = None
    snack_ratio: Optional[str] = None

@dataclass
class SickDayInput:
    """The four values collected when the user asks for a sick-day calculation."""
    tdd: float
    bg_level: float
    severity: Severity
    ketone_level: KetoneLevel
    bg_units: BGUnits = BGUnits.MG_DL

    def __post_init__(self):
        # 1. Required discriminants (no silent defaulting)
        self.severity = _coerce_enum(Severity, self.severity, "severity")
        self.ketone_level = _coerce_enum(KetoneLevel, self.ketone_level, "ketone_level")
        self.bg_units = _coerce_enum(BGUnits, self.bg_units, "bg_units")

        # 2. Type Safety
        for name in ("tdd", "bg_level"):
            val = getattr(self, name)
            if val is None:
                raise PreconditionError(f"'{name}' is required")
            if isinstance(val, bool) or not isinstance(val, (int, float)):
                raise DataTypeError(f"Field '{name}' must be numeric, got {type(val)}")

        # 3. Hard preconditions (NaN compares False against everything, so check finiteness first)
        if not math.isfinite(self.tdd) or self.tdd <= 0:
            raise PreconditionError(f"Total daily dose must be a positive number, got {self.tdd}")
        if not math.isfinite(self.bg_level) or self.bg_level <= 0:
            raise PreconditionError(f"Blood glucose must be a positive number, got {self.bg_level}")

# --- 3. OUTPUT LAYER ---

@dataclass
class MealRatios:
    """Units of rapid-acting insulin per 10g carbohydrate."""
    breakfast: float
    lunch: float
    dinner: float
    snack: float

@dataclass
class KetoneAssessment:
    action_required: ActionRequired
    warning: str = ""
    guidance: str = ""

    @property
    def requires_escalation(self) -> bool:
        return self.action_required == ActionRequired.EMERGENCY

@dataclass
class CalculationResult:
    """
    One full sick-day recommendation.
    Never persisted on its own: embedded in the session's latest snapshot.
    """
    correction_dose: float          # units, multiple of 0.5, 0 <= dose <= 0.2 * TDD
    base_correction_dose: float     # units, 1 decimal
    severity_modifier: float
    bg_zone_modifier: float
    correction_factor_mgdl: float   # mg/dL drop per unit actually used
    target_bg_mgdl: float
    bg_mgdl: float
    max_correction_dose: float      # 0.2 * TDD
    cap_applied: bool

    adjusted_ratios: MealRatios
    original_ratios: MealRatios
    ratio_multiplier: float

    basal_adjustment: str
    hydration: str
    monitoring_frequency: str
    stacking_warning: str = ""

    ketone_action_required: ActionRequired = ActionRequired.NONE
    ketone_warning: str = ""
    ketone_guidance: str = ""
    requires_escalation: bool = False
    escalation_message: str = ""

    severity: Severity = Severity.MINOR
    ketone_level: KetoneLevel = KetoneLevel.NONE
    bg_units: BGUnits = BGUnits.MG_DL
    bg_display: str = ""
    target_display: str = ""

@dataclass
class AuditLog:
    timestamp: str = field(default_factory=lambda: datetime.now().isoformat())
    action: str = "sick_day_calculation"
    inputs_hash: int = 0
    model_version: str = VERSION

@dataclass
class PlanResult:
    """Standardized response format for API/UI."""
    success: bool
    result: Optional[CalculationResult]
    errors: List[str]
    audit_log: Optional[AuditLog] = None

# --- 4. PERSISTED RECORDS ---

@dataclass
class SickDaySession:
    severity: Severity
    bg_units: BGUnits
    activated_at: datetime
    last_updated: datetime
    bg_level: Optional[float] = None
    ketone_level: KetoneLevel = KetoneLevel.NONE
    latest_result: Optional[dict] = None  # JSON snapshot of the last CalculationResult

@dataclass(frozen=True)
class SickDayJournalEntry:
    """One logged check. Immutable: entries are deleted, never edited."""
    id: str
    timestamp: datetime
    bg: float
    bg_units: BGUnits
    ketone_level: KetoneLevel
    severity: Severity
    correction_dose: Optional[float] = None
    fluids_ml: Optional[float] = None
    symptoms: str = ""
    notes: str = ""

@dataclass
class DurationStatus:
    elapsed_hours: float
    elapsed_days: int
    label: str
    tier: DurationTier
    alert_level: AlertLevel
    message: str = ""

# --- 5. SUPPLIES & SCENARIOS ---

@dataclass
class Supply:
    type: SupplyType
    daily_usage: float
    current_quantity: float
    id: Optional[str] = None
    name: str = ""

    def __post_init__(self):
        self.type = _coerce_enum(SupplyType, self.type, "type")

@dataclass
class SupplyProjection:
    supply_id: Optional[str]
    name: str
    type: SupplyType
    daily_usage: float
    sick_multiplier: float
    travel_multiplier: float
    combined_multiplier: float
    adjusted_daily_usage: float
    normal_days_left: int
    sick_days_left: int
    days_lost: int

@dataclass
class TravelScenario:
    destination: str = ""
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    active: bool = True

# --- 6. SERIALIZATION HELPERS ---

def to_jsonable(obj) -> dict:
    """asdict() with enums flattened to their values and datetimes to ISO strings."""
    def _convert(value):
        if isinstance(value, Enum):
            return value.value
        if isinstance(value, datetime):
            return value.isoformat()
        if isinstance(value, dict):
            return {k: _convert(v) for k, v in value.items()}
        if isinstance(value, list):
            return [_convert(v) for v in value]
        return value
    return _convert(asdict(obj))
