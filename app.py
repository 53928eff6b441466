# --- METADATA & COMPLIANCE ---
__version__ = "1.0.0"
__validation_status__ = "Clinical validation pending"

MEDICAL_DISCLAIMER = """
⚠️ ADVISORY ESTIMATE - NOT MEDICAL ADVICE
• Final responsibility: the person with diabetes and their diabetes team
• Not a substitute for clinical judgment
• If ketones are moderate/large or you cannot keep fluids down, seek urgent care
"""

"""
SickDay Advisor: Pipeline
=========================
Calculator -> Ketone Classifier -> Stacking Advisor.
The one entry point the API, the session store and the advisory fallback share.
"""

import logging
from typing import Optional

from models import (
    SickDayInput,
    UserSettings,
    CalculationResult,
    PlanResult,
    AuditLog,
    PreconditionError,
    DataTypeError,
)
from core_dosing import SickDayDosingEngine
from safety import KetoneRiskClassifier, apply_stacking_advice

logger = logging.getLogger("sickday-engine")

def calculate_plan(inputs: SickDayInput, settings: Optional[UserSettings] = None) -> CalculationResult:
    """Runs the full chain on already-validated inputs."""
    result = SickDayDosingEngine.calculate(inputs, settings)
    result = KetoneRiskClassifier.annotate(result)
    result = apply_stacking_advice(result)
    logger.info("Sick-day plan: dose=%.1fu severity=%s ketone_action=%s",
                result.correction_dose, result.severity.value, result.ketone_action_required.value)
    return result

def generate_sick_day_plan(data: dict, settings: Optional[UserSettings] = None) -> PlanResult:
    """
    SAFE FACTORY: validates raw input, runs the pipeline, formats errors.
    Precondition failures come back as success=False, never as a partial dose.
    """
    try:
        inputs = SickDayInput(**data)
    except (PreconditionError, DataTypeError, ValueError, TypeError) as e:
        logger.warning("Sick-day input rejected: %s", e)
        return PlanResult(success=False, result=None, errors=[str(e)])

    try:
        result = calculate_plan(inputs, settings)
    except (ArithmeticError, ValueError) as e:
        logger.error("Sick-day engine failure: %s", e, exc_info=True)
        return PlanResult(success=False, result=None, errors=[f"Calculation failed: {e}"])

    return PlanResult(
        success=True,
        result=result,
        errors=[],
        audit_log=AuditLog(inputs_hash=hash(str(data))),
    )
