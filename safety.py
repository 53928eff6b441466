# safety.py
import logging
from dataclasses import replace

from models import CalculationResult, KetoneAssessment, ActionRequired
from constants import BG_THRESHOLDS, GUIDANCE_LIBRARY, KetoneLevel, Severity

logger = logging.getLogger("sickday-engine")

CRITICAL_BG_NOTICE = ("CRITICAL BLOOD GLUCOSE (400 mg/dL / 22.2 mmol/L or higher): "
                      "contact your diabetes team or seek urgent medical help now.")

EMERGENCY_ESCALATION = ("EMERGENCY: high risk of diabetic ketoacidosis (DKA). "
                        "Go to A&E or call emergency services now. Do not wait to see if it improves.")

class KetoneRiskClassifier:
    """
    Maps (ketones, BG mg/dL, severity) -> escalation tier + text.
    Total over its domain: every combination lands on a defined tier.
    """

    @staticmethod
    def _classify_base(ketones: KetoneLevel, bg_mgdl: float, severity: Severity) -> KetoneAssessment:
        high = bg_mgdl > BG_THRESHOLDS.HIGH
        very_high = bg_mgdl > BG_THRESHOLDS.VERY_HIGH

        if ketones == KetoneLevel.NONE:
            if not high:
                return KetoneAssessment(
                    ActionRequired.NONE,
                    guidance="No ketones detected. Keep checking ketones if glucose rises above 250 mg/dL (13.9 mmol/L).",
                )
            return KetoneAssessment(
                ActionRequired.MONITOR,
                guidance="No ketones yet, but glucose is high. Recheck ketones in 2-4 hours.",
            )

        if ketones == KetoneLevel.TRACE:
            warning = ""
            if high:
                warning = "Trace ketones with glucose above 250 mg/dL (13.9 mmol/L): ketones may be starting to build."
            return KetoneAssessment(
                ActionRequired.MONITOR,
                warning=warning,
                guidance="Trace ketones. Drink extra sugar-free fluids and recheck ketones in 2-4 hours.",
            )

        if ketones == KetoneLevel.SMALL:
            if very_high:
                return KetoneAssessment(
                    ActionRequired.URGENT,
                    warning="Small ketones with glucose above 300 mg/dL (16.7 mmol/L).",
                    guidance="Take your correction dose, push fluids and recheck ketones in 2 hours. "
                             "Call your diabetes team if ketones rise.",
                )
            return KetoneAssessment(
                ActionRequired.MONITOR,
                warning="Small ketones present.",
                guidance="Drink extra fluids and recheck ketones and glucose in 2 hours.",
            )

        if ketones == KetoneLevel.MODERATE:
            if very_high or severity == Severity.SEVERE:
                return KetoneAssessment(
                    ActionRequired.EMERGENCY,
                    warning="Moderate ketones with very high glucose or severe illness: DKA risk.",
                    guidance=EMERGENCY_ESCALATION,
                )
            return KetoneAssessment(
                ActionRequired.URGENT,
                warning="Moderate ketones present.",
                guidance="Contact your diabetes team now. Take extra fluids and recheck ketones within 1-2 hours.",
            )

        # LARGE: unconditional
        return KetoneAssessment(
            ActionRequired.EMERGENCY,
            warning="Large ketones present: DKA risk.",
            guidance=EMERGENCY_ESCALATION,
        )

    @staticmethod
    def classify(ketones: KetoneLevel, bg_mgdl: float, severity: Severity) -> KetoneAssessment:
        assessment = KetoneRiskClassifier._classify_base(ketones, bg_mgdl, severity)

        # Critical-BG override: raise to at least URGENT, never lower an existing tier
        if bg_mgdl >= BG_THRESHOLDS.CRITICAL:
            action = assessment.action_required
            if action.rank < ActionRequired.URGENT.rank:
                action = ActionRequired.URGENT
            warning = CRITICAL_BG_NOTICE
            if assessment.warning:
                warning = f"{CRITICAL_BG_NOTICE} {assessment.warning}"
            assessment = KetoneAssessment(action, warning=warning, guidance=assessment.guidance)

        if assessment.action_required == ActionRequired.EMERGENCY:
            logger.warning("Emergency ketone classification: ketones=%s bg=%.0f mg/dL severity=%s",
                           ketones.value, bg_mgdl, severity.value)
        return assessment

    @staticmethod
    def annotate(result: CalculationResult) -> CalculationResult:
        """Attaches the ketone assessment to a calculator result (returns a new record)."""
        assessment = KetoneRiskClassifier.classify(result.ketone_level, result.bg_mgdl, result.severity)
        return replace(
            result,
            ketone_action_required=assessment.action_required,
            ketone_warning=assessment.warning,
            ketone_guidance=assessment.guidance,
            requires_escalation=assessment.requires_escalation,
            escalation_message=EMERGENCY_ESCALATION if assessment.requires_escalation else "",
        )

def stacking_warning(severity: Severity) -> str:
    """Minimum wait before the next correction. Advisory only, nothing is locked."""
    return GUIDANCE_LIBRARY.get(severity).stacking_interval

def min_redose_interval_hours(severity: Severity) -> float:
    return GUIDANCE_LIBRARY.get(severity).min_redose_interval_hours

def apply_stacking_advice(result: CalculationResult) -> CalculationResult:
    return replace(result, stacking_warning=stacking_warning(result.severity))
