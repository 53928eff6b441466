"""
SickDay Advisor: Core Dosing Engine
===================================
The mathematical core that translates (TDD, BG, severity, settings) into a
correction dose and adjusted mealtime ratios.

All correction math runs in mg/dL. mmol/L only exists at the edges.
"""

import logging
import math
from typing import Optional

from models import (
    SickDayInput,
    UserSettings,
    CalculationResult,
    MealRatios,
)
from constants import (
    DOSING_CONSTANTS,
    BG_THRESHOLDS,
    GUIDANCE_LIBRARY,
    BGUnits,
    Severity,
)

logger = logging.getLogger("sickday-engine")

def _round_half_up(value: float, step: float) -> float:
    """Round to the nearest multiple of step, halves going up (not banker's rounding)."""
    # round(..., 9) strips float noise like 2.6500000000000004 before flooring
    steps = math.floor(round(value / step, 9) + 0.5)
    return round(steps * step, 6)

class SickDayDosingEngine:
    """
    The Mathematical Core.
    Clinical Inputs -> Correction Factor / Target -> Modified, Capped Dose -> Ratios.
    """

    # --- UNIT CONVERTER ---

    @staticmethod
    def mgdl_to_mmol(value: float) -> float:
        return _round_half_up(value / DOSING_CONSTANTS.MGDL_PER_MMOL, 0.1)

    @staticmethod
    def mmol_to_mgdl(value: float) -> float:
        return _round_half_up(value * DOSING_CONSTANTS.MGDL_PER_MMOL, 1.0)

    @staticmethod
    def to_mgdl(value: float, units: BGUnits) -> float:
        """
        Reading in mg/dL for the decision logic.
        A mmol/L reading equal to a published threshold maps onto that threshold exactly.
        """
        if units == BGUnits.MMOL_L:
            boundary = BG_THRESHOLDS.MMOL_EQUIVALENTS.get(round(value, 6))
            if boundary is not None:
                return boundary
            return SickDayDosingEngine.mmol_to_mgdl(value)
        return float(value)

    @staticmethod
    def format_bg(value_mgdl: float, units: BGUnits) -> str:
        """Display string in the caller's units, always with the unit label."""
        if units == BGUnits.MMOL_L:
            return f"{SickDayDosingEngine.mgdl_to_mmol(value_mgdl):.1f} mmol/L"
        return f"{int(round(value_mgdl))} mg/dL"

    # --- SETTINGS RESOLUTION (soft defaults) ---

    @staticmethod
    def resolve_correction_factor(tdd: float, units: BGUnits,
                                  correction_factor: Optional[float]) -> float:
        """
        Returns mg/dL drop per unit.
        A stored factor < 10 from a mmol/L user is a mmol/L factor: promote it.
        """
        if correction_factor is not None and correction_factor > 0:
            if units == BGUnits.MMOL_L and correction_factor < DOSING_CONSTANTS.SMALL_CORRECTION_FACTOR:
                return correction_factor * DOSING_CONSTANTS.MGDL_PER_MMOL
            return float(correction_factor)

        logger.debug("No correction factor stored, using 1800 rule for TDD %s", tdd)
        return max(1.0, _round_half_up(DOSING_CONSTANTS.CORRECTION_RULE_NUMERATOR / tdd, 1.0))

    @staticmethod
    def resolve_target_bg(units: BGUnits, target_bg_high: Optional[float]) -> float:
        if target_bg_high is not None and target_bg_high > 0:
            return SickDayDosingEngine.to_mgdl(target_bg_high, units)
        logger.debug("No target BG stored, using default %s mg/dL", DOSING_CONSTANTS.DEFAULT_TARGET_BG_MGDL)
        return DOSING_CONSTANTS.DEFAULT_TARGET_BG_MGDL

    # --- MODIFIERS ---

    @staticmethod
    def severity_modifier(severity: Severity) -> float:
        return DOSING_CONSTANTS.SEVERITY_MODIFIER[severity]

    @staticmethod
    def bg_zone_modifier(bg_mgdl: float) -> float:
        """
        Not monotonic: above 400 mg/dL the modifier falls back to 1.0.
        """
        for upper, inclusive, modifier in BG_THRESHOLDS.ZONE_MODIFIERS:
            if bg_mgdl < upper or (inclusive and bg_mgdl == upper):
                return modifier
        return BG_THRESHOLDS.ABOVE_CRITICAL_MODIFIER

    # --- DOSE ---

    @staticmethod
    def base_correction_dose(bg_mgdl: float, target_mgdl: float, cf_mgdl: float) -> float:
        return _round_half_up(max(0.0, (bg_mgdl - target_mgdl) / cf_mgdl), 0.1)

    @staticmethod
    def cap_and_round(raw_dose: float, tdd: float) -> tuple:
        """
        Applies the 0.2 * TDD ceiling, then rounds to 0.5 units.
        Returns (dose, max_dose, cap_applied). The rounded dose never exceeds the ceiling.
        """
        max_dose = tdd * DOSING_CONSTANTS.MAX_CORRECTION_FRACTION_OF_TDD
        step = DOSING_CONSTANTS.DOSE_INCREMENT_UNITS
        cap_applied = raw_dose > max_dose
        capped = min(max(raw_dose, 0.0), max_dose)

        dose = _round_half_up(capped, step)
        if dose > max_dose:
            # Half-up rounding of a capped value can land above the ceiling
            dose = math.floor(round(max_dose / step, 9)) * step
        return dose, round(max_dose, 2), cap_applied

    # --- RATIOS ---

    @staticmethod
    def parse_ratio(raw) -> float:
        """'1.2' -> 1.2. Unset, unparseable or non-positive -> 1.0 units/10g."""
        if raw is None:
            return DOSING_CONSTANTS.DEFAULT_RATIO_UNITS_PER_10G
        try:
            value = float(str(raw).strip())
        except ValueError:
            return DOSING_CONSTANTS.DEFAULT_RATIO_UNITS_PER_10G
        if not math.isfinite(value) or value <= 0:
            return DOSING_CONSTANTS.DEFAULT_RATIO_UNITS_PER_10G
        return value

    @staticmethod
    def adjust_ratios(settings: UserSettings, severity: Severity) -> tuple:
        """Returns (adjusted, original, multiplier). Originals are always kept for display."""
        multiplier = DOSING_CONSTANTS.RATIO_MULTIPLIER[severity]
        parse = SickDayDosingEngine.parse_ratio
        original = MealRatios(
            breakfast=parse(settings.breakfast_ratio),
            lunch=parse(settings.lunch_ratio),
            dinner=parse(settings.dinner_ratio),
            snack=parse(settings.snack_ratio),
        )
        adjusted = MealRatios(
            breakfast=_round_half_up(original.breakfast * multiplier, 0.1),
            lunch=_round_half_up(original.lunch * multiplier, 0.1),
            dinner=_round_half_up(original.dinner * multiplier, 0.1),
            snack=_round_half_up(original.snack * multiplier, 0.1),
        )
        return adjusted, original, multiplier

    # --- MASTER BUILDER ---

    @staticmethod
    def calculate(inputs: SickDayInput, settings: Optional[UserSettings] = None) -> CalculationResult:
        """
        Produces the dose + ratio recommendation.
        Preconditions (TDD > 0, BG > 0) are enforced by SickDayInput, not here.
        """
        settings = settings or UserSettings()
        units = inputs.bg_units

        bg_mgdl = SickDayDosingEngine.to_mgdl(inputs.bg_level, units)
        cf = SickDayDosingEngine.resolve_correction_factor(inputs.tdd, units, settings.correction_factor)
        target = SickDayDosingEngine.resolve_target_bg(units, settings.target_bg_high)

        # Rounded base feeds the modifiers: keep this order for parity with existing results
        base = SickDayDosingEngine.base_correction_dose(bg_mgdl, target, cf)
        sev_mod = SickDayDosingEngine.severity_modifier(inputs.severity)
        zone_mod = SickDayDosingEngine.bg_zone_modifier(bg_mgdl)

        dose, max_dose, cap_applied = SickDayDosingEngine.cap_and_round(
            base * sev_mod * zone_mod, inputs.tdd
        )
        if cap_applied:
            logger.info("Correction dose capped at %.1f units (0.2 x TDD %.1f)", max_dose, inputs.tdd)

        adjusted, original, ratio_mult = SickDayDosingEngine.adjust_ratios(settings, inputs.severity)
        guidance = GUIDANCE_LIBRARY.get(inputs.severity)

        return CalculationResult(
            correction_dose=dose,
            base_correction_dose=base,
            severity_modifier=sev_mod,
            bg_zone_modifier=zone_mod,
            correction_factor_mgdl=cf,
            target_bg_mgdl=target,
            bg_mgdl=bg_mgdl,
            max_correction_dose=max_dose,
            cap_applied=cap_applied,
            adjusted_ratios=adjusted,
            original_ratios=original,
            ratio_multiplier=ratio_mult,
            basal_adjustment=guidance.basal_adjustment,
            hydration=guidance.hydration,
            monitoring_frequency=guidance.monitoring_frequency,
            severity=inputs.severity,
            ketone_level=inputs.ketone_level,
            bg_units=units,
            bg_display=SickDayDosingEngine.format_bg(bg_mgdl, units),
            target_display=SickDayDosingEngine.format_bg(target, units),
        )
