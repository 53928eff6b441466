import unittest
from unittest import mock
from app import generate_sick_day_plan, calculate_plan
from models import SickDayInput, ActionRequired
from safety import (
    KetoneRiskClassifier,
    CRITICAL_BG_NOTICE,
    EMERGENCY_ESCALATION,
    stacking_warning,
)
from constants import Severity, KetoneLevel, BGUnits

classify = KetoneRiskClassifier.classify

class TestKetoneClassifier(unittest.TestCase):
    """
    Walks every ketone tier across its BG boundaries.
    Run with: python -m unittest test_clinical_scenarios.py
    """

    def test_01_no_ketones(self):
        self.assertEqual(classify(KetoneLevel.NONE, 250, Severity.MINOR).action_required, ActionRequired.NONE)
        high = classify(KetoneLevel.NONE, 251, Severity.MINOR)
        self.assertEqual(high.action_required, ActionRequired.MONITOR)
        self.assertIn("2-4 hours", high.guidance)

    def test_02_trace_ketones(self):
        low = classify(KetoneLevel.TRACE, 200, Severity.SEVERE)
        self.assertEqual(low.action_required, ActionRequired.MONITOR)
        self.assertEqual(low.warning, "")

        high = classify(KetoneLevel.TRACE, 260, Severity.MINOR)
        self.assertEqual(high.action_required, ActionRequired.MONITOR)
        self.assertTrue(high.warning)

    def test_03_small_ketones(self):
        self.assertEqual(classify(KetoneLevel.SMALL, 300, Severity.MINOR).action_required, ActionRequired.MONITOR)
        self.assertEqual(classify(KetoneLevel.SMALL, 301, Severity.MINOR).action_required, ActionRequired.URGENT)

    def test_04_moderate_ketones(self):
        self.assertEqual(classify(KetoneLevel.MODERATE, 200, Severity.MINOR).action_required, ActionRequired.URGENT)
        self.assertEqual(classify(KetoneLevel.MODERATE, 300, Severity.MODERATE).action_required, ActionRequired.URGENT)
        self.assertEqual(classify(KetoneLevel.MODERATE, 301, Severity.MINOR).action_required, ActionRequired.EMERGENCY)
        # Severe illness alone is enough to escalate moderate ketones
        self.assertEqual(classify(KetoneLevel.MODERATE, 110, Severity.SEVERE).action_required, ActionRequired.EMERGENCY)

    def test_05_large_ketones_always_emergency(self):
        for bg in (70, 150, 250, 350, 500):
            for severity in Severity:
                res = classify(KetoneLevel.LARGE, bg, severity)
                self.assertEqual(res.action_required, ActionRequired.EMERGENCY)
                self.assertTrue(res.requires_escalation)

    def test_06_critical_bg_override(self):
        """BG >= 400: warning leads with the critical notice, action at least URGENT."""
        print("\nTEST 6: Critical BG override")
        trace = classify(KetoneLevel.TRACE, 400, Severity.MINOR)
        print(f"  > trace@400 -> {trace.action_required.value}")
        self.assertEqual(trace.action_required, ActionRequired.URGENT)
        self.assertTrue(trace.warning.startswith(CRITICAL_BG_NOTICE))

        small = classify(KetoneLevel.SMALL, 450, Severity.MINOR)
        self.assertEqual(small.action_required, ActionRequired.URGENT)
        self.assertIn("Small ketones", small.warning)

        # Never downgraded
        large = classify(KetoneLevel.LARGE, 450, Severity.MINOR)
        self.assertEqual(large.action_required, ActionRequired.EMERGENCY)
        self.assertTrue(large.warning.startswith(CRITICAL_BG_NOTICE))

        none = classify(KetoneLevel.NONE, 400, Severity.MINOR)
        self.assertEqual(none.action_required, ActionRequired.URGENT)

    def test_07_just_below_critical(self):
        res = classify(KetoneLevel.TRACE, 399, Severity.MINOR)
        self.assertEqual(res.action_required, ActionRequired.MONITOR)
        self.assertFalse(res.warning.startswith(CRITICAL_BG_NOTICE))

class TestStackingAdvice(unittest.TestCase):

    def test_01_minimum_intervals(self):
        self.assertIn("at least 3 hours", stacking_warning(Severity.MINOR))
        self.assertIn("at least 4 hours", stacking_warning(Severity.MODERATE))
        severe = stacking_warning(Severity.SEVERE)
        self.assertIn("at least 4–5 hours", severe)
        self.assertIn("do NOT redose sooner", severe)

class TestSickDayPipeline(unittest.TestCase):

    def create_input(self, **overrides):
        data = {
            'tdd': 40,
            'bg_level': 250,
            'severity': 'moderate',
            'ketone_level': 'small',
            'bg_units': 'mg/dL',
        }
        data.update(overrides)
        return data

    def test_01_end_to_end_example(self):
        """[PIPELINE] Dose, ketone tier and stacking text all land on one record."""
        plan = generate_sick_day_plan(self.create_input())
        self.assertTrue(plan.success)
        self.assertEqual(plan.errors, [])
        res = plan.result
        self.assertEqual(res.correction_dose, 2.5)
        self.assertEqual(res.ketone_action_required, ActionRequired.MONITOR)
        self.assertIn("at least 4 hours", res.stacking_warning)
        self.assertFalse(res.requires_escalation)
        self.assertIsNotNone(plan.audit_log)

    def test_02_critical_mmol_reading(self):
        """[UNITS] 22.2 mmol/L is treated as the 400 mg/dL critical line."""
        plan = generate_sick_day_plan(self.create_input(bg_level=22.2, bg_units='mmol/L', ketone_level='trace'))
        res = plan.result
        self.assertEqual(res.bg_mgdl, 400)
        self.assertEqual(res.ketone_action_required, ActionRequired.URGENT)
        self.assertIn("CRITICAL", res.ketone_warning)
        self.assertIn("mmol/L", res.bg_display)

    def test_02b_mmol_boundary_is_not_above_300(self):
        """[UNITS] 16.7 mmol/L is the 300 mg/dL line itself: small ketones stay at monitor."""
        at_line = generate_sick_day_plan(self.create_input(bg_level=16.7, bg_units='mmol/L')).result
        self.assertEqual(at_line.bg_mgdl, 300)
        self.assertEqual(at_line.ketone_action_required, ActionRequired.MONITOR)
        self.assertEqual(at_line.bg_display, "16.7 mmol/L")

        above = generate_sick_day_plan(self.create_input(bg_level=16.8, bg_units='mmol/L')).result
        self.assertEqual(above.ketone_action_required, ActionRequired.URGENT)

        moderate = generate_sick_day_plan(self.create_input(bg_level=16.7, bg_units='mmol/L',
                                                            ketone_level='moderate')).result
        self.assertEqual(moderate.ketone_action_required, ActionRequired.URGENT)

    def test_03_emergency_carries_escalation(self):
        plan = generate_sick_day_plan(self.create_input(ketone_level='large', bg_level=180))
        res = plan.result
        self.assertEqual(res.ketone_action_required, ActionRequired.EMERGENCY)
        self.assertTrue(res.requires_escalation)
        self.assertEqual(res.escalation_message, EMERGENCY_ESCALATION)

    def test_04_rejected_input_never_yields_a_dose(self):
        for bad in ({'tdd': 0}, {'bg_level': 0}, {'severity': None}, {'ketone_level': None},
                    {'severity': 'unknown'}):
            plan = generate_sick_day_plan(self.create_input(**bad))
            self.assertFalse(plan.success, bad)
            self.assertIsNone(plan.result)
            self.assertTrue(plan.errors)

    def test_04b_non_finite_input_fails_cleanly(self):
        """[SAFE FACTORY] NaN / inf come back as success=False, never as an exception."""
        for bad in ({'tdd': float('nan')}, {'tdd': float('inf')},
                    {'bg_level': float('nan')}, {'bg_level': float('inf')}):
            plan = generate_sick_day_plan(self.create_input(**bad))
            self.assertFalse(plan.success, bad)
            self.assertIsNone(plan.result)
            self.assertIn("positive number", plan.errors[0])

    def test_04c_engine_failure_is_reported_not_raised(self):
        with mock.patch("app.calculate_plan", side_effect=OverflowError("math range error")):
            plan = generate_sick_day_plan(self.create_input())
        self.assertFalse(plan.success)
        self.assertIn("math range error", plan.errors[0])

    def test_05_missing_field_is_rejected(self):
        data = self.create_input()
        del data['tdd']
        plan = generate_sick_day_plan(data)
        self.assertFalse(plan.success)

    def test_06_severe_illness_reduces_dose(self):
        """[MODIFIERS] Same BG, worse illness -> smaller correction, bigger ratios."""
        minor = calculate_plan(SickDayInput(40, 300, Severity.MINOR, KetoneLevel.NONE))
        severe = calculate_plan(SickDayInput(40, 300, Severity.SEVERE, KetoneLevel.NONE))
        self.assertGreater(minor.correction_dose, severe.correction_dose)
        self.assertGreater(severe.adjusted_ratios.lunch, minor.adjusted_ratios.lunch)

if __name__ == '__main__':
    unittest.main()
