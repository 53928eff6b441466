import unittest
from supply import SupplyImpactProjector
from models import Supply
from constants import Severity, SupplyType

project = SupplyImpactProjector.project

class TestSupplyImpactProjector(unittest.TestCase):

    def test_01_severe_illness_shortens_insulin_supply(self):
        """20u/day x1.3 = 26u/day: 100u lasts 3 days instead of 5."""
        insulin = Supply(SupplyType.SHORT_ACTING_INSULIN, daily_usage=20, current_quantity=100, name="Rapid pen")
        p = project(insulin, Severity.SEVERE)
        self.assertEqual(p.sick_multiplier, 1.3)
        self.assertEqual(p.adjusted_daily_usage, 26.0)
        self.assertEqual(p.normal_days_left, 5)
        self.assertEqual(p.sick_days_left, 3)
        self.assertEqual(p.days_lost, 2)

    def test_02_basal_is_unaffected(self):
        basal = Supply(SupplyType.LONG_ACTING_INSULIN, daily_usage=20, current_quantity=100)
        for severity in Severity:
            p = project(basal, severity)
            self.assertEqual(p.sick_multiplier, 1.0)
            self.assertEqual(p.sick_days_left, p.normal_days_left)
            self.assertEqual(p.days_lost, 0)

    def test_03_travel_compounds_with_illness(self):
        """1.3 sick x 1.2 travel = 1.56: 100 / 31.2 -> 3 days."""
        insulin = Supply(SupplyType.SHORT_ACTING_INSULIN, daily_usage=20, current_quantity=100)
        p = project(insulin, Severity.SEVERE, travel_active=True)
        self.assertEqual(p.travel_multiplier, 1.2)
        self.assertEqual(p.combined_multiplier, 1.56)
        self.assertAlmostEqual(p.adjusted_daily_usage, 31.2)
        self.assertEqual(p.sick_days_left, 3)

    def test_04_strips_deplete_fastest(self):
        strips = Supply(SupplyType.TEST_STRIP, daily_usage=6, current_quantity=50)
        p = project(strips, Severity.SEVERE)
        self.assertEqual(p.adjusted_daily_usage, 18.0)
        self.assertEqual(p.sick_days_left, 2)
        self.assertEqual(p.normal_days_left, 8)

    def test_05_days_left_is_capped(self):
        lots = Supply(SupplyType.NEEDLE, daily_usage=0.1, current_quantity=10000)
        self.assertEqual(project(lots, Severity.MINOR).normal_days_left, 365)

        unused = Supply(SupplyType.OTHER, daily_usage=0, current_quantity=5)
        p = project(unused, Severity.SEVERE)
        self.assertEqual(p.sick_days_left, 365)
        self.assertEqual(p.days_lost, 0)

    def test_06_no_severity_means_no_sick_factor(self):
        insulin = Supply(SupplyType.SHORT_ACTING_INSULIN, daily_usage=20, current_quantity=100)
        p = project(insulin, None)
        self.assertEqual(p.sick_multiplier, 1.0)
        self.assertEqual(p.sick_days_left, 5)

    def test_07_supply_record_is_not_modified(self):
        insulin = Supply(SupplyType.SHORT_ACTING_INSULIN, daily_usage=20, current_quantity=100)
        project(insulin, Severity.SEVERE, travel_active=True)
        self.assertEqual(insulin.daily_usage, 20)
        self.assertEqual(insulin.current_quantity, 100)

    def test_08_project_all_sorted_soonest_first(self):
        supplies = [
            Supply(SupplyType.LONG_ACTING_INSULIN, 20, 300, id="basal"),
            Supply(SupplyType.KETONE_STRIP, 1, 10, id="ketone"),
            Supply(SupplyType.SHORT_ACTING_INSULIN, 20, 100, id="rapid"),
        ]
        result = SupplyImpactProjector.project_all(supplies, Severity.SEVERE)
        # ketone: 10 / 6 -> 1, rapid: 3, basal: 15
        self.assertEqual([p.supply_id for p in result], ["ketone", "rapid", "basal"])

    def test_09_string_types_are_accepted(self):
        p = project(Supply("needle", 4, 40), "moderate")
        self.assertEqual(p.type, SupplyType.NEEDLE)
        self.assertEqual(p.sick_days_left, 6)

if __name__ == '__main__':
    unittest.main()
