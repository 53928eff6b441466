# supply.py
import math
from typing import Iterable, List, Optional

from models import Supply, SupplyProjection
from constants import SUPPLY_MULTIPLIERS, Severity

class SupplyImpactProjector:
    """
    Re-forecasts days remaining while sick (and travelling).
    Derives numbers only: the Supply record is never modified.
    """

    @staticmethod
    def _days_left(quantity: float, daily_usage: float) -> int:
        cap = SUPPLY_MULTIPLIERS.DAYS_LEFT_DISPLAY_CAP
        if daily_usage <= 0:
            return cap  # Not being consumed
        return min(cap, math.floor(max(quantity, 0.0) / daily_usage))

    @staticmethod
    def project(supply: Supply, severity: Optional[Severity],
                travel_active: bool = False) -> SupplyProjection:
        """
        adjusted = daily_usage * sick_factor * travel_factor.
        Sick and travel factors compound multiplicatively (no averaging, no combined cap).
        """
        sick_factor = SUPPLY_MULTIPLIERS.sick(supply.type, Severity(severity)) if severity is not None else 1.0
        travel_factor = SUPPLY_MULTIPLIERS.travel(supply.type) if travel_active else 1.0
        combined = sick_factor * travel_factor

        # round() strips float noise so 100 / 26 is not computed against 26.000000000000004
        adjusted = round(supply.daily_usage * combined, 6)
        normal_days = SupplyImpactProjector._days_left(supply.current_quantity, supply.daily_usage)
        sick_days = SupplyImpactProjector._days_left(supply.current_quantity, adjusted)

        return SupplyProjection(
            supply_id=supply.id,
            name=supply.name,
            type=supply.type,
            daily_usage=supply.daily_usage,
            sick_multiplier=sick_factor,
            travel_multiplier=travel_factor,
            combined_multiplier=round(combined, 4),
            adjusted_daily_usage=adjusted,
            normal_days_left=normal_days,
            sick_days_left=sick_days,
            days_lost=max(0, normal_days - sick_days),
        )

    @staticmethod
    def project_all(supplies: Iterable[Supply], severity: Optional[Severity],
                    travel_active: bool = False) -> List[SupplyProjection]:
        """Projections sorted soonest-to-run-out first."""
        projections = [SupplyImpactProjector.project(s, severity, travel_active) for s in supplies]
        return sorted(projections, key=lambda p: p.sick_days_left)
