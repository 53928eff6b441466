"""
SickDay Advisor: Session & Duration Tracker
===========================================
One active sick-day session at a time, behind a narrow injectable store
(get_active / activate / deactivate / recompute). The pure engine never
touches persistence.
"""

import logging
from datetime import datetime
from typing import Optional

from models import (
    SickDaySession,
    SickDayInput,
    UserSettings,
    CalculationResult,
    DurationStatus,
    DurationTier,
    AlertLevel,
    SessionNotActiveError,
    TravelScenario,
    to_jsonable,
)
from constants import DURATION_THRESHOLDS, BGUnits, KetoneLevel, Severity
from app import calculate_plan
from journal import SickDayJournal
from safety import min_redose_interval_hours
from storage import KeyValueStore, SESSION_KEY, SCENARIO_KEY

logger = logging.getLogger("sickday-engine")

DURATION_MESSAGES = {
    DurationTier.NONE: "",
    DurationTier.EXTENDED: "You have been unwell for over 24 hours. Keep monitoring glucose and ketones closely.",
    DurationTier.CONSIDER_CONTACT: "You have been unwell for over 48 hours: consider contacting your diabetes team.",
    DurationTier.CONTACT_TEAM: "You have been unwell for over 72 hours: contact your diabetes team today.",
}

def _plural(n: int, word: str) -> str:
    return f"{n} {word}" if n == 1 else f"{n} {word}s"

def describe_duration(activated_at: datetime, now: Optional[datetime] = None) -> DurationStatus:
    """
    Elapsed time since activation plus the escalation tier.
    Tier boundaries are inclusive: exactly 48h00m is already the 48h tier.
    """
    now = now or datetime.now()
    elapsed_hours = max(0.0, (now - activated_at).total_seconds() / 3600.0)
    days = int(elapsed_hours // 24)
    hours = int(elapsed_hours - days * 24)

    if elapsed_hours < 1:
        label = "less than an hour"
    elif days == 0:
        label = _plural(hours, "hour")
    elif hours == 0:
        label = _plural(days, "day")
    else:
        label = f"{_plural(days, 'day')} {_plural(hours, 'hour')}"

    if elapsed_hours >= DURATION_THRESHOLDS.CONTACT_TEAM_HOURS:
        tier, level = DurationTier.CONTACT_TEAM, AlertLevel.CRITICAL
    elif elapsed_hours >= DURATION_THRESHOLDS.CONSIDER_CONTACT_HOURS:
        tier, level = DurationTier.CONSIDER_CONTACT, AlertLevel.WARNING
    elif elapsed_hours >= DURATION_THRESHOLDS.EXTENDED_HOURS:
        tier, level = DurationTier.EXTENDED, AlertLevel.INFO
    else:
        tier, level = DurationTier.NONE, AlertLevel.INFO

    return DurationStatus(
        elapsed_hours=round(elapsed_hours, 2),
        elapsed_days=days,
        label=label,
        tier=tier,
        alert_level=level,
        message=DURATION_MESSAGES[tier],
    )

def _session_from_json(data: dict) -> SickDaySession:
    return SickDaySession(
        severity=Severity(data["severity"]),
        bg_units=BGUnits(data["bg_units"]),
        activated_at=datetime.fromisoformat(data["activated_at"]),
        last_updated=datetime.fromisoformat(data["last_updated"]),
        bg_level=data.get("bg_level"),
        ketone_level=KetoneLevel(data.get("ketone_level", KetoneLevel.NONE.value)),
        latest_result=data.get("latest_result"),
    )

class SickDaySessionStore:
    """
    Persisted 'sick-day mode' state.
    The journal, when attached, is cleared together with the session.
    """

    def __init__(self, store: KeyValueStore, journal: Optional[SickDayJournal] = None,
                 key: str = SESSION_KEY):
        self._store = store
        self._journal = journal
        self._key = key

    def get_active(self) -> Optional[SickDaySession]:
        data = self._store.get_json(self._key)
        if data is None:
            return None
        return _session_from_json(data)

    def _require_active(self) -> SickDaySession:
        session = self.get_active()
        if session is None:
            raise SessionNotActiveError("Sick-day mode is not active")
        return session

    def _save(self, session: SickDaySession) -> None:
        self._store.set_json(self._key, to_jsonable(session))

    def activate(self, severity: Severity, bg_units: BGUnits = BGUnits.MG_DL,
                 now: Optional[datetime] = None) -> SickDaySession:
        """
        Starts sick-day mode. Re-activating updates severity/units but keeps activated_at:
        only deactivate() restarts the clock.
        """
        now = now or datetime.now()
        severity = Severity(severity)
        bg_units = BGUnits(bg_units)
        existing = self.get_active()

        if existing is not None:
            session = SickDaySession(
                severity=severity,
                bg_units=bg_units,
                activated_at=existing.activated_at,
                last_updated=now,
                bg_level=existing.bg_level,
                ketone_level=existing.ketone_level,
                latest_result=existing.latest_result,
            )
        else:
            session = SickDaySession(severity=severity, bg_units=bg_units,
                                     activated_at=now, last_updated=now)
            logger.info("Sick-day mode activated (%s)", severity.value)

        self._save(session)
        return session

    def deactivate(self) -> bool:
        removed = self._store.delete(self._key)
        if self._journal is not None:
            self._journal.clear()
        if removed:
            logger.info("Sick-day mode deactivated")
        return removed

    def recompute(self, inputs: SickDayInput, settings: Optional[UserSettings] = None,
                  now: Optional[datetime] = None) -> CalculationResult:
        """Runs the pipeline and replaces the session record with the new snapshot."""
        session = self._require_active()
        result = calculate_plan(inputs, settings)
        updated = SickDaySession(
            severity=inputs.severity,
            bg_units=inputs.bg_units,
            activated_at=session.activated_at,
            last_updated=now or datetime.now(),
            bg_level=inputs.bg_level,
            ketone_level=inputs.ketone_level,
            latest_result=to_jsonable(result),
        )
        self._save(updated)
        return result

    def duration(self, now: Optional[datetime] = None) -> DurationStatus:
        return describe_duration(self._require_active().activated_at, now)

    def redose_status(self, now: Optional[datetime] = None) -> dict:
        """
        Hours since the last journaled correction vs the severity's minimum interval.
        Informational: nothing blocks a dose.
        """
        session = self._require_active()
        min_hours = min_redose_interval_hours(session.severity)
        last = self._journal.last_correction() if self._journal is not None else None
        if last is None:
            return {"hours_since_last_correction": None,
                    "min_interval_hours": min_hours,
                    "redose_too_soon": False}

        hours = ((now or datetime.now()) - last.timestamp).total_seconds() / 3600.0
        return {"hours_since_last_correction": round(hours, 2),
                "min_interval_hours": min_hours,
                "redose_too_soon": hours < min_hours}

class TravelScenarioStore:
    """Travel mode flag. Only consulted to compound supply projections."""

    def __init__(self, store: KeyValueStore, key: str = SCENARIO_KEY):
        self._store = store
        self._key = key

    def get_active(self) -> Optional[TravelScenario]:
        data = self._store.get_json(self._key)
        if not data or not data.get("active"):
            return None
        return TravelScenario(**data)

    def is_active(self) -> bool:
        return self.get_active() is not None

    def activate(self, destination: str = "", start_date: Optional[str] = None,
                 end_date: Optional[str] = None) -> TravelScenario:
        scenario = TravelScenario(destination=destination, start_date=start_date,
                                  end_date=end_date, active=True)
        self._store.set_json(self._key, to_jsonable(scenario))
        return scenario

    def deactivate(self) -> bool:
        return self._store.delete(self._key)
