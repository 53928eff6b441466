# journal.py
import logging
import math
import uuid
from datetime import datetime
from typing import List, Optional

from models import (
    SickDayJournalEntry,
    TrendDirection,
    JournalEntryNotFoundError,
    PreconditionError,
    to_jsonable,
)
from constants import BGUnits, KetoneLevel, Severity
from core_dosing import SickDayDosingEngine
from storage import KeyValueStore, JOURNAL_KEY

logger = logging.getLogger("sickday-engine")

TREND_STABLE_BAND_MGDL = 10.0

def compute_trend(entries: List[SickDayJournalEntry]) -> Optional[TrendDirection]:
    """
    Trend from the two newest entries only (index 0 = latest).
    Fewer than two entries -> None, not STABLE.
    """
    if len(entries) < 2:
        return None
    latest = SickDayDosingEngine.to_mgdl(entries[0].bg, entries[0].bg_units)
    previous = SickDayDosingEngine.to_mgdl(entries[1].bg, entries[1].bg_units)
    diff = latest - previous
    if abs(diff) < TREND_STABLE_BAND_MGDL:
        return TrendDirection.STABLE
    return TrendDirection.UP if diff > 0 else TrendDirection.DOWN

def _entry_from_json(data: dict) -> SickDayJournalEntry:
    return SickDayJournalEntry(
        id=data["id"],
        timestamp=datetime.fromisoformat(data["timestamp"]),
        bg=data["bg"],
        bg_units=BGUnits(data["bg_units"]),
        ketone_level=KetoneLevel(data["ketone_level"]),
        severity=Severity(data["severity"]),
        correction_dose=data.get("correction_dose"),
        fluids_ml=data.get("fluids_ml"),
        symptoms=data.get("symptoms", ""),
        notes=data.get("notes", ""),
    )

class SickDayJournal:
    """
    Append-only list of checks, newest first.
    Every write replaces the stored list as a whole.
    """

    def __init__(self, store: KeyValueStore, key: str = JOURNAL_KEY):
        self._store = store
        self._key = key

    def entries(self) -> List[SickDayJournalEntry]:
        raw = self._store.get_json(self._key) or []
        return [_entry_from_json(item) for item in raw]

    def _save(self, entries: List[SickDayJournalEntry]) -> None:
        self._store.set_json(self._key, [to_jsonable(e) for e in entries])

    def log_check(self, bg: float, bg_units: BGUnits, ketone_level: KetoneLevel,
                  severity: Severity, correction_dose: Optional[float] = None,
                  fluids_ml: Optional[float] = None, symptoms: str = "", notes: str = "",
                  timestamp: Optional[datetime] = None) -> SickDayJournalEntry:
        if bg is None or not math.isfinite(bg) or bg <= 0:
            raise PreconditionError(f"Blood glucose must be a positive number, got {bg}")
        if correction_dose is not None and (not math.isfinite(correction_dose) or correction_dose < 0):
            raise PreconditionError("Correction dose cannot be negative")
        if fluids_ml is not None and (not math.isfinite(fluids_ml) or fluids_ml < 0):
            raise PreconditionError("Fluids cannot be negative")

        entry = SickDayJournalEntry(
            id=uuid.uuid4().hex,
            timestamp=timestamp or datetime.now(),
            bg=float(bg),
            bg_units=BGUnits(bg_units),
            ketone_level=KetoneLevel(ketone_level),
            severity=Severity(severity),
            correction_dose=correction_dose,
            fluids_ml=fluids_ml,
            symptoms=symptoms or "",
            notes=notes or "",
        )
        entries = self.entries()
        entries.insert(0, entry)
        self._save(entries)
        logger.info("Journal check logged (%d entries)", len(entries))
        return entry

    def delete(self, entry_id: str) -> None:
        entries = self.entries()
        kept = [e for e in entries if e.id != entry_id]
        if len(kept) == len(entries):
            raise JournalEntryNotFoundError(entry_id)
        self._save(kept)

    def clear(self) -> None:
        self._store.delete(self._key)

    def trend(self) -> Optional[TrendDirection]:
        return compute_trend(self.entries())

    def last_correction(self) -> Optional[SickDayJournalEntry]:
        """Newest entry that recorded a correction dose."""
        for entry in self.entries():
            if entry.correction_dose:
                return entry
        return None
