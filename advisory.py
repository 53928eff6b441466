"""
SickDay Advisor: External Advisory Client
=========================================
Optional remote service for free-text meal/activity guidance.
Any failure (network, non-2xx, malformed body) falls back to the local
sick-day calculator, which is always available.
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import List, Optional

import requests

from models import PlanResult, UserSettings
from app import generate_sick_day_plan
from config import ADVISORY

logger = logging.getLogger("sickday-advisory")

VALID_CONFIDENCE = ("HIGH", "MEDIUM", "LOW")

def meal_period_for(moment: datetime) -> str:
    hour = moment.hour
    if 5 <= hour < 10:
        return "breakfast"
    if 10 <= hour < 14:
        return "lunch"
    if 14 <= hour < 17:
        return "afternoon snack"
    if 17 <= hour < 21:
        return "dinner"
    return "evening snack"

class AdvisoryServiceError(RuntimeError):
    pass

@dataclass
class AdvisoryRequest:
    activity_type: str
    activity_details: str
    user_profile: Optional[dict] = None
    user_settings: Optional[dict] = None
    conversation_history: Optional[List[dict]] = None
    activity_logs: Optional[List[dict]] = None
    current_time: Optional[datetime] = None

    def to_payload(self) -> dict:
        return {
            "activityType": self.activity_type,
            "activityDetails": self.activity_details,
            "userProfile": self.user_profile or {},
            "userSettings": self.user_settings or {},
            "conversationHistory": self.conversation_history or [],
            "activityLogs": self.activity_logs or [],
            "currentTime": (self.current_time or datetime.now()).isoformat(),
        }

@dataclass
class AdvisoryOutcome:
    source: str                     # "remote" | "local_fallback"
    recommendation: str
    confidence: str
    meal_period: Optional[str] = None
    plan: Optional[PlanResult] = None
    fallback_reason: str = ""

class AdvisoryClient:
    """POSTs the collaborator contract with requests."""

    def __init__(self, base_url: Optional[str] = None, timeout_sec: Optional[float] = None,
                 session: Optional[requests.Session] = None):
        self.base_url = base_url if base_url is not None else ADVISORY["url"]
        self.timeout_sec = timeout_sec if timeout_sec is not None else ADVISORY["timeout_sec"]
        self._session = session or requests.Session()

    @property
    def enabled(self) -> bool:
        return bool(self.base_url)

    def fetch(self, request: AdvisoryRequest) -> dict:
        """Returns {recommendation, confidence, mealPeriod?}. Raises AdvisoryServiceError on any failure."""
        if not self.enabled:
            raise AdvisoryServiceError("Advisory service URL not configured")
        try:
            resp = self._session.post(self.base_url, json=request.to_payload(), timeout=self.timeout_sec)
        except requests.RequestException as e:
            raise AdvisoryServiceError(f"Advisory service unreachable: {e}") from e

        if not resp.ok:
            raise AdvisoryServiceError(f"Advisory service returned HTTP {resp.status_code}")

        try:
            body = resp.json()
        except ValueError as e:
            raise AdvisoryServiceError("Advisory service returned invalid JSON") from e

        if not isinstance(body, dict) or not isinstance(body.get("recommendation"), str):
            raise AdvisoryServiceError("Advisory response missing 'recommendation'")
        if body.get("confidence") not in VALID_CONFIDENCE:
            raise AdvisoryServiceError(f"Advisory response has invalid confidence: {body.get('confidence')!r}")
        return body

def _summarize_plan(plan: PlanResult) -> str:
    if not plan.success:
        return "Unable to calculate sick-day advice: " + "; ".join(plan.errors)
    r = plan.result
    parts = [
        f"Suggested correction: {r.correction_dose:.1f} units (BG {r.bg_display}, target {r.target_display}).",
        r.stacking_warning,
        r.hydration,
        r.monitoring_frequency,
    ]
    if r.ketone_warning:
        parts.append(r.ketone_warning)
    if r.ketone_guidance:
        parts.append(r.ketone_guidance)
    return " ".join(p for p in parts if p)

def get_advice(client: AdvisoryClient, request: AdvisoryRequest, sick_day_data: dict,
               settings: Optional[UserSettings] = None) -> AdvisoryOutcome:
    """Remote advice when it works, local calculator otherwise."""
    meal_period = meal_period_for(request.current_time or datetime.now())
    try:
        body = client.fetch(request)
        return AdvisoryOutcome(
            source="remote",
            recommendation=body["recommendation"],
            confidence=body["confidence"],
            meal_period=body.get("mealPeriod") or meal_period,
        )
    except AdvisoryServiceError as e:
        logger.warning("Falling back to local calculator: %s", e)
        plan = generate_sick_day_plan(sick_day_data, settings)
        return AdvisoryOutcome(
            source="local_fallback",
            recommendation=_summarize_plan(plan),
            confidence="LOW",
            meal_period=meal_period,
            plan=plan,
            fallback_reason=str(e),
        )
