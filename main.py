# main.py

import logging
from typing import Optional, List
from datetime import datetime
from fastapi import FastAPI, HTTPException, Depends, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

# Import Data Models & Logic
from models import (
    SickDayInput,
    UserSettings,
    Supply,
    PreconditionError,
    DataTypeError,
    SessionNotActiveError,
    JournalEntryNotFoundError,
    to_jsonable,
)
from constants import VERSION, Severity, KetoneLevel, BGUnits, SupplyType
from app import generate_sick_day_plan
from advisory import AdvisoryClient, AdvisoryRequest, get_advice
from journal import SickDayJournal
from session import SickDaySessionStore, TravelScenarioStore
from storage import KeyValueStore
from supply import SupplyImpactProjector
from config import APP, STORAGE

# --- 1. CONFIGURATION & LOGGING ---
logging.basicConfig(level=logging.INFO)
logger = logging.getLogger("sickday-api")

app = FastAPI(
    title=APP["title"],
    version=VERSION,
    description="Sick-day insulin correction, ketone escalation and supply impact engine. \n\n"
                "**WARNING**: Advisory output only. Not medical advice; requires human review.",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# --- 2. STORES (injectable) ---
_kv_store: Optional[KeyValueStore] = None

def get_kv_store() -> KeyValueStore:
    global _kv_store
    if _kv_store is None:
        _kv_store = KeyValueStore(STORAGE["db_path"])
    return _kv_store

def get_journal(kv: KeyValueStore = Depends(get_kv_store)) -> SickDayJournal:
    return SickDayJournal(kv)

def get_session_store(kv: KeyValueStore = Depends(get_kv_store),
                      journal: SickDayJournal = Depends(get_journal)) -> SickDaySessionStore:
    return SickDaySessionStore(kv, journal=journal)

def get_travel_store(kv: KeyValueStore = Depends(get_kv_store)) -> TravelScenarioStore:
    return TravelScenarioStore(kv)

def get_advisory_client() -> AdvisoryClient:
    return AdvisoryClient()

# --- 3. ERROR MAPPING ---

@app.exception_handler(SessionNotActiveError)
async def _session_not_active(request: Request, exc: SessionNotActiveError):
    return JSONResponse(status_code=409, content={"detail": str(exc)})

@app.exception_handler(JournalEntryNotFoundError)
async def _journal_entry_missing(request: Request, exc: JournalEntryNotFoundError):
    return JSONResponse(status_code=404, content={"detail": f"Journal entry {exc.args[0]} not found"})

@app.exception_handler(PreconditionError)
async def _precondition_failed(request: Request, exc: PreconditionError):
    logger.warning(f"Precondition failed: {exc}")
    return JSONResponse(status_code=422, content={"detail": str(exc)})

# --- 4. STRICT INPUT SCHEMA (The Guardrails) ---

class SettingsRequest(BaseModel):
    correction_factor: Optional[float] = Field(None, gt=0, description="Units per mg/dL or mmol/L drop")
    target_bg_high: Optional[float] = Field(None, gt=0, description="Upper target, in the request's bg_units")
    breakfast_ratio: Optional[str] = Field(None, description="Units per 10g carb, e.g. '1.2'")
    lunch_ratio: Optional[str] = None
    dinner_ratio: Optional[str] = None
    snack_ratio: Optional[str] = None

    def to_settings(self) -> UserSettings:
        return UserSettings(**self.model_dump())

class CalculateRequest(BaseModel):
    tdd: float = Field(..., gt=0, le=500, description="Total daily dose (units/day)")
    bg_level: float = Field(..., gt=0, le=1000, description="Blood glucose in bg_units")
    severity: Severity
    ketone_level: KetoneLevel
    bg_units: BGUnits = BGUnits.MG_DL
    settings: Optional[SettingsRequest] = None

    model_config = {
        "json_schema_extra": {
            "example": {
                "tdd": 40, "bg_level": 250, "severity": "moderate",
                "ketone_level": "small", "bg_units": "mg/dL",
            }
        }
    }

    def engine_input(self) -> dict:
        return {
            "tdd": self.tdd, "bg_level": self.bg_level, "severity": self.severity,
            "ketone_level": self.ketone_level, "bg_units": self.bg_units,
        }

    def user_settings(self) -> UserSettings:
        if self.settings is None:
            return UserSettings()
        return self.settings.to_settings()

class ActivateRequest(BaseModel):
    severity: Severity
    bg_units: BGUnits = BGUnits.MG_DL

class JournalEntryRequest(BaseModel):
    bg: float = Field(..., gt=0, le=1000)
    bg_units: BGUnits = BGUnits.MG_DL
    ketone_level: KetoneLevel
    severity: Severity
    correction_dose: Optional[float] = Field(None, ge=0)
    fluids_ml: Optional[float] = Field(None, ge=0)
    symptoms: str = ""
    notes: str = ""

class TravelRequest(BaseModel):
    destination: str = ""
    start_date: Optional[str] = None
    end_date: Optional[str] = None

class SupplyRequest(BaseModel):
    id: Optional[str] = None
    name: str = ""
    type: SupplyType
    daily_usage: float = Field(..., ge=0)
    current_quantity: float = Field(..., ge=0)

class ProjectionRequest(BaseModel):
    supplies: List[SupplyRequest]
    severity: Optional[Severity] = Field(None, description="Defaults to the active session's severity")

class AdviceRequest(BaseModel):
    activity_type: str
    activity_details: str
    user_profile: Optional[dict] = None
    conversation_history: Optional[List[dict]] = None
    activity_logs: Optional[List[dict]] = None
    current_time: Optional[datetime] = None
    sick_day: CalculateRequest

def _with_disclaimer(payload: dict) -> dict:
    payload["disclaimer"] = APP["disclaimer"]
    return payload

# --- 5. ENDPOINTS ---

@app.get("/")
def read_root():
    return {"status": "active", "message": "SickDay Advisor API is running"}

@app.get("/health")
def health_check():
    return {"status": "active", "version": VERSION, "module": "sickday-dosing-engine"}

@app.post("/sick-day/calculate")
def calculate(request: CalculateRequest):
    """Stateless calculation: dose, ratios, ketone escalation, stacking advice."""
    logger.info(f"Calculating sick-day plan: severity={request.severity.value}, units={request.bg_units.value}")
    try:
        plan = generate_sick_day_plan(request.engine_input(), request.user_settings())
    except Exception as e:
        logger.error(f"Internal Engine Failure: {str(e)}", exc_info=True)
        raise HTTPException(status_code=500, detail="Internal Dosing Engine Error")

    if not plan.success:
        raise HTTPException(status_code=422, detail=f"Validation Error: {'; '.join(plan.errors)}")
    return _with_disclaimer({"result": to_jsonable(plan.result)})

@app.get("/sick-day/session")
def read_session(sessions: SickDaySessionStore = Depends(get_session_store)):
    session = sessions.get_active()
    if session is None:
        return {"active": False, "session": None}
    return {"active": True, "session": to_jsonable(session)}

@app.post("/sick-day/session")
def activate_session(request: ActivateRequest,
                     sessions: SickDaySessionStore = Depends(get_session_store)):
    session = sessions.activate(request.severity, request.bg_units)
    return {"active": True, "session": to_jsonable(session)}

@app.delete("/sick-day/session")
def deactivate_session(sessions: SickDaySessionStore = Depends(get_session_store)):
    return {"active": False, "was_active": sessions.deactivate()}

@app.post("/sick-day/session/recompute")
def recompute_session(request: CalculateRequest,
                      sessions: SickDaySessionStore = Depends(get_session_store)):
    try:
        inputs = SickDayInput(**request.engine_input())
    except (DataTypeError, ValueError) as e:
        raise HTTPException(status_code=422, detail=f"Validation Error: {str(e)}")
    result = sessions.recompute(inputs, request.user_settings())
    return _with_disclaimer({
        "result": to_jsonable(result),
        "duration": to_jsonable(sessions.duration()),
        "redose": sessions.redose_status(),
    })

@app.get("/sick-day/session/duration")
def session_duration(sessions: SickDaySessionStore = Depends(get_session_store)):
    return to_jsonable(sessions.duration())

@app.get("/sick-day/journal")
def list_journal(journal: SickDayJournal = Depends(get_journal)):
    trend = journal.trend()
    return {
        "entries": [to_jsonable(e) for e in journal.entries()],
        "trend": trend.value if trend else None,
    }

@app.post("/sick-day/journal", status_code=201)
def log_check(request: JournalEntryRequest, journal: SickDayJournal = Depends(get_journal)):
    entry = journal.log_check(**request.model_dump())
    return to_jsonable(entry)

@app.delete("/sick-day/journal")
def clear_journal(journal: SickDayJournal = Depends(get_journal)):
    journal.clear()
    return {"cleared": True}

@app.delete("/sick-day/journal/{entry_id}")
def delete_entry(entry_id: str, journal: SickDayJournal = Depends(get_journal)):
    journal.delete(entry_id)
    return {"deleted": entry_id}

@app.get("/sick-day/journal/trend")
def journal_trend(journal: SickDayJournal = Depends(get_journal)):
    trend = journal.trend()
    return {"trend": trend.value if trend else None}

@app.post("/scenarios/travel")
def activate_travel(request: TravelRequest, travel: TravelScenarioStore = Depends(get_travel_store)):
    return to_jsonable(travel.activate(request.destination, request.start_date, request.end_date))

@app.delete("/scenarios/travel")
def deactivate_travel(travel: TravelScenarioStore = Depends(get_travel_store)):
    return {"was_active": travel.deactivate()}

@app.post("/supplies/projection")
def project_supplies(request: ProjectionRequest,
                     sessions: SickDaySessionStore = Depends(get_session_store),
                     travel: TravelScenarioStore = Depends(get_travel_store)):
    severity = request.severity
    if severity is None:
        session = sessions.get_active()
        severity = session.severity if session is not None else None

    supplies = [Supply(**s.model_dump()) for s in request.supplies]
    travel_active = travel.is_active()
    projections = SupplyImpactProjector.project_all(supplies, severity, travel_active)
    return {
        "severity": severity.value if severity else None,
        "travel_active": travel_active,
        "projections": [to_jsonable(p) for p in projections],
    }

@app.post("/advice")
def advice(request: AdviceRequest, client: AdvisoryClient = Depends(get_advisory_client)):
    """Remote guidance with the local calculator as the fallback."""
    sick = request.sick_day
    adv_request = AdvisoryRequest(
        activity_type=request.activity_type,
        activity_details=request.activity_details,
        user_profile=request.user_profile,
        user_settings=to_jsonable(sick.user_settings()),
        conversation_history=request.conversation_history,
        activity_logs=request.activity_logs,
        current_time=request.current_time,
    )
    outcome = get_advice(client, adv_request, sick.engine_input(), sick.user_settings())
    payload = {
        "source": outcome.source,
        "recommendation": outcome.recommendation,
        "confidence": outcome.confidence,
        "meal_period": outcome.meal_period,
    }
    if outcome.plan is not None and outcome.plan.success:
        payload["result"] = to_jsonable(outcome.plan.result)
    return _with_disclaimer(payload)
