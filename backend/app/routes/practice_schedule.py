"""
Practice Schedule API Routes

Officer-side lifecycle of a practice-scheduling round ("week"):
open a round with an availability template, edit it, end recruitment
(which finalizes the slot assignment), and read the stored result.
"""

import logging
from datetime import date, datetime
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, ConfigDict, field_validator
from sqlmodel import Session, select

from app.database import get_session
from app.models.practice_session import PracticeSession
from app.routes.band_preferences import parse_week_id
from app.services.band_preference_aggregator import BandPreferenceSourceError
from app.services.practice_result import compute_and_store_practice_result
from app.services.practice_session_store import PracticeSessionNotFoundError, PracticeSessionStore
from app.services.practice_slot_assignment import count_assigned_bands
from app.services.preference_matrix import is_day_hour_shaped, normalize_band_prefer_entries, normalize_grid

logger = logging.getLogger(__name__)

router = APIRouter()


# ============================================================================
# Request/Response Models
# ============================================================================


class PracticeScheduleCreate(BaseModel):
    start_date: date
    available: List[List[Any]]

    @field_validator("available")
    @classmethod
    def validate_available(cls, v):
        if v is not None and not is_day_hour_shaped(v):
            raise ValueError("available must be a 6x12 array")
        return v


class PracticeScheduleUpdate(BaseModel):
    week_id: int
    start_date: Optional[date] = None
    available: Optional[List[List[Any]]] = None

    @field_validator("available")
    @classmethod
    def validate_available(cls, v):
        if v is not None and not is_day_hour_shaped(v):
            raise ValueError("available must be a 6x12 array")
        return v


class PracticeScheduleResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    week_id: int
    start_date: date
    available: Optional[List[Any]] = None
    is_finished: bool
    finalized_at: Optional[datetime] = None
    created_at: datetime


class PracticeResultResponse(BaseModel):
    week_id: int
    is_finished: bool
    bands_prefer_score: List[Any]
    nice_prefer: List[Any]
    result_checksum: Optional[str] = None
    finalized_at: Optional[datetime] = None


# ============================================================================
# Endpoints
# ============================================================================


@router.get("/practice-schedule", response_model=Optional[PracticeScheduleResponse])
def get_active_practice_schedule(session: Session = Depends(get_session)):
    """Newest open round, or null when none is open."""
    return PracticeSessionStore(session).get_active_period()


@router.post("/practice-schedule", response_model=PracticeScheduleResponse, status_code=201)
def create_practice_schedule(data: PracticeScheduleCreate, session: Session = Depends(get_session)):
    """Open a new round; any round still open is closed first."""
    open_periods = session.exec(select(PracticeSession).where(PracticeSession.is_finished == False)).all()  # noqa: E712
    for period in open_periods:
        period.is_finished = True
        session.add(period)
    if open_periods:
        logger.info("PRACTICE_SCHEDULE: closed open weeks=%s", [p.week_id for p in open_periods])

    period = PracticeSession(start_date=data.start_date, available=data.available, result=[], is_finished=False)
    session.add(period)
    session.commit()
    session.refresh(period)

    logger.info("PRACTICE_SCHEDULE: opened week_id=%s start_date=%s", period.week_id, period.start_date)
    return period


@router.put("/practice-schedule", response_model=PracticeScheduleResponse)
def update_practice_schedule(data: PracticeScheduleUpdate, session: Session = Depends(get_session)):
    period = session.get(PracticeSession, data.week_id)
    if not period:
        raise HTTPException(status_code=404, detail=f"Practice session {data.week_id} not found")

    if data.start_date is not None:
        period.start_date = data.start_date
    if data.available is not None:
        period.available = data.available

    session.add(period)
    session.commit()
    session.refresh(period)
    return period


@router.delete("/practice-schedule")
def end_practice_recruitment(week_id: Optional[str] = Query(default=None), session: Session = Depends(get_session)):
    """
    End recruitment for a round and finalize its slot assignment.

    The round stays open if the roster cannot be read.
    Finalizing an already finished round recomputes and overwrites the grid.
    """
    resolved_week_id = parse_week_id(week_id)
    if resolved_week_id is None:
        raise HTTPException(status_code=400, detail="week_id is required")

    period = session.get(PracticeSession, resolved_week_id)
    if not period:
        raise HTTPException(status_code=404, detail=f"Practice session {resolved_week_id} not found")

    try:
        result = compute_and_store_practice_result(session, resolved_week_id)
    except BandPreferenceSourceError:
        raise HTTPException(status_code=500, detail="Failed to build bands_prefer_score")

    period.is_finished = True
    session.add(period)
    session.commit()

    bands_assigned = count_assigned_bands(result.nice_prefer)
    logger.info("PRACTICE_SCHEDULE: finalized week_id=%s bands_assigned=%s", resolved_week_id, bands_assigned)
    return {
        "success": True,
        "message": "Recruitment ended",
        "week_id": resolved_week_id,
        "bands_assigned": bands_assigned,
        "nice_prefer": result.nice_prefer,
    }


@router.get("/practice-schedule/{week_id}/result", response_model=PracticeResultResponse)
def get_practice_result(week_id: int, session: Session = Depends(get_session)) -> Dict[str, Any]:
    """Stored assignment for a round; an unfinalized round returns an all-empty grid."""
    try:
        period = PracticeSessionStore(session).require_period(week_id)
    except PracticeSessionNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))

    return {
        "week_id": period.week_id,
        "is_finished": period.is_finished,
        "bands_prefer_score": [
            [name, matrix] for name, matrix in normalize_band_prefer_entries(period.bands_prefer_score or [])
        ],
        "nice_prefer": normalize_grid(period.result),
        "result_checksum": period.result_checksum,
        "finalized_at": period.finalized_at,
    }
