"""
Practice Request API Routes

Member-side submissions for a practice week: the 6x12 availability flags
(requested_times) and the optional 6x12 weighted priority matrix that the
band preference aggregator sums per band. Submissions for a finished
week are rejected with 409.
"""

import json
import logging
from datetime import datetime
from typing import Any, List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from pydantic import BaseModel, field_validator
from sqlmodel import Session, select

from app.database import get_session
from app.models.member_preference import MemberPreference
from app.services.practice_session_store import PracticeSessionStore
from app.services.preference_matrix import is_day_hour_shaped

logger = logging.getLogger(__name__)

router = APIRouter()


# ============================================================================
# Request/Response Models
# ============================================================================


class PracticeRequestCreate(BaseModel):
    member_id: int
    week_id: int
    requested_times: List[List[Any]]
    priority: Optional[List[List[Any]]] = None

    @field_validator("requested_times")
    @classmethod
    def validate_requested_times(cls, v):
        if not is_day_hour_shaped(v):
            raise ValueError("requested_times must be a 6x12 array")
        return v

    @field_validator("priority")
    @classmethod
    def validate_priority(cls, v):
        if v is not None and not is_day_hour_shaped(v):
            raise ValueError("priority must be a 6x12 array")
        return v


class PracticeRequestUpdate(BaseModel):
    id: int
    requested_times: Optional[List[List[Any]]] = None
    priority: Optional[List[List[Any]]] = None

    @field_validator("requested_times", "priority")
    @classmethod
    def validate_shape(cls, v, info):
        if v is not None and not is_day_hour_shaped(v):
            raise ValueError(f"{info.field_name} must be a 6x12 array")
        return v


class PracticeRequestResponse(BaseModel):
    id: int
    member_id: int
    week_id: int
    requested_times: Optional[List[Any]] = None
    priority: Optional[List[Any]] = None
    created_at: datetime
    updated_at: Optional[datetime] = None


def _loads_or_none(text: Optional[str]) -> Optional[List[Any]]:
    if not text:
        return None
    try:
        value = json.loads(text)
    except ValueError:
        logger.warning("PRACTICE_REQUEST: stored JSON is malformed, returning null")
        return None
    return value if isinstance(value, list) else None


def _to_response(row: MemberPreference) -> PracticeRequestResponse:
    return PracticeRequestResponse(
        id=row.id,
        member_id=row.member_id,
        week_id=row.week_id,
        requested_times=_loads_or_none(row.requested_times),
        priority=_loads_or_none(row.priority),
        created_at=row.created_at,
        updated_at=row.updated_at,
    )


# ============================================================================
# Endpoints
# ============================================================================


@router.get("/practice-requests", response_model=List[PracticeRequestResponse])
def get_practice_requests(
    member_id: Optional[int] = Query(default=None),
    week_id: Optional[int] = Query(default=None),
    session: Session = Depends(get_session),
):
    """A member's submissions, newest first, optionally for one week."""
    if member_id is None:
        raise HTTPException(status_code=400, detail="member_id is required")

    query = select(MemberPreference).where(MemberPreference.member_id == member_id)
    if week_id is not None:
        query = query.where(MemberPreference.week_id == week_id)
    rows = session.exec(query.order_by(MemberPreference.created_at.desc(), MemberPreference.id.desc())).all()

    return [_to_response(row) for row in rows]


def _ensure_week_open(session: Session, week_id: int) -> None:
    period = PracticeSessionStore(session).get_period(week_id)
    if period is not None and period.is_finished:
        raise HTTPException(status_code=409, detail=f"Practice week {week_id} is finished")


@router.post("/practice-requests", response_model=PracticeRequestResponse, status_code=201)
def upsert_practice_request(data: PracticeRequestCreate, session: Session = Depends(get_session)):
    """Create or replace the member's submission for the week."""
    _ensure_week_open(session, data.week_id)
    existing = session.exec(
        select(MemberPreference)
        .where(MemberPreference.member_id == data.member_id, MemberPreference.week_id == data.week_id)
        .order_by(MemberPreference.id.desc())
    ).first()

    row = existing or MemberPreference(member_id=data.member_id, week_id=data.week_id)
    row.requested_times = json.dumps(data.requested_times)
    row.priority = json.dumps(data.priority) if data.priority is not None else None
    row.updated_at = datetime.utcnow()

    session.add(row)
    session.commit()
    session.refresh(row)

    logger.info(
        "PRACTICE_REQUEST: %s member_id=%s week_id=%s",
        "updated" if existing else "created",
        data.member_id,
        data.week_id,
    )
    return _to_response(row)


@router.put("/practice-requests", response_model=PracticeRequestResponse)
def update_practice_request(data: PracticeRequestUpdate, session: Session = Depends(get_session)):
    """Partial update; an explicit "priority": null clears the priority."""
    row = session.get(MemberPreference, data.id)
    if not row:
        raise HTTPException(status_code=404, detail=f"Practice request {data.id} not found")
    _ensure_week_open(session, row.week_id)

    if data.requested_times is not None:
        row.requested_times = json.dumps(data.requested_times)
    if "priority" in data.model_fields_set:
        row.priority = json.dumps(data.priority) if data.priority is not None else None
    row.updated_at = datetime.utcnow()

    session.add(row)
    session.commit()
    session.refresh(row)
    return _to_response(row)


@router.delete("/practice-requests")
def delete_practice_request(id: Optional[int] = Query(default=None), session: Session = Depends(get_session)):
    if id is None:
        raise HTTPException(status_code=400, detail="id is required")

    row = session.get(MemberPreference, id)
    if not row:
        raise HTTPException(status_code=404, detail=f"Practice request {id} not found")

    session.delete(row)
    session.commit()
    return {"success": True}
