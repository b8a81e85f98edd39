"""
Band preference scores + practice slot assignment.

GET /api/band-preferences?period_id=123 (week_id accepted as an alias)
returns {bands_prefer_score, nice_prefer}. A missing or non-numeric id
yields an empty aggregation and an all-empty grid, still 200. When the
week exists and is still open, the result is written back to
practice_session (overwrite). A finished week keeps its stored result;
only DELETE /api/practice-schedule re-finalizes it.
"""

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlmodel import Session

from app.database import get_session
from app.services.band_preference_aggregator import BandPreferenceSourceError
from app.services.practice_result import compute_practice_result
from app.services.practice_session_store import PracticeSessionStore

logger = logging.getLogger(__name__)

router = APIRouter()


def parse_week_id(raw: Optional[str]) -> Optional[int]:
    """Integer week id from a query string value, or None if absent / not an integer."""
    if raw is None:
        return None
    try:
        return int(raw.strip())
    except ValueError:
        return None


@router.get("/band-preferences")
def get_band_preferences(
    period_id: Optional[str] = Query(default=None),
    week_id: Optional[str] = Query(default=None),
    session: Session = Depends(get_session),
):
    """Aggregate member priorities per band and assign practice slots."""
    resolved_week_id = parse_week_id(period_id)
    if resolved_week_id is None:
        resolved_week_id = parse_week_id(week_id)
    if resolved_week_id is None:
        logger.info("BAND_PREFER_ROUTE: invalid or missing period_id=%r week_id=%r", period_id, week_id)

    try:
        result = compute_practice_result(session, resolved_week_id)
    except BandPreferenceSourceError:
        raise HTTPException(status_code=500, detail="Failed to build bands_prefer_score")

    if resolved_week_id is not None:
        store = PracticeSessionStore(session)
        period = store.get_period(resolved_week_id)
        if period is None:
            logger.info("BAND_PREFER_ROUTE: week_id=%s has no practice_session row, result not stored", resolved_week_id)
        elif period.is_finished:
            logger.info("BAND_PREFER_ROUTE: week_id=%s is finished, stored result left as is", resolved_week_id)
        else:
            store.put_result(resolved_week_id, result.bands_prefer_score, result.nice_prefer)

    return result.to_dict()
