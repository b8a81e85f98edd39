"""
Practice result pipeline: aggregate -> assign -> (optionally) persist.

One synchronous pass per request; nothing is cached between calls.
"""

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from sqlmodel import Session

from app.services.band_preference_aggregator import build_band_prefer_scores
from app.services.practice_session_store import PracticeSessionStore
from app.services.practice_slot_assignment import assign_practice_slots, count_band_occurrences
from app.services.preference_matrix import BandScore, Grid, empty_grid, normalize_band_prefer_entries

logger = logging.getLogger(__name__)


@dataclass
class PracticeResult:
    week_id: Optional[int]
    bands_prefer_score: List[BandScore] = field(default_factory=list)
    nice_prefer: Grid = field(default_factory=empty_grid)
    stored: bool = False

    def slot_counts(self) -> Dict[str, int]:
        return count_band_occurrences(self.nice_prefer)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "bands_prefer_score": [[name, matrix] for name, matrix in self.bands_prefer_score],
            "nice_prefer": self.nice_prefer,
        }


def compute_practice_result(session: Session, week_id: Optional[int]) -> PracticeResult:
    """
    Aggregate one week's preferences and assign practice slots.

    Raises BandPreferenceSourceError when the roster cannot be read.
    """
    raw_scores = build_band_prefer_scores(session, week_id)
    bands_prefer_score = normalize_band_prefer_entries([[name, matrix] for name, matrix in raw_scores])
    nice_prefer = assign_practice_slots(bands_prefer_score)

    result = PracticeResult(week_id=week_id, bands_prefer_score=bands_prefer_score, nice_prefer=nice_prefer)
    logger.info("PRACTICE_RESULT: week_id=%s slot_counts=%s", week_id, result.slot_counts())
    return result


def compute_and_store_practice_result(session: Session, week_id: int) -> PracticeResult:
    """
    Compute the week's result and overwrite it in the store.

    Raises PracticeSessionNotFoundError for an unknown week.
    """
    store = PracticeSessionStore(session)
    store.require_period(week_id)

    result = compute_practice_result(session, week_id)
    store.put_result(week_id, result.bands_prefer_score, result.nice_prefer)
    result.stored = True
    return result
