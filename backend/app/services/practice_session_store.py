"""
Practice Session Store

Row-store access to scheduling periods and their computed results:
- get_active_period: newest open period, or None
- get_submissions: members_prefer rows for a period, in insertion order
- put_result: overwrite the stored score list + grid for a period

Period lifecycle (open / close) lives in the practice-schedule routes.

put_result is a single-row overwrite with no version guard: two concurrent
finalizations of the same period race and the last commit wins.
"""

import hashlib
import json
import logging
from datetime import datetime
from typing import List, Optional

from sqlmodel import Session, select

from app.models.member_preference import MemberPreference
from app.models.practice_session import PracticeSession
from app.services.preference_matrix import BandScore, Grid

logger = logging.getLogger(__name__)


class PracticeSessionNotFoundError(Exception):
    """No practice_session row for the given week_id"""

    def __init__(self, week_id: int):
        super().__init__(f"Practice session {week_id} not found")
        self.week_id = week_id


def compute_result_checksum(bands_prefer_score: List[BandScore], grid: Grid) -> str:
    """SHA-256 over canonical JSON of the score list and grid."""
    canonical_json = json.dumps(
        {"bands_prefer_score": [[name, matrix] for name, matrix in bands_prefer_score], "nice_prefer": grid},
        sort_keys=True,
        separators=(",", ":"),
    )
    return hashlib.sha256(canonical_json.encode("utf-8")).hexdigest()


class PracticeSessionStore:
    def __init__(self, session: Session):
        self.session = session

    def get_period(self, week_id: int) -> Optional[PracticeSession]:
        return self.session.get(PracticeSession, week_id)

    def require_period(self, week_id: int) -> PracticeSession:
        period = self.get_period(week_id)
        if period is None:
            raise PracticeSessionNotFoundError(week_id)
        return period

    def get_active_period(self) -> Optional[PracticeSession]:
        return self.session.exec(
            select(PracticeSession)
            .where(PracticeSession.is_finished == False)  # noqa: E712
            .order_by(PracticeSession.start_date.desc(), PracticeSession.week_id.desc())
        ).first()

    def get_submissions(self, week_id: int) -> List[MemberPreference]:
        return list(
            self.session.exec(
                select(MemberPreference).where(MemberPreference.week_id == week_id).order_by(MemberPreference.id)
            ).all()
        )

    def put_result(self, week_id: int, bands_prefer_score: List[BandScore], grid: Grid) -> PracticeSession:
        """
        Upsert the computed result for a period (overwrite semantics).

        Raises PracticeSessionNotFoundError if the period does not exist.
        """
        period = self.require_period(week_id)

        checksum = compute_result_checksum(bands_prefer_score, grid)
        if period.result_checksum and period.result_checksum != checksum:
            logger.info("PRACTICE_STORE: overwriting result week_id=%s previous=%s", week_id, period.result_checksum[:12])

        period.bands_prefer_score = [[name, matrix] for name, matrix in bands_prefer_score]
        period.result = grid
        period.result_checksum = checksum
        period.finalized_at = datetime.utcnow()

        self.session.add(period)
        self.session.commit()
        self.session.refresh(period)

        logger.info("PRACTICE_STORE: stored result week_id=%s checksum=%s", week_id, checksum[:12])
        return period
