"""
Band Preference Aggregator

Folds per-member practice-time priorities for one week into per-band score
matrices, which feed the practice slot assignment engine.

Rules:
- Membership edges pointing at unknown bands are discarded
- A member is penalized only when practice_available is explicitly False
  (None means "no penalty recorded")
- A band with any penalized member is dropped from the round entirely
- Per member, the submission with the greatest updated_at wins; on equal
  timestamps the later row wins
- Members without a usable submission contribute nothing but do not drop
  their band
- Bands with no contribution or an all-zero sum are dropped
- Output is sorted by band name (natural, case-insensitive)
"""

import logging
import re
import unicodedata
from dataclasses import dataclass, field
from datetime import datetime
from typing import Dict, List, Optional, Sequence, Set, Tuple, Union

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from app.models.band import Band
from app.models.band_member import BandMember
from app.models.member import Member
from app.services.preference_matrix import (
    BandScore,
    Matrix,
    add_matrix_into,
    has_any_positive,
    parse_priority_matrix,
    zero_matrix,
)
from app.services.practice_session_store import PracticeSessionStore

logger = logging.getLogger(__name__)

_DIGIT_RUN = re.compile(r"(\d+)")


class BandPreferenceError(Exception):
    """Base exception for band preference aggregation"""

    pass


class BandPreferenceSourceError(BandPreferenceError):
    """A required upstream read (bands, band_members, members_prefer) failed"""

    pass


@dataclass(frozen=True)
class BandRow:
    band_id: int
    band_name: str


@dataclass(frozen=True)
class BandMemberRow:
    band_id: int
    member_id: int


@dataclass(frozen=True)
class MemberRow:
    member_id: int
    practice_available: Optional[bool]


@dataclass(frozen=True)
class PreferenceRow:
    member_id: int
    priority: Union[str, list, None]
    updated_at: Optional[datetime] = None


@dataclass
class BandPreferenceSource:
    """Everything the aggregator reads for one week."""

    bands: List[BandRow] = field(default_factory=list)
    band_members: List[BandMemberRow] = field(default_factory=list)
    members: List[MemberRow] = field(default_factory=list)
    preferences: List[PreferenceRow] = field(default_factory=list)


def band_name_sort_key(name: str) -> Tuple:
    """
    Natural, case-insensitive ordering for band names.

    NFKC folds full-width characters, digit runs compare numerically, and the
    raw name breaks remaining ties so the order is total.
    """
    folded = unicodedata.normalize("NFKC", name).casefold()
    parts = tuple((0, int(chunk), "") if chunk.isdigit() else (1, 0, chunk) for chunk in _DIGIT_RUN.split(folded) if chunk)
    return (parts, name)


def _updated_key(updated_at: Optional[datetime]) -> str:
    # ISO text compares the same way the stored timestamp strings do; missing sorts lowest
    return updated_at.isoformat() if updated_at else ""


def _latest_matrix_by_member(preferences: Sequence[PreferenceRow]) -> Dict[int, Matrix]:
    latest: Dict[int, Tuple[str, Matrix]] = {}
    for prefer in preferences:
        parsed = parse_priority_matrix(prefer.priority)
        if parsed.error is not None:
            logger.warning(
                "BAND_PREFER: priority parse error member_id=%s reason=%s",
                prefer.member_id,
                parsed.error.reason,
            )
        matrix = parsed.to_matrix_or_none()
        if matrix is None:
            logger.debug("BAND_PREFER: no usable priority member_id=%s", prefer.member_id)
            continue

        stamp = _updated_key(prefer.updated_at)
        existing = latest.get(prefer.member_id)
        if existing is None or stamp >= existing[0]:
            latest[prefer.member_id] = (stamp, matrix)
    return {member_id: matrix for member_id, (_, matrix) in latest.items()}


def aggregate_band_preferences(
    bands: Sequence[BandRow],
    band_members: Sequence[BandMemberRow],
    members: Sequence[MemberRow],
    preferences: Sequence[PreferenceRow],
) -> List[BandScore]:
    """
    Build the sorted [(band_name, score_matrix)] list for one week.

    Pure function over already-loaded rows; see module docstring for rules.
    """
    band_name_by_id: Dict[int, str] = {band.band_id: band.band_name for band in bands}

    members_by_band: Dict[int, List[int]] = {}
    band_ids_by_member: Dict[int, List[int]] = {}
    for relation in band_members:
        if relation.band_id not in band_name_by_id:
            continue
        members_by_band.setdefault(relation.band_id, []).append(relation.member_id)
        band_ids_by_member.setdefault(relation.member_id, []).append(relation.band_id)

    penalized: Set[int] = {m.member_id for m in members if m.practice_available is False}

    matrix_by_member = _latest_matrix_by_member(preferences)
    for member_id in matrix_by_member:
        if member_id not in band_ids_by_member:
            logger.debug("BAND_PREFER: submission from member not in any band member_id=%s", member_id)

    result: List[BandScore] = []
    for band_id, member_ids in members_by_band.items():
        band_name = band_name_by_id[band_id]
        unique_member_ids = list(dict.fromkeys(member_ids))

        if any(member_id in penalized for member_id in unique_member_ids):
            logger.info("BAND_PREFER: skip penalized band_id=%s band=%s", band_id, band_name)
            continue

        aggregated = zero_matrix()
        contributing: List[int] = []
        for member_id in unique_member_ids:
            matrix = matrix_by_member.get(member_id)
            if matrix is None:
                continue
            add_matrix_into(aggregated, matrix)
            contributing.append(member_id)

        if not contributing or not has_any_positive(aggregated):
            logger.debug("BAND_PREFER: skip band without positive scores band_id=%s band=%s", band_id, band_name)
            continue

        logger.debug("BAND_PREFER: band=%s contributing_members=%s", band_name, contributing)
        result.append((band_name, aggregated))

    result.sort(key=lambda entry: band_name_sort_key(entry[0]))
    return result


# ============================================================================
# Database loading
# ============================================================================


def load_band_preference_source(session: Session, week_id: int) -> BandPreferenceSource:
    """
    Read bands, memberships, submissions and eligibility for one week.

    Raises BandPreferenceSourceError if bands, band_members or members_prefer
    cannot be read. A failed members read is logged and yields no penalties.
    """
    source = BandPreferenceSource()

    try:
        source.bands = [
            BandRow(band_id=b.band_id, band_name=b.band_name)
            for b in session.exec(select(Band).order_by(Band.band_id)).all()
        ]
        source.band_members = [
            BandMemberRow(band_id=bm.band_id, member_id=bm.member_id)
            for bm in session.exec(select(BandMember).order_by(BandMember.id)).all()
        ]
        source.preferences = [
            PreferenceRow(member_id=p.member_id, priority=p.priority, updated_at=p.updated_at)
            for p in PracticeSessionStore(session).get_submissions(week_id)
        ]
    except SQLAlchemyError as e:
        logger.exception("BAND_PREFER: source read failed week_id=%s", week_id)
        raise BandPreferenceSourceError(f"Failed to load band preference source: {e}") from e

    member_ids = sorted({bm.member_id for bm in source.band_members})
    if member_ids:
        try:
            source.members = [
                MemberRow(member_id=m.member_id, practice_available=m.practice_available)
                for m in session.exec(select(Member).where(Member.member_id.in_(member_ids))).all()
            ]
        except SQLAlchemyError as e:
            session.rollback()
            logger.warning("BAND_PREFER: members read failed, continuing without penalty check: %s", e)
            source.members = []

    logger.info(
        "BAND_PREFER: loaded week_id=%s bands=%s band_members=%s members=%s preferences=%s",
        week_id,
        len(source.bands),
        len(source.band_members),
        len(source.members),
        len(source.preferences),
    )
    return source


def build_band_prefer_scores(session: Session, week_id: Optional[int]) -> List[BandScore]:
    """Load and aggregate one week. A missing week id yields an empty list."""
    if week_id is None:
        logger.info("BAND_PREFER: no week_id, empty aggregation")
        return []

    source = load_band_preference_source(session, week_id)
    scores = aggregate_band_preferences(source.bands, source.band_members, source.members, source.preferences)
    logger.info("BAND_PREFER: week_id=%s bands_scored=%s", week_id, len(scores))
    return scores
