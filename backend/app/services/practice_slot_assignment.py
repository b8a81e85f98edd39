"""
Practice Slot Assignment: greedy band-to-slot placement

Takes the aggregated [(band_name, score_matrix)] list and fills a
DAYS x HOURS x LOCATIONS grid.

Algorithm:
1. One candidate per (band, day, hour) with a strictly positive score
2. Sort by score desc, then day asc, then hour asc (stable, so input order
   breaks remaining ties; callers pass bands sorted by name)
3. Walk candidates once, placing into the first free location unless:
   - the band already holds MAX_SLOTS_PER_BAND slots
   - the band already holds the other location in that hour
   - score - occupied * CONTENTION_PENALTY <= 0
   - both locations are taken

This is a greedy heuristic, not an optimizer. Tie-break and decay behavior
are part of the contract.
"""

import logging
from collections import Counter
from dataclasses import dataclass
from typing import Dict, List, Sequence, Tuple

from app.services.preference_matrix import (
    DAYS,
    EMPTY_SLOT,
    HOURS,
    LOCATIONS,
    BandScore,
    Grid,
    empty_grid,
    slot_label,
)

logger = logging.getLogger(__name__)

MAX_SLOTS_PER_BAND = 2
CONTENTION_PENALTY = 2


@dataclass(frozen=True)
class PracticeCandidate:
    band_name: str
    day_index: int
    hour_index: int
    base_score: float


def get_candidate_sort_key(candidate: PracticeCandidate) -> Tuple:
    """Order: base_score desc -> day_index asc -> hour_index asc"""
    return (-candidate.base_score, candidate.day_index, candidate.hour_index)


def build_candidates(scores: Sequence[BandScore]) -> List[PracticeCandidate]:
    candidates: List[PracticeCandidate] = []
    for band_name, score_matrix in scores:
        for day_index in range(DAYS):
            for hour_index in range(HOURS):
                base_score = score_matrix[day_index][hour_index]
                if base_score > 0:
                    candidates.append(PracticeCandidate(band_name, day_index, hour_index, base_score))
    return candidates


def assign_practice_slots(scores: Sequence[BandScore]) -> Grid:
    """
    Assign bands to practice slots.

    Pure function: same input list -> identical grid. Each band gets at most
    MAX_SLOTS_PER_BAND cells and never both locations of one hour.
    """
    grid = empty_grid()

    candidates = sorted(build_candidates(scores), key=get_candidate_sort_key)
    band_assignments: Dict[str, int] = {}

    for candidate in candidates:
        usage = band_assignments.get(candidate.band_name, 0)
        if usage >= MAX_SLOTS_PER_BAND:
            continue

        slot = grid[candidate.day_index][candidate.hour_index]
        if candidate.band_name in slot:
            continue

        occupied_count = sum(1 for entry in slot if entry != EMPTY_SLOT)
        adjusted_score = candidate.base_score - occupied_count * CONTENTION_PENALTY
        if adjusted_score <= 0:
            continue

        free_index = next((i for i, entry in enumerate(slot) if entry == EMPTY_SLOT), None)
        if free_index is None:
            continue

        slot[free_index] = candidate.band_name
        band_assignments[candidate.band_name] = usage + 1
        logger.debug(
            "PRACTICE_ASSIGN: placed band=%s slot=%s location=%s adjusted_score=%s",
            candidate.band_name,
            slot_label(candidate.day_index, candidate.hour_index),
            LOCATIONS[free_index],
            adjusted_score,
        )

    logger.info(
        "PRACTICE_ASSIGN: bands_in=%s candidates=%s bands_placed=%s cells_filled=%s",
        len(scores),
        len(candidates),
        len(band_assignments),
        sum(band_assignments.values()),
    )
    return grid


def count_band_occurrences(grid: Grid) -> Dict[str, int]:
    counts: Counter = Counter()
    for day in grid:
        for hour in day:
            for entry in hour:
                if isinstance(entry, str):
                    counts[entry] += 1
    return dict(counts)


def count_assigned_bands(grid: Grid) -> int:
    return len(count_band_occurrences(grid))
