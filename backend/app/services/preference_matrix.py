"""
Preference matrix model.

A preference matrix is a fixed DAYS x HOURS grid of non-negative scores.
Day index 0 is Tuesday (Tue, Wed, Thu, Fri, Sat, Mon); hour index 0 is 09:00.

An assignment grid is DAYS x HOURS x LOCATIONS where each cell is either a
band name or EMPTY_SLOT (the integer 0). Consumers compare against 0, so the
sentinel must never be None or "".

All normalizers accept anything and always return a fully-shaped structure.
"""
from __future__ import annotations

import json
import math
from dataclasses import dataclass
from typing import Any, List, Optional, Tuple, Union

DAYS = 6
HOURS = 12
LOCATIONS = ("310", "107")
LOCATION_COUNT = len(LOCATIONS)

DAY_LABELS = ("Tue", "Wed", "Thu", "Fri", "Sat", "Mon")
FIRST_HOUR = 9

EMPTY_SLOT = 0

Matrix = List[List[float]]
GridCell = Union[str, int]
Grid = List[List[List[GridCell]]]
BandScore = Tuple[str, Matrix]


def _is_score(value: Any) -> bool:
    # bool is an int subclass; JSON true/false is not a score
    if not isinstance(value, (int, float)) or isinstance(value, bool):
        return False
    return math.isfinite(value) and value >= 0


def zero_matrix() -> Matrix:
    return [[0 for _ in range(HOURS)] for _ in range(DAYS)]


def empty_grid() -> Grid:
    return [[[EMPTY_SLOT for _ in range(LOCATION_COUNT)] for _ in range(HOURS)] for _ in range(DAYS)]


def normalize_matrix(raw: Any) -> Matrix:
    """
    Coerce any value into a DAYS x HOURS numeric matrix.

    - Non-list input -> all-zero matrix
    - Missing / non-list rows -> zero row
    - Missing, non-numeric, negative or non-finite cells -> 0
    """
    if not isinstance(raw, list):
        return zero_matrix()

    matrix: Matrix = []
    for day_index in range(DAYS):
        row = raw[day_index] if day_index < len(raw) and isinstance(raw[day_index], list) else []
        matrix.append(
            [row[hour_index] if hour_index < len(row) and _is_score(row[hour_index]) else 0 for hour_index in range(HOURS)]
        )
    return matrix


def normalize_grid(raw: Any) -> Grid:
    """Coerce a persisted assignment grid into DAYS x HOURS x LOCATIONS (band name or EMPTY_SLOT)."""
    if not isinstance(raw, list):
        return empty_grid()

    grid: Grid = []
    for day_index in range(DAYS):
        day = raw[day_index] if day_index < len(raw) and isinstance(raw[day_index], list) else []
        hours: List[List[GridCell]] = []
        for hour_index in range(HOURS):
            slot = day[hour_index] if hour_index < len(day) and isinstance(day[hour_index], list) else []
            cells: List[GridCell] = []
            for location_index in range(LOCATION_COUNT):
                value = slot[location_index] if location_index < len(slot) else EMPTY_SLOT
                cells.append(value if isinstance(value, str) and value else EMPTY_SLOT)
            hours.append(cells)
        grid.append(hours)
    return grid


def has_any_positive(matrix: Matrix) -> bool:
    return any(value > 0 for row in matrix for value in row)


def add_matrix_into(target: Matrix, source: Matrix) -> None:
    """Cell-wise target += source. Both must already be normalized."""
    for day_index in range(DAYS):
        target_row = target[day_index]
        source_row = source[day_index]
        for hour_index in range(HOURS):
            target_row[hour_index] += source_row[hour_index]


@dataclass(frozen=True)
class MatrixParseError:
    reason: str
    raw_preview: str = ""


@dataclass(frozen=True)
class ParsedMatrix:
    """
    Outcome of parsing a stored priority value.

    A usable submission sets ``matrix``, malformed JSON sets ``error``, and an
    empty submission (null, or no positive cell) sets neither.
    """

    matrix: Optional[Matrix] = None
    error: Optional[MatrixParseError] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_matrix_or_none(self) -> Optional[Matrix]:
        return self.matrix if self.error is None else None


def parse_priority_matrix(priority: Union[str, list, None]) -> ParsedMatrix:
    """
    Parse a members_prefer.priority value (JSON text or native list).

    Malformed JSON becomes a ParsedMatrix carrying a MatrixParseError rather
    than an exception; one bad row must not stop aggregation.
    """
    if priority is None:
        return ParsedMatrix()

    raw: Any = priority
    if isinstance(priority, str):
        try:
            raw = json.loads(priority)
        except ValueError as e:
            return ParsedMatrix(error=MatrixParseError(reason=str(e), raw_preview=priority[:40]))

    matrix = normalize_matrix(raw)
    if not has_any_positive(matrix):
        return ParsedMatrix()
    return ParsedMatrix(matrix=matrix)


def normalize_band_prefer_entries(raw: Any) -> List[BandScore]:
    """
    Validate a list of [band_name, matrix] pairs.

    Entries that are not lists, lack a string band name, or whose matrix has
    no positive cell are dropped.
    """
    if not isinstance(raw, list):
        return []

    sanitized: List[BandScore] = []
    for entry in raw:
        if not isinstance(entry, (list, tuple)) or not entry:
            continue
        band_name = entry[0]
        if not isinstance(band_name, str):
            continue
        matrix = normalize_matrix(entry[1] if len(entry) > 1 else None)
        if not has_any_positive(matrix):
            continue
        sanitized.append((band_name, matrix))
    return sanitized


def slot_label(day_index: int, hour_index: int) -> str:
    """Human label for a (day, hour) cell, e.g. 'Tue 09:00'."""
    return f"{DAY_LABELS[day_index]} {FIRST_HOUR + hour_index:02d}:00"


def is_day_hour_shaped(value: Any) -> bool:
    """True if value is a DAYS-long list of HOURS-long lists (cell types unchecked)."""
    return (
        isinstance(value, list)
        and len(value) == DAYS
        and all(isinstance(row, list) and len(row) == HOURS for row in value)
    )
