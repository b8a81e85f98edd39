from datetime import date, datetime
from typing import Any, List, Optional

from sqlalchemy import JSON
from sqlmodel import Column, Field, SQLModel


class PracticeSession(SQLModel, table=True):
    """
    One practice-scheduling round ("week").

    Opened by an officer with an availability template, closed when
    recruitment ends. result holds the DAYS x HOURS x LOCATIONS assignment
    grid (band name or 0) written on finalize; a second finalize overwrites it.
    """

    __tablename__ = "practice_session"

    week_id: Optional[int] = Field(default=None, primary_key=True)
    start_date: date
    available: Optional[List[Any]] = Field(default=None, sa_column=Column(JSON))
    is_finished: bool = Field(default=False, index=True)
    bands_prefer_score: Optional[List[Any]] = Field(default=None, sa_column=Column(JSON))
    result: Optional[List[Any]] = Field(default=None, sa_column=Column(JSON))
    result_checksum: Optional[str] = Field(default=None, max_length=64)
    finalized_at: Optional[datetime] = Field(default=None)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow, sa_column_kwargs={"onupdate": datetime.utcnow})
