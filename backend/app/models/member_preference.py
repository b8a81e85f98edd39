"""
Member practice-time submission for one scheduling period (week).

requested_times and priority are stored as JSON text. There is no unique
constraint on (member_id, week_id): imported data can carry duplicates and
the aggregator keeps the newest by updated_at.
"""

from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel


class MemberPreference(SQLModel, table=True):
    __tablename__ = "members_prefer"

    id: Optional[int] = Field(default=None, primary_key=True)
    member_id: int = Field(index=True)
    week_id: int = Field(index=True)
    requested_times: Optional[str] = Field(default=None)  # JSON 6x12 availability flags
    priority: Optional[str] = Field(default=None)  # JSON 6x12 weighted scores
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: Optional[datetime] = Field(default=None)
