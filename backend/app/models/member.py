from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel


class Member(SQLModel, table=True):
    __tablename__ = "members"

    member_id: Optional[int] = Field(default=None, primary_key=True)
    name: str
    # None = no penalty recorded; only an explicit False disqualifies the member's bands
    practice_available: Optional[bool] = Field(default=None)
    created_at: datetime = Field(default_factory=datetime.utcnow)
