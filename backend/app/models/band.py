from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel


class Band(SQLModel, table=True):
    __tablename__ = "bands"

    band_id: Optional[int] = Field(default=None, primary_key=True)
    band_name: str
    created_at: datetime = Field(default_factory=datetime.utcnow)
