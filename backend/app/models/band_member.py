"""
Band membership edge (many-to-many between bands and members).

No foreign keys: roster tooling may leave edges pointing at deleted bands,
and the aggregator discards those itself. Duplicate edges are tolerated.
"""

from typing import Optional

from sqlmodel import Field, SQLModel


class BandMember(SQLModel, table=True):
    __tablename__ = "band_members"

    id: Optional[int] = Field(default=None, primary_key=True)
    band_id: int = Field(index=True)
    member_id: int = Field(index=True)
