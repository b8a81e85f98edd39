from app.models.band import Band
from app.models.band_member import BandMember
from app.models.member import Member
from app.models.member_preference import MemberPreference
from app.models.practice_session import PracticeSession

__all__ = [
    "Band",
    "BandMember",
    "Member",
    "MemberPreference",
    "PracticeSession",
]
