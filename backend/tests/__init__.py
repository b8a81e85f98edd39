# Register every SQLModel table before any test database is created
from app.models.band import Band  # noqa: F401
from app.models.band_member import BandMember  # noqa: F401
from app.models.member import Member  # noqa: F401
from app.models.member_preference import MemberPreference  # noqa: F401
from app.models.practice_session import PracticeSession  # noqa: F401
