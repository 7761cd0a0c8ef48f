from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, Text, text
from sqlalchemy.orm import relationship

from teamhub.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


_PENDING_GROUP = text("type = 'group_application' AND status = 'pending'")
_OPEN_WOLF_PACK = text("type = 'wolf_pack' AND status <> 'rejected'")


class Application(Base):
    __tablename__ = "applications"

    id = Column(Integer, primary_key=True, index=True)
    applicant_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    team_id = Column(Integer, ForeignKey("teams.id", ondelete="CASCADE"), nullable=True, index=True)
    type = Column(String(32), nullable=False, index=True)
    status = Column(String(16), nullable=False, default="pending", index=True)
    resume_id = Column(String(64), nullable=False)
    cover_letter = Column(Text, nullable=True)
    applied_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    reviewed_at = Column(DateTime(timezone=True), nullable=True)
    reviewed_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    review_notes = Column(Text, nullable=True)

    team = relationship("Team", lazy="selectin")

    __table_args__ = (
        # One pending group application per applicant
        Index(
            "uq_pending_group_application",
            "applicant_id",
            unique=True,
            sqlite_where=_PENDING_GROUP,
            postgresql_where=_PENDING_GROUP,
        ),
        # One live (non-rejected) application per applicant and team
        Index(
            "uq_open_team_application",
            "applicant_id",
            "team_id",
            unique=True,
            sqlite_where=_OPEN_WOLF_PACK,
            postgresql_where=_OPEN_WOLF_PACK,
        ),
    )
