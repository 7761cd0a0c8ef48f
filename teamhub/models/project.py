from datetime import datetime, timezone

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Integer, String, Text

from teamhub.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Project(Base):
    __tablename__ = "projects"

    id = Column(Integer, primary_key=True, index=True)
    title = Column(String(128), nullable=False)
    description = Column(Text, nullable=False)
    category = Column(String(32), nullable=False, index=True)
    status = Column(String(16), nullable=False, default="open", index=True)
    created_by = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    team_id = Column(Integer, ForeignKey("teams.id", ondelete="SET NULL"), nullable=True)  # not linked yet
    required_skills = Column(JSON, nullable=False, default=list)
    time_commitment = Column(String(16), nullable=False)
    duration = Column(String(64), nullable=True)
    compensation = Column(String(128), nullable=True)
    spots_available = Column(Integer, nullable=False)
    application_deadline = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)
    tags = Column(JSON, nullable=False, default=list)
