from datetime import datetime, timezone

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Integer, String, Text

from teamhub.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class Profile(Base):
    __tablename__ = "profiles"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, unique=True, index=True)
    first_name = Column(String(64), nullable=False)
    last_name = Column(String(64), nullable=False)
    bio = Column(Text, nullable=True)
    skills = Column(JSON, nullable=False, default=list)
    experience = Column(String(20), nullable=False)
    linkedin_url = Column(String(512), nullable=True)
    github_url = Column(String(512), nullable=True)
    portfolio_url = Column(String(512), nullable=True)
    resume_id = Column(String(64), nullable=True)  # StoredFile.storage_id
    is_verified = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

    @property
    def full_name(self) -> str:
        return f"{self.first_name} {self.last_name}".strip()

    def set_skills(self, items: list[str]) -> None:
        """Replace skills with a unique, case-insensitive cleaned list."""
        uniq = []
        seen = set()
        for s in (items or []):
            s2 = (s or "").strip()
            key = s2.lower()
            if s2 and key not in seen:
                uniq.append(s2)
                seen.add(key)
        self.skills = uniq
