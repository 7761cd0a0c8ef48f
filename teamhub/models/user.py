from sqlalchemy import Column, Integer, String, DateTime, func

from teamhub.database import Base
from teamhub.models.enums import UserRole


class User(Base):
    """Bare identity record; everything user-facing lives on Profile."""

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    username = Column(String, unique=True, nullable=False)
    email = Column(String, unique=True, nullable=False)
    password_hash = Column("hashed_password", String, nullable=False)
    role = Column(String, nullable=False, default=UserRole.player.value)
    created_at = Column(DateTime, default=func.now())

    @property
    def is_admin(self) -> bool:
        return self.role == UserRole.admin.value
