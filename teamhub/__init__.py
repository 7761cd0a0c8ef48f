"""TeamHub: team formation and collaboration backend."""

from .database import Base, get_db

__all__ = ["Base", "get_db"]
