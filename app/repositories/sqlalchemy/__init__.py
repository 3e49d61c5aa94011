"""SQLAlchemy implementations of repository interfaces."""

from .university import SqlAlchemyUniversityRepository

__all__ = [
    "SqlAlchemyUniversityRepository",
]
