from __future__ import annotations

from sqlalchemy import Column, String

from app.models.base import Base, BaseColumnsMixin


class University(BaseColumnsMixin, Base):
    __tablename__ = "universities"

    name = Column(String(100), nullable=False, index=True)
