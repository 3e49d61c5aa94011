from __future__ import annotations

from sqlalchemy import Column, ForeignKey, Integer, String

from app.models.base import Base, BaseColumnsMixin


class Major(BaseColumnsMixin, Base):
    __tablename__ = "majors"

    department_id = Column(Integer, ForeignKey("departments.id"), nullable=False, index=True)
    name = Column(String(50), nullable=False, index=True)
