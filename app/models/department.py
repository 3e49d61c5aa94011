from __future__ import annotations

from sqlalchemy import Column, ForeignKey, Integer, String

from app.models.base import Base, BaseColumnsMixin


class Department(BaseColumnsMixin, Base):
    __tablename__ = "departments"

    university_id = Column(Integer, ForeignKey("universities.id"), nullable=False, index=True)
    name = Column(String(50), nullable=False, index=True)
