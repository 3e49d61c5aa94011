from __future__ import annotations

from sqlalchemy import CheckConstraint, Column, Float, ForeignKey, Index, Integer, String, text

from app.models.base import Base, BaseColumnsMixin

_LIVE = text("deleted_at IS NULL")


class Subject(BaseColumnsMixin, Base):
    __tablename__ = "subjects"

    test_type_id = Column(Integer, ForeignKey("test_types.id"), nullable=False, index=True)
    name = Column(String(20), nullable=False)
    score = Column(Integer, nullable=False)
    percentage = Column(Float, nullable=False, server_default="0")
    display_order = Column(Integer, nullable=False)

    __table_args__ = (
        CheckConstraint("score >= 0", name="ck_subjects_score"),
        CheckConstraint("percentage >= 0 AND percentage <= 100", name="ck_subjects_percentage"),
        CheckConstraint("display_order > 0", name="ck_subjects_display_order"),
        Index(
            "uq_subjects_test_type_display_order",
            "test_type_id",
            "display_order",
            unique=True,
            postgresql_where=_LIVE,
            sqlite_where=_LIVE,
        ),
    )
