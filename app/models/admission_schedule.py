from __future__ import annotations

from sqlalchemy import CheckConstraint, Column, ForeignKey, Index, Integer, String, text

from app.models.base import Base, BaseColumnsMixin

_LIVE = text("deleted_at IS NULL")


class AdmissionSchedule(BaseColumnsMixin, Base):
    __tablename__ = "admission_schedules"

    major_id = Column(Integer, ForeignKey("majors.id"), nullable=False, index=True)
    name = Column(String(10), nullable=False)
    display_order = Column(Integer, nullable=False)

    __table_args__ = (
        CheckConstraint("name IN ('前期', '中期', '後期')", name="ck_admission_schedules_name"),
        CheckConstraint(
            "display_order BETWEEN 1 AND 3", name="ck_admission_schedules_display_order"
        ),
        # 論理削除済みの行は一意制約の対象外
        Index(
            "uq_admission_schedules_major_name",
            "major_id",
            "name",
            unique=True,
            postgresql_where=_LIVE,
            sqlite_where=_LIVE,
        ),
        Index(
            "uq_admission_schedules_major_display_order",
            "major_id",
            "display_order",
            unique=True,
            postgresql_where=_LIVE,
            sqlite_where=_LIVE,
        ),
    )
