from __future__ import annotations

from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, Integer, String

from app.models.base import Base, BaseColumnsMixin


class AdmissionInfo(BaseColumnsMixin, Base):
    __tablename__ = "admission_infos"

    admission_schedule_id = Column(
        Integer, ForeignKey("admission_schedules.id"), nullable=False, index=True
    )
    academic_year = Column(Integer, nullable=False)
    valid_from = Column(DateTime(timezone=True), nullable=False)
    valid_until = Column(DateTime(timezone=True), nullable=False)
    enrollment = Column(Integer, nullable=False, server_default="0")
    status = Column(String(20), nullable=False, server_default="draft")

    __table_args__ = (
        CheckConstraint(
            "academic_year BETWEEN 2000 AND 2100", name="ck_admission_infos_academic_year"
        ),
        CheckConstraint("valid_until > valid_from", name="ck_admission_infos_validity"),
        CheckConstraint("enrollment >= 0", name="ck_admission_infos_enrollment"),
        CheckConstraint(
            "status IN ('draft', 'published', 'archived')", name="ck_admission_infos_status"
        ),
    )
