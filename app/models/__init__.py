# モジュール読み込み用（Alembicがモデルを見つけるために必要）
# app/models/__init__.py
from .admission_info import AdmissionInfo
from .admission_schedule import AdmissionSchedule
from .base import Base
from .department import Department
from .major import Major
from .subject import Subject
from .test_type import TestType
from .university import University

__all__ = [
    "Base",
    "University",
    "Department",
    "Major",
    "AdmissionSchedule",
    "AdmissionInfo",
    "TestType",
    "Subject",
]
