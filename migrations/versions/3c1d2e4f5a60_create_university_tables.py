"""create university / admission tables

Revision ID: 3c1d2e4f5a60
Revises:
Create Date: 2026-10-19 00:00:00.000000
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = "3c1d2e4f5a60"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

_LIVE = sa.text("deleted_at IS NULL")

# 親 → 子 の順
_TABLES = (
    "universities",
    "departments",
    "majors",
    "admission_schedules",
    "admission_infos",
    "test_types",
    "subjects",
)


def _base_columns() -> list[sa.Column]:
    return [
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.func.now()
        ),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
    ]


def _parent(column: str, table: str) -> sa.Column:
    return sa.Column(column, sa.Integer(), sa.ForeignKey(f"{table}.id"), nullable=False)


def upgrade() -> None:
    op.create_table(
        "universities",
        *_base_columns(),
        sa.Column("name", sa.String(100), nullable=False),
    )
    op.create_index("ix_universities_name", "universities", ["name"])

    op.create_table(
        "departments",
        *_base_columns(),
        _parent("university_id", "universities"),
        sa.Column("name", sa.String(50), nullable=False),
    )
    op.create_index("ix_departments_university_id", "departments", ["university_id"])
    op.create_index("ix_departments_name", "departments", ["name"])

    op.create_table(
        "majors",
        *_base_columns(),
        _parent("department_id", "departments"),
        sa.Column("name", sa.String(50), nullable=False),
    )
    op.create_index("ix_majors_department_id", "majors", ["department_id"])
    op.create_index("ix_majors_name", "majors", ["name"])

    op.create_table(
        "admission_schedules",
        *_base_columns(),
        _parent("major_id", "majors"),
        sa.Column("name", sa.String(10), nullable=False),
        sa.Column("display_order", sa.Integer(), nullable=False),
        sa.CheckConstraint("name IN ('前期', '中期', '後期')", name="ck_admission_schedules_name"),
        sa.CheckConstraint(
            "display_order BETWEEN 1 AND 3", name="ck_admission_schedules_display_order"
        ),
    )
    op.create_index("ix_admission_schedules_major_id", "admission_schedules", ["major_id"])
    op.create_index(
        "uq_admission_schedules_major_name",
        "admission_schedules",
        ["major_id", "name"],
        unique=True,
        postgresql_where=_LIVE,
        sqlite_where=_LIVE,
    )
    op.create_index(
        "uq_admission_schedules_major_display_order",
        "admission_schedules",
        ["major_id", "display_order"],
        unique=True,
        postgresql_where=_LIVE,
        sqlite_where=_LIVE,
    )

    op.create_table(
        "admission_infos",
        *_base_columns(),
        _parent("admission_schedule_id", "admission_schedules"),
        sa.Column("academic_year", sa.Integer(), nullable=False),
        sa.Column("valid_from", sa.DateTime(timezone=True), nullable=False),
        sa.Column("valid_until", sa.DateTime(timezone=True), nullable=False),
        sa.Column("enrollment", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("status", sa.String(20), nullable=False, server_default="draft"),
        sa.CheckConstraint(
            "academic_year BETWEEN 2000 AND 2100", name="ck_admission_infos_academic_year"
        ),
        sa.CheckConstraint("valid_until > valid_from", name="ck_admission_infos_validity"),
        sa.CheckConstraint("enrollment >= 0", name="ck_admission_infos_enrollment"),
        sa.CheckConstraint(
            "status IN ('draft', 'published', 'archived')", name="ck_admission_infos_status"
        ),
    )
    op.create_index(
        "ix_admission_infos_admission_schedule_id", "admission_infos", ["admission_schedule_id"]
    )

    op.create_table(
        "test_types",
        *_base_columns(),
        _parent("admission_schedule_id", "admission_schedules"),
        sa.Column("name", sa.String(10), nullable=False),
        sa.CheckConstraint("name IN ('共通', '二次')", name="ck_test_types_name"),
    )
    op.create_index(
        "ix_test_types_admission_schedule_id", "test_types", ["admission_schedule_id"]
    )

    op.create_table(
        "subjects",
        *_base_columns(),
        _parent("test_type_id", "test_types"),
        sa.Column("name", sa.String(20), nullable=False),
        sa.Column("score", sa.Integer(), nullable=False),
        sa.Column("percentage", sa.Float(), nullable=False, server_default="0"),
        sa.Column("display_order", sa.Integer(), nullable=False),
        sa.CheckConstraint("score >= 0", name="ck_subjects_score"),
        sa.CheckConstraint(
            "percentage >= 0 AND percentage <= 100", name="ck_subjects_percentage"
        ),
        sa.CheckConstraint("display_order > 0", name="ck_subjects_display_order"),
    )
    op.create_index("ix_subjects_test_type_id", "subjects", ["test_type_id"])
    op.create_index(
        "uq_subjects_test_type_display_order",
        "subjects",
        ["test_type_id", "display_order"],
        unique=True,
        postgresql_where=_LIVE,
        sqlite_where=_LIVE,
    )

    for table in _TABLES:
        op.create_index(f"ix_{table}_deleted_at", table, ["deleted_at"])


def downgrade() -> None:
    for table in reversed(_TABLES):
        op.drop_table(table)
