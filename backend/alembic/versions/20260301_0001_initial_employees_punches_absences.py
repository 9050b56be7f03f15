"""initial: employees, punches, absences, absence_types, data_versions, import_history

Revision ID: 0001_initial
Revises:
Create Date: 2026-03-01 00:00:00.000000

"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op

revision: str = "0001_initial"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    # --- employees ---
    op.create_table(
        "employees",
        sa.Column("matricule", sa.String(64), nullable=False),
        sa.Column("first_name", sa.String(255), nullable=False, server_default=""),
        sa.Column("last_name", sa.String(255), nullable=False, server_default=""),
        sa.Column("department", sa.String(255), nullable=False, server_default=""),
        sa.Column("role", sa.String(255), nullable=True),
        sa.Column(
            "status",
            sa.Enum("Active", "Inactive", name="employee_status"),
            nullable=False,
            server_default="Active",
        ),
        sa.Column("days_worked", sa.Float(), nullable=False, server_default="0"),
        sa.Column("days_off", sa.Float(), nullable=False, server_default="0"),
        sa.Column("total_days", sa.Float(), nullable=False, server_default="0"),
        sa.Column("period", sa.String(64), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("matricule"),
    )

    # --- punches ---
    op.create_table(
        "punches",
        sa.Column("id", sa.BigInteger(), autoincrement=True, nullable=False),
        sa.Column("matricule", sa.String(64), nullable=False),
        sa.Column("punch_time", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "direction",
            sa.Enum("IN", "OUT", name="punch_direction"),
            nullable=False,
            server_default="IN",
        ),
        sa.Column("note", sa.String(255), nullable=True),
        sa.Column("operation", sa.String(255), nullable=True),
        sa.Column("raw_hours", sa.Float(), nullable=True),
        sa.Column("raw_lateness", sa.Float(), nullable=True),
        sa.Column("raw_absence", sa.String(64), nullable=True),
        sa.Column("upload_id", sa.String(64), nullable=True),
        sa.ForeignKeyConstraint(["matricule"], ["employees.matricule"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("matricule", "punch_time", "direction", name="uq_punch_dedup"),
    )
    op.create_index("ix_punch_matricule_time", "punches", ["matricule", "punch_time"])

    # --- absences ---
    op.create_table(
        "absences",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("matricule", sa.String(64), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("reason_code", sa.String(128), nullable=False),
        sa.Column(
            "source",
            sa.Enum("FILE", "MANUAL", name="absence_source"),
            nullable=False,
        ),
        sa.Column("note", sa.String(1024), nullable=True),
        sa.Column("upload_id", sa.String(64), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("matricule", "date", "source", name="uq_absence_source"),
    )
    op.create_index("ix_absence_date", "absences", ["date"])

    # --- absence_types ---
    op.create_table(
        "absence_types",
        sa.Column("reason_code", sa.String(128), nullable=False),
        sa.Column("label", sa.String(255), nullable=False),
        sa.Column("description", sa.String(1024), nullable=True),
        sa.Column("category", sa.String(32), nullable=False, server_default="OTHER"),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("reason_code"),
        sa.UniqueConstraint("label"),
    )

    # --- data_versions ---
    op.create_table(
        "data_versions",
        sa.Column("name", sa.String(64), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("recomputed_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("name"),
    )

    # --- import_history ---
    op.create_table(
        "import_history",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("upload_id", sa.String(64), nullable=False),
        sa.Column("filename", sa.String(255), nullable=False),
        sa.Column(
            "uploaded_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column(
            "status",
            sa.Enum("success", "partial", "failed", name="import_status_enum"),
            nullable=False,
        ),
        sa.Column("logs", sa.JSON(), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("upload_id"),
    )


def downgrade() -> None:
    op.drop_table("import_history")
    op.drop_table("data_versions")
    op.drop_table("absence_types")
    op.drop_index("ix_absence_date", table_name="absences")
    op.drop_table("absences")
    op.drop_index("ix_punch_matricule_time", table_name="punches")
    op.drop_table("punches")
    op.drop_table("employees")
    op.execute("DROP TYPE IF EXISTS import_status_enum")
    op.execute("DROP TYPE IF EXISTS absence_source")
    op.execute("DROP TYPE IF EXISTS punch_direction")
    op.execute("DROP TYPE IF EXISTS employee_status")
