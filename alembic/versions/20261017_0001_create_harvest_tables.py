"""create harvest_runs and harvested_records tables

Revision ID: 20261017_0001
Revises:
Create Date: 2026-10-17 09:00:00
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20261017_0001"
down_revision = None
branch_labels = None
depends_on = None

JSON_TYPE = sa.JSON().with_variant(postgresql.JSONB(astext_type=sa.Text()), "postgresql")


def upgrade() -> None:
    op.create_table(
        "harvest_runs",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("kind", sa.String(length=32), nullable=False, comment="listing, detail"),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("subject_name", sa.String(length=512), nullable=True),
        sa.Column("measurement", sa.Integer(), nullable=False),
        sa.Column("steps", sa.Integer(), nullable=False),
        sa.Column("record_count", sa.Integer(), nullable=False),
        sa.Column("warnings_json", JSON_TYPE, nullable=True, comment="Soft warnings as [{code, message}]"),
        sa.Column("error_code", sa.String(length=64), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_harvest_runs"),
    )
    op.create_index("ix_harvest_runs_kind", "harvest_runs", ["kind"], unique=False)
    op.create_index("ix_harvest_runs_status", "harvest_runs", ["status"], unique=False)
    op.create_index("ix_harvest_runs_created_at", "harvest_runs", ["created_at"], unique=False)

    op.create_table(
        "harvested_records",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("run_id", sa.Uuid(), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False, comment="Discovery order within the run"),
        sa.Column("dedup_key", sa.Text(), nullable=False),
        sa.Column("payload", JSON_TYPE, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("CURRENT_TIMESTAMP"), nullable=False),
        sa.ForeignKeyConstraint(
            ["run_id"],
            ["harvest_runs.id"],
            name="fk_harvested_records_run_id_harvest_runs",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_harvested_records"),
    )
    op.create_index(
        "ix_harvested_records_run_id_position",
        "harvested_records",
        ["run_id", "position"],
        unique=True,
    )


def downgrade() -> None:
    op.drop_index("ix_harvested_records_run_id_position", table_name="harvested_records")
    op.drop_table("harvested_records")
    op.drop_index("ix_harvest_runs_created_at", table_name="harvest_runs")
    op.drop_index("ix_harvest_runs_status", table_name="harvest_runs")
    op.drop_index("ix_harvest_runs_kind", table_name="harvest_runs")
    op.drop_table("harvest_runs")
