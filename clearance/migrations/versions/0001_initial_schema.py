"""Initial schema: subjects and decision requests

Revision ID: 0001
Revises:
Create Date: 2026-10-19

Tables added:
- subjects: Registered subjects and their per-department status snapshot
- decision_requests: Decision ledger, one row per clearance request
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create subjects and decision_requests tables."""

    # --- subjects ---
    op.create_table(
        "subjects",
        sa.Column("id", sa.String(100), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("contact", sa.String(255), nullable=False),
        sa.Column("status_by_department", sa.JSON(), nullable=False),
        sa.Column("artifact_issued", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("issued_at", sa.DateTime(), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.current_timestamp()),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.func.current_timestamp()),
        sa.PrimaryKeyConstraint("id", name="pk_subjects"),
    )

    # --- decision_requests ---
    op.create_table(
        "decision_requests",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("subject_id", sa.String(100), nullable=False),
        sa.Column("department", sa.String(50), nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("resolved_at", sa.DateTime(), nullable=True),
        sa.Column("resolved_by", sa.String(255), nullable=True),
        sa.Column("comment", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.current_timestamp()),
        sa.PrimaryKeyConstraint("id", name="pk_decision_requests"),
        sa.ForeignKeyConstraint(["subject_id"], ["subjects.id"], name="fk_decision_requests_subject_id"),
    )
    op.create_index("ix_decision_requests_subject_id", "decision_requests", ["subject_id"])
    op.create_index("ix_decision_requests_department", "decision_requests", ["department"])
    op.create_index("ix_decision_requests_status", "decision_requests", ["status"])
    op.create_index("ix_decision_requests_created_at", "decision_requests", ["created_at"])
    op.create_index(
        "ix_decision_requests_subject_department",
        "decision_requests",
        ["subject_id", "department"],
    )


def downgrade() -> None:
    """Drop clearance tables."""
    op.drop_index("ix_decision_requests_subject_department", table_name="decision_requests")
    op.drop_index("ix_decision_requests_created_at", table_name="decision_requests")
    op.drop_index("ix_decision_requests_status", table_name="decision_requests")
    op.drop_index("ix_decision_requests_department", table_name="decision_requests")
    op.drop_index("ix_decision_requests_subject_id", table_name="decision_requests")
    op.drop_table("decision_requests")
    op.drop_table("subjects")
