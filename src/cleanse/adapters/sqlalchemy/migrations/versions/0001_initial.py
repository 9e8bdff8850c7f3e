"""Create issue, issue_history and analysis_run tables.

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-19
"""

from __future__ import annotations

import sqlalchemy as sa
from alembic import op

revision = "0001_initial"
down_revision = None
branch_labels = None
depends_on = None

ENUM_LENGTH = 32


def upgrade() -> None:
    op.create_table(
        "issue",
        sa.Column("id", sa.String(length=64), nullable=False),
        sa.Column("operation_id", sa.String(length=64), nullable=False),
        sa.Column("cts_lid_full_identifier", sa.String(), nullable=False),
        sa.Column("cph", sa.String(), nullable=False),
        sa.Column("issue_code", sa.String(length=64), nullable=False),
        sa.Column("rule_code", sa.String(length=64), nullable=False),
        sa.Column("error_code", sa.String(length=64), nullable=False),
        sa.Column("error_description", sa.Text(), nullable=False),
        sa.Column("email_cts", sa.Text(), nullable=True),
        sa.Column("email_sam", sa.String(), nullable=True),
        sa.Column("tel_cts", sa.Text(), nullable=True),
        sa.Column("tel_sam", sa.String(), nullable=True),
        sa.Column("fsa", sa.String(), nullable=True),
        sa.Column("context_data", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("last_updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("is_ignored", sa.Boolean(), nullable=False),
        sa.Column("resolution_status", sa.String(length=ENUM_LENGTH), nullable=False),
        sa.Column("assigned_to", sa.String(), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_issue"),
    )
    op.create_index("ix_issue_active_code_cph", "issue", ["is_active", "issue_code", "cph"])
    op.create_index("ix_issue_operation_id", "issue", ["operation_id"])

    op.create_table(
        "issue_history",
        sa.Column("id", sa.String(length=64), nullable=False),
        sa.Column("issue_id", sa.String(length=64), nullable=False),
        sa.Column("action", sa.String(length=ENUM_LENGTH), nullable=False),
        sa.Column("performed_by", sa.String(), nullable=False),
        sa.Column("detail", sa.Text(), nullable=True),
        sa.Column("occurred_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(
            ["issue_id"], ["issue.id"], name="fk_issue_history_issue_id_issue"
        ),
        sa.PrimaryKeyConstraint("id", name="pk_issue_history"),
    )
    op.create_index(
        "ix_issue_history_issue_occurred", "issue_history", ["issue_id", "occurred_at"]
    )

    op.create_table(
        "analysis_run",
        sa.Column("id", sa.String(length=64), nullable=False),
        sa.Column("status", sa.String(length=ENUM_LENGTH), nullable=False),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("progress_percentage", sa.Float(), nullable=False),
        sa.Column("status_description", sa.String(), nullable=False),
        sa.Column("records_analyzed", sa.Integer(), nullable=False),
        sa.Column("total_records", sa.Integer(), nullable=False),
        sa.Column("issues_found", sa.Integer(), nullable=False),
        sa.Column("issues_resolved", sa.Integer(), nullable=False),
        sa.Column("error", sa.Text(), nullable=True),
        sa.Column("duration_ms", sa.Integer(), nullable=True),
        sa.Column("report_object_key", sa.String(), nullable=True),
        sa.Column("report_url", sa.String(), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_analysis_run"),
    )
    op.create_index("ix_analysis_run_started_at", "analysis_run", ["started_at"])


def downgrade() -> None:
    op.drop_index("ix_analysis_run_started_at", table_name="analysis_run")
    op.drop_table("analysis_run")
    op.drop_index("ix_issue_history_issue_occurred", table_name="issue_history")
    op.drop_table("issue_history")
    op.drop_index("ix_issue_operation_id", table_name="issue")
    op.drop_index("ix_issue_active_code_cph", table_name="issue")
    op.drop_table("issue")
