"""Create cron_jobs and cron_executions tables

Revision ID: 001_create_cron_tables
Revises:
Create Date: 2026-10-18

"""

from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "001_create_cron_tables"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "cron_jobs",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("external_id", sa.Integer(), nullable=True),
        sa.Column("title", sa.String(500), nullable=False),
        sa.Column("url", sa.String(2048), nullable=False),
        sa.Column("enabled", sa.Boolean(), nullable=False),
        sa.Column("save_responses", sa.Boolean(), nullable=False),
        sa.Column("schedule", sa.JSON(), nullable=False),
        sa.Column("request_timeout", sa.Integer(), nullable=True),
        sa.Column("redirect_success", sa.Boolean(), nullable=True),
        sa.Column("request_method", sa.Integer(), nullable=True),
        sa.Column("auth", sa.JSON(), nullable=True),
        sa.Column("notification", sa.JSON(), nullable=True),
        sa.Column("extended_data", sa.JSON(), nullable=True),
        sa.Column("category", sa.String(20), nullable=False),
        sa.Column("priority", sa.String(20), nullable=False),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("last_execution", sa.DateTime(), nullable=True),
        sa.Column("next_execution", sa.DateTime(), nullable=True),
        sa.Column("retry_count", sa.Integer(), nullable=False),
        sa.Column("max_retries", sa.Integer(), nullable=False),
        sa.Column("created_by", sa.String(255), nullable=False),
        sa.Column("metadata", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_cron_jobs_external_id", "cron_jobs", ["external_id"], unique=True)
    op.create_index("ix_cron_jobs_category", "cron_jobs", ["category"])
    op.create_index("ix_cron_jobs_status", "cron_jobs", ["status"])
    op.create_index("ix_cron_jobs_next_execution", "cron_jobs", ["next_execution"])

    op.create_table(
        "cron_executions",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("job_id", sa.Uuid(), nullable=False),
        sa.Column("external_job_id", sa.Integer(), nullable=True),
        sa.Column("execution_id", sa.String(128), nullable=True),
        sa.Column("status", sa.String(20), nullable=False),
        sa.Column("start_time", sa.DateTime(), nullable=False),
        sa.Column("end_time", sa.DateTime(), nullable=True),
        sa.Column("duration", sa.Integer(), nullable=True),
        sa.Column("http_status", sa.Integer(), nullable=True),
        sa.Column("response_body", sa.Text(), nullable=True),
        sa.Column("response_size", sa.Integer(), nullable=True),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("error_code", sa.String(32), nullable=True),
        sa.Column("retry_attempt", sa.Integer(), nullable=False),
        sa.Column("triggered_by", sa.String(20), nullable=False),
        sa.Column("metadata", sa.JSON(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.ForeignKeyConstraint(["job_id"], ["cron_jobs.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint(
            "external_job_id", "execution_id", name="uq_cron_executions_identity"
        ),
    )
    op.create_index("ix_cron_executions_job_id", "cron_executions", ["job_id"])
    op.create_index("ix_cron_executions_status", "cron_executions", ["status"])
    op.create_index("ix_cron_executions_start_time", "cron_executions", ["start_time"])
    op.create_index(
        "ix_cron_executions_job_start", "cron_executions", ["job_id", "start_time"]
    )


def downgrade() -> None:
    op.drop_index("ix_cron_executions_job_start", table_name="cron_executions")
    op.drop_index("ix_cron_executions_start_time", table_name="cron_executions")
    op.drop_index("ix_cron_executions_status", table_name="cron_executions")
    op.drop_index("ix_cron_executions_job_id", table_name="cron_executions")
    op.drop_table("cron_executions")
    op.drop_index("ix_cron_jobs_next_execution", table_name="cron_jobs")
    op.drop_index("ix_cron_jobs_status", table_name="cron_jobs")
    op.drop_index("ix_cron_jobs_category", table_name="cron_jobs")
    op.drop_index("ix_cron_jobs_external_id", table_name="cron_jobs")
    op.drop_table("cron_jobs")
