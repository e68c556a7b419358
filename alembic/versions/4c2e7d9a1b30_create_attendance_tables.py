"""Create settings, staff, message_logs and stage_sessions tables

Revision ID: 4c2e7d9a1b30
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""
from collections.abc import Sequence

import sqlalchemy as sa

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "4c2e7d9a1b30"
down_revision: str | Sequence[str] | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # --- settings ---
    op.create_table(
        "settings",
        sa.Column("key", sa.String(100), primary_key=True),
        sa.Column("value", sa.Text, nullable=False),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(),
        ),
    )

    # --- staff ---
    op.create_table(
        "staff",
        sa.Column("discord_id", sa.BigInteger, primary_key=True, autoincrement=False),
        sa.Column("display_name", sa.String(100), nullable=True),
        sa.Column("status", sa.String(16), nullable=False, server_default="off"),
        sa.Column("messages_count", sa.Integer, nullable=False, server_default="0"),
        sa.Column("minutes_on_stage", sa.Integer, nullable=False, server_default="0"),
        sa.Column("points", sa.Numeric(12, 4), nullable=False, server_default="0"),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.func.now(),
        ),
        sa.Column(
            "updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(),
        ),
        sa.CheckConstraint("messages_count >= 0", name="ck_staff_messages_nonneg"),
        sa.CheckConstraint("minutes_on_stage >= 0", name="ck_staff_minutes_nonneg"),
    )
    op.create_index("ix_staff_points_desc", "staff", [sa.text("points DESC")])
    op.create_index("ix_staff_status", "staff", ["status"])

    # --- message_logs ---
    op.create_table(
        "message_logs",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("discord_id", sa.BigInteger, nullable=False),
        sa.Column("channel_id", sa.BigInteger, nullable=False),
        sa.Column(
            "created_at", sa.DateTime(timezone=True), server_default=sa.func.now(),
        ),
    )
    op.create_index(
        "ix_message_logs_user_time", "message_logs", ["discord_id", "created_at"],
    )

    # --- stage_sessions ---
    op.create_table(
        "stage_sessions",
        sa.Column("id", sa.Integer, primary_key=True, autoincrement=True),
        sa.Column("discord_id", sa.BigInteger, nullable=False),
        sa.Column("start_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("end_at", sa.DateTime(timezone=True), nullable=True),
    )
    op.create_index(
        "ix_stage_sessions_user_start", "stage_sessions",
        ["discord_id", sa.text("start_at DESC")],
    )


def downgrade() -> None:
    op.drop_index("ix_stage_sessions_user_start", table_name="stage_sessions")
    op.drop_table("stage_sessions")
    op.drop_index("ix_message_logs_user_time", table_name="message_logs")
    op.drop_table("message_logs")
    op.drop_index("ix_staff_status", table_name="staff")
    op.drop_index("ix_staff_points_desc", table_name="staff")
    op.drop_table("staff")
    op.drop_table("settings")
