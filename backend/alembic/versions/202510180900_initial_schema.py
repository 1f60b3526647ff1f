"""Initial DayPlanner schema."""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "202510180900"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Text(), primary_key=True, nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
    )

    op.create_table(
        "tasks",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Text(), nullable=False),
        sa.Column("title", sa.Text(), nullable=False),
        sa.Column("duration_minutes", sa.Integer(), nullable=False),
        sa.Column("importance", sa.Text(), nullable=False),
        sa.Column("task_date", sa.Date(), nullable=False, server_default=sa.text("CURRENT_DATE")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
    )
    op.create_index("ix_tasks_user_id_task_date", "tasks", ["user_id", "task_date"], unique=False)

    op.create_table(
        "preferences",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Text(), nullable=False),
        sa.Column("wake_time", sa.String(length=5), nullable=False),
        sa.Column("sleep_time", sa.String(length=5), nullable=False),
        sa.Column("peak_focus", sa.String(length=20), nullable=False),
        sa.Column("city", sa.Text(), nullable=False),
        sa.Column("break_style", sa.Text(), nullable=False),
        sa.Column("break_interval_minutes", sa.Integer(), nullable=False),
        sa.Column("max_work_hours", sa.Float(), nullable=False),
        sa.Column("commute_mode", sa.String(length=20), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("user_id", name="uq_preferences_user_id"),
        sa.CheckConstraint(
            "peak_focus IN ('morning', 'afternoon', 'evening')",
            name="ck_preferences_peak_focus",
        ),
        sa.CheckConstraint(
            "commute_mode IN ('none', 'walk', 'bike', 'public', 'car')",
            name="ck_preferences_commute_mode",
        ),
    )

    op.create_table(
        "plans",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True, nullable=False),
        sa.Column("user_id", sa.Text(), nullable=False),
        sa.Column("plan_date", sa.Date(), nullable=False),
        sa.Column("plan_json", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False, server_default=sa.text("now()")),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("user_id", "plan_date", name="uq_plans_user_id_plan_date"),
    )


def downgrade() -> None:
    op.drop_table("plans")
    op.drop_table("preferences")

    op.drop_index("ix_tasks_user_id_task_date", table_name="tasks")
    op.drop_table("tasks")

    op.drop_table("users")
