"""Initial schema: admin accounts, submissions, intake sessions.

Revision ID: 0001
Revises: (none)
Create Date: 2026-10-19

Run with:
    alembic upgrade head
"""

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None

from alembic import op
import sqlalchemy as sa


def upgrade() -> None:
    op.create_table(
        "admin_users",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("hashed_password", sa.String(255), nullable=False),
        sa.Column("full_name", sa.String(255)),
        sa.Column("is_active", sa.Boolean(), server_default=sa.true()),
        sa.Column("last_login_at", sa.DateTime()),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now()),
    )
    op.create_index("ix_admin_users_email", "admin_users", ["email"], unique=True)

    op.create_table(
        "submissions",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("employee_name", sa.String(100), nullable=False),
        sa.Column("employee_id", sa.String(50), nullable=False),
        sa.Column("employee_number", sa.String(10)),
        sa.Column("employee_email", sa.String(255)),
        sa.Column("company", sa.String(100), nullable=False),
        sa.Column("department", sa.String(100), nullable=False),
        sa.Column("designation", sa.String(100), nullable=False),
        sa.Column("selected_assets", sa.JSON(), nullable=False, server_default="[]"),
        sa.Column("asset_details", sa.JSON(), nullable=False, server_default="{}"),
        sa.Column("confirmed", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(), nullable=False, server_default=sa.func.now()),
    )
    op.create_index("ix_submissions_employee_id", "submissions", ["employee_id"])
    op.create_index("ix_submissions_company", "submissions", ["company"])
    op.create_index("ix_submissions_department", "submissions", ["department"])
    op.create_index("ix_submissions_created_at", "submissions", ["created_at"])

    op.create_table(
        "intake_sessions",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("state", sa.JSON(), nullable=True),
        sa.Column("current_step", sa.String(30), server_default="employee"),
        sa.Column("is_complete", sa.Boolean(), server_default=sa.false()),
        sa.Column("submission_id", sa.String(36)),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now()),
    )
    op.create_index("ix_intake_sessions_updated_at", "intake_sessions", ["updated_at"])


def downgrade() -> None:
    op.drop_index("ix_intake_sessions_updated_at", table_name="intake_sessions")
    op.drop_table("intake_sessions")
    for name in ("created_at", "department", "company", "employee_id"):
        op.drop_index(f"ix_submissions_{name}", table_name="submissions")
    op.drop_table("submissions")
    op.drop_index("ix_admin_users_email", table_name="admin_users")
    op.drop_table("admin_users")
