"""
Directory users table with role enum and identity uniqueness constraints.

Revision ID: 20261018_000000_initial_users
Revises:
Create Date: 2026-10-18 00:00:00
"""

import sqlalchemy as sa

from alembic import op  # type: ignore[reportMissingImports]

# revision identifiers, used by Alembic.
revision = "20261018_000000_initial_users"
down_revision = None
branch_labels = None
depends_on = None

user_role = sa.Enum("admin", "designer", "client", name="user_role")


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("role", user_role, nullable=False, server_default="client"),
        sa.Column("primary_board_id", sa.String(length=255), nullable=True),
        sa.Column(
            "is_super_admin", sa.Boolean(), nullable=False, server_default=sa.text("false")
        ),
        sa.Column("host_user_id", sa.String(length=255), nullable=True),
        sa.Column("auth_user_id", sa.Uuid(), nullable=True),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.Column(
            "updated_at",
            sa.DateTime(timezone=True),
            nullable=False,
            server_default=sa.text("CURRENT_TIMESTAMP"),
        ),
        sa.PrimaryKeyConstraint("id", name="users_pkey"),
        sa.UniqueConstraint("email", name="users_email_key"),
        sa.UniqueConstraint("host_user_id", name="users_host_user_id_key"),
        sa.UniqueConstraint("auth_user_id", name="users_auth_user_id_key"),
    )
    op.create_index("idx_users_role", "users", ["role"], unique=False)


def downgrade() -> None:
    op.drop_index("idx_users_role", table_name="users")
    op.drop_table("users")
    user_role.drop(op.get_bind(), checkfirst=True)
