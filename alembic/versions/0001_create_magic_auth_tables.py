"""create users and magic_links tables

Revision ID: 0001_create_magic_auth_tables
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "0001_create_magic_auth_tables"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "users",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column(
            "provider",
            sa.String(),
            nullable=False,
            server_default=sa.text("'users'"),
        ),
        sa.Column("email", sa.String(), nullable=True),
        sa.Column("phone", sa.String(), nullable=True),
        sa.Column("name", sa.String(), nullable=False),
        sa.Column("password_hash", sa.String(), nullable=True),
        sa.Column("email_verified_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("attributes", sa.JSON(), nullable=False),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
        sa.UniqueConstraint("provider", "email", name="uq_users_provider_email"),
        sa.UniqueConstraint("provider", "phone", name="uq_users_provider_phone"),
    )
    op.create_index("ix_users_provider", "users", ["provider"])

    op.create_table(
        "magic_links",
        sa.Column("id", sa.String(), primary_key=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("email", sa.String(), nullable=True),
        sa.Column("phone", sa.String(), nullable=True),
        sa.Column("token", sa.String(length=255), nullable=False, unique=True),
        sa.Column(
            "guard",
            sa.String(),
            nullable=False,
            server_default=sa.text("'web'"),
        ),
        sa.Column(
            "used",
            sa.Boolean(),
            nullable=False,
            server_default=sa.text("false"),
        ),
        sa.Column("used_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("attributes", sa.JSON(), nullable=False),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint(
            "(email IS NULL) <> (phone IS NULL)",
            name="ck_magic_links_one_contact",
        ),
    )
    op.create_index("ix_magic_links_email_guard", "magic_links", ["email", "guard"])
    op.create_index("ix_magic_links_phone_guard", "magic_links", ["phone", "guard"])
    op.create_index("ix_magic_links_token_used", "magic_links", ["token", "used"])
    op.create_index("ix_magic_links_expires_at", "magic_links", ["expires_at"])


def downgrade() -> None:
    op.drop_index("ix_magic_links_expires_at", table_name="magic_links")
    op.drop_index("ix_magic_links_token_used", table_name="magic_links")
    op.drop_index("ix_magic_links_phone_guard", table_name="magic_links")
    op.drop_index("ix_magic_links_email_guard", table_name="magic_links")
    op.drop_table("magic_links")
    op.drop_index("ix_users_provider", table_name="users")
    op.drop_table("users")
