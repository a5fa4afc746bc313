"""initial schema: users, invite tokens, master tokens, audit log

Revision ID: 20261019_01
Revises:
Create Date: 2026-10-19 09:00:00.000000
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision = "20261019_01"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "app_user",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=True),
        sa.Column("name", sa.String(length=255), nullable=True),
        sa.Column("role", sa.String(length=20), nullable=False, server_default="user"),
        sa.Column("is_banned", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.CheckConstraint(
            "role IN ('user', 'mod', 'admin')",
            name="ck_app_user_role_valid",
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_app_user_email", "app_user", ["email"], unique=True)

    op.create_table(
        "invite_token",
        sa.Column("token", sa.String(length=36), nullable=False),
        sa.Column("created_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("uses", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("max_uses", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("raffle", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.CheckConstraint("uses >= 0", name="ck_invite_token_uses_non_negative"),
        sa.CheckConstraint("max_uses > 0", name="ck_invite_token_max_uses_positive"),
        sa.CheckConstraint("uses <= max_uses", name="ck_invite_token_uses_within_max"),
        sa.ForeignKeyConstraint(
            ["created_by"],
            ["app_user.id"],
            ondelete="SET NULL",
        ),
        sa.PrimaryKeyConstraint("token"),
    )
    op.create_index("ix_invite_token_active", "invite_token", ["active"], unique=False)
    op.create_index("ix_invite_token_expires_at", "invite_token", ["expires_at"], unique=False)
    # Garante no máximo um token raffle por vez
    op.create_index(
        "uq_invite_token_single_raffle",
        "invite_token",
        ["raffle"],
        unique=True,
        postgresql_where=sa.text("raffle"),
    )

    op.create_table(
        "master_invite_token",
        sa.Column("token", sa.String(length=36), nullable=False),
        sa.Column(
            "created_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("token"),
    )

    op.create_table(
        "audit_log",
        sa.Column("id", sa.String(length=36), nullable=False),
        sa.Column("action_type", sa.String(length=50), nullable=False),
        sa.Column("actor_user_id", sa.String(length=36), nullable=True),
        sa.Column("target_user_id", sa.String(length=36), nullable=True),
        sa.Column("actor_email", sa.String(length=320), nullable=True),
        sa.Column("actor_name", sa.String(length=255), nullable=True),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("meta", sa.JSON(), nullable=True),
        sa.Column(
            "performed_at",
            sa.DateTime(timezone=True),
            server_default=sa.text("now()"),
            nullable=False,
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_audit_log_action_type", "audit_log", ["action_type"], unique=False)
    op.create_index("ix_audit_log_actor_user_id", "audit_log", ["actor_user_id"], unique=False)
    op.create_index("ix_audit_log_performed_at", "audit_log", ["performed_at"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_audit_log_performed_at", table_name="audit_log")
    op.drop_index("ix_audit_log_actor_user_id", table_name="audit_log")
    op.drop_index("ix_audit_log_action_type", table_name="audit_log")
    op.drop_table("audit_log")
    op.drop_table("master_invite_token")
    op.drop_index("uq_invite_token_single_raffle", table_name="invite_token")
    op.drop_index("ix_invite_token_expires_at", table_name="invite_token")
    op.drop_index("ix_invite_token_active", table_name="invite_token")
    op.drop_table("invite_token")
    op.drop_index("ix_app_user_email", table_name="app_user")
    op.drop_table("app_user")
