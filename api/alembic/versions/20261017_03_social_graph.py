"""Follows, user role flags, Google identities and post thumbnails."""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

revision = "20261017_03_social_graph"
down_revision = "20261017_02_post_format"
branch_labels = None
depends_on = None

NEW_FLAGS = ("is_banned", "is_verified", "is_staff", "is_owner")


def upgrade() -> None:
    with op.batch_alter_table("users") as batch_op:
        batch_op.add_column(sa.Column("google_id", sa.String(), nullable=True))
        for flag in NEW_FLAGS:
            batch_op.add_column(sa.Column(flag, sa.Boolean(), nullable=False, server_default=sa.false()))
        batch_op.create_unique_constraint("uq_users_google_id", ["google_id"])

    with op.batch_alter_table("posts") as batch_op:
        batch_op.add_column(sa.Column("thumbnail_url", sa.Text(), nullable=True))

    op.create_table(
        "follows",
        sa.Column("id", sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column(
            "follower_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "followee_id",
            sa.Integer(),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "created_at",
            sa.TIMESTAMP(timezone=True),
            nullable=False,
            server_default=sa.func.now(),
        ),
        sa.UniqueConstraint("follower_id", "followee_id", name="uq_follows_pair"),
        sa.CheckConstraint("follower_id <> followee_id", name="ck_follows_not_self"),
    )
    op.create_index("idx_follows_followee", "follows", ["followee_id"])


def downgrade() -> None:
    op.drop_index("idx_follows_followee", table_name="follows")
    op.drop_table("follows")

    with op.batch_alter_table("posts") as batch_op:
        batch_op.drop_column("thumbnail_url")

    with op.batch_alter_table("users") as batch_op:
        batch_op.drop_constraint("uq_users_google_id", type_="unique")
        for flag in reversed(NEW_FLAGS):
            batch_op.drop_column(flag)
        batch_op.drop_column("google_id")
