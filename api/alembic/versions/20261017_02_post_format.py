"""Add posts.format and classify existing images as photos."""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa

revision = "20261017_02_post_format"
down_revision = "20261017_01_initial"
branch_labels = None
depends_on = None


def upgrade() -> None:
    with op.batch_alter_table("posts") as batch_op:
        batch_op.add_column(
            sa.Column("format", sa.String(length=16), nullable=False, server_default=sa.text("'long'"))
        )

    op.execute("UPDATE posts SET format = 'photo' WHERE media_type = 'image'")


def downgrade() -> None:
    with op.batch_alter_table("posts") as batch_op:
        batch_op.drop_column("format")
