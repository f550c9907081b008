"""Initial: galleries, images, comments, likes.

Revision ID: 001
Revises:
Create Date: 2026-02-10

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "galleries",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("uploader_name", sa.String(256), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=True),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_galleries_created_at", "galleries", ["created_at"], unique=False)

    op.create_table(
        "images",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("gallery_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("image_url", sa.String(2048), nullable=False),
        sa.Column("file_path", sa.String(512), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=True),
        sa.ForeignKeyConstraint(["gallery_id"], ["galleries.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_images_gallery_id", "images", ["gallery_id"], unique=False)
    op.create_index("ix_images_created_at", "images", ["created_at"], unique=False)

    op.create_table(
        "comments",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("image_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("commenter_name", sa.String(256), nullable=False),
        sa.Column("comment_text", sa.Text(), nullable=False),
        sa.Column("is_anonymous", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=True),
        sa.ForeignKeyConstraint(["image_id"], ["images.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_comments_image_id", "comments", ["image_id"], unique=False)

    # Без UNIQUE (image_id, voter_token): дедупликация лайков только на клиенте
    op.create_table(
        "likes",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("image_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("voter_token", sa.String(64), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=True),
        sa.ForeignKeyConstraint(["image_id"], ["images.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_likes_image_id", "likes", ["image_id"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_likes_image_id", table_name="likes")
    op.drop_table("likes")
    op.drop_index("ix_comments_image_id", table_name="comments")
    op.drop_table("comments")
    op.drop_index("ix_images_created_at", table_name="images")
    op.drop_index("ix_images_gallery_id", table_name="images")
    op.drop_table("images")
    op.drop_index("ix_galleries_created_at", table_name="galleries")
    op.drop_table("galleries")
