"""Post model for uploaded photos and videos."""

from sqlalchemy import (
    TIMESTAMP,
    CheckConstraint,
    Column,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    func,
    text,
)
from sqlalchemy.orm import relationship

from app.database import Base
from app.models.user import utcnow

POST_STATUSES = ("draft", "published")
POST_FORMATS = ("long", "short", "photo")
MEDIA_TYPES = ("image", "video")


class Post(Base):
    """
    An uploaded media item.

    ``file_url`` holds the storage reference (a local filename or a CDN URL);
    drafts stay private until published by their owner or edit-token holder.
    """

    __tablename__ = "posts"

    id = Column(Integer, primary_key=True, autoincrement=True)
    file_url = Column(Text, nullable=False)
    thumbnail_url = Column(Text)
    media_type = Column(String(16), nullable=False)
    format = Column(String(16), nullable=False, default="long", server_default=text("'long'"))
    title = Column(Text, nullable=False, default="", server_default=text("''"))
    description = Column(Text, nullable=False, default="", server_default=text("''"))
    owner_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    uploader_name = Column(Text, nullable=False, default="", server_default=text("''"))
    status = Column(String(16), nullable=False, default="draft")
    edit_token = Column(String(64), nullable=False)
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, default=utcnow, server_default=func.now())

    __table_args__ = (
        CheckConstraint("status IN ('draft', 'published')", name="ck_posts_status"),
        CheckConstraint("media_type IN ('image', 'video')", name="ck_posts_media_type"),
        Index("idx_posts_status_created", "status", "created_at"),
        Index("idx_posts_owner", "owner_id"),
    )

    owner = relationship("User", back_populates="posts")

    @property
    def is_published(self) -> bool:
        return self.status == "published"
