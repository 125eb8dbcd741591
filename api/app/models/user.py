"""User account model."""

from datetime import datetime, timezone

from sqlalchemy import (
    TIMESTAMP,
    Boolean,
    Column,
    Integer,
    String,
    Text,
    UniqueConstraint,
    false,
    func,
)
from sqlalchemy.orm import relationship

from app.database import Base

ROLE_FLAGS = ("is_admin", "is_banned", "is_verified", "is_staff", "is_owner")


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class User(Base):
    """
    A person known through Discord or Google sign-in.

    Either provider id may be missing; bot uploads create Discord-only users.
    """

    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=True)
    discord_id = Column(String)
    google_id = Column(String)
    username = Column(Text, nullable=False)
    avatar = Column(Text)
    created_at = Column(TIMESTAMP(timezone=True), nullable=False, default=utcnow, server_default=func.now())
    last_seen_at = Column(TIMESTAMP(timezone=True), nullable=False, default=utcnow, server_default=func.now())

    # Role flags
    is_admin = Column(Boolean, nullable=False, default=False, server_default=false())
    is_banned = Column(Boolean, nullable=False, default=False, server_default=false())
    is_verified = Column(Boolean, nullable=False, default=False, server_default=false())
    is_staff = Column(Boolean, nullable=False, default=False, server_default=false())
    is_owner = Column(Boolean, nullable=False, default=False, server_default=false())

    __table_args__ = (
        UniqueConstraint("discord_id", name="uq_users_discord_id"),
        UniqueConstraint("google_id", name="uq_users_google_id"),
    )

    posts = relationship("Post", back_populates="owner", passive_deletes=True)
