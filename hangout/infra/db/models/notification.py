"""Notification database model."""
from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, String, Text

from hangout.domain.common.types import utcnow
from hangout.infra.db.base import Base


class NotificationModel(Base):
    """User inbox notification - friend requests, responses, etc."""

    __tablename__ = "notifications"

    id = Column(String, primary_key=True)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    type = Column(String, nullable=False)  # friend_request, friend_accepted, friend_rejected, ...
    title = Column(String, nullable=False)
    message = Column(Text, nullable=False)
    data = Column(JSON, nullable=True)
    read = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)
