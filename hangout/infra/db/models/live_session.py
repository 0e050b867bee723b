"""Live session database model."""
from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Index, String, Text

from hangout.domain.common.types import utcnow
from hangout.domain.presence.models import LiveSession, LiveSessionPrivacy
from hangout.infra.db.base import Base


class LiveSessionModel(Base):
    """Personal live session, kept alive by owner heartbeats."""

    __tablename__ = "live_sessions"

    id = Column(String, primary_key=True)
    owner_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    title = Column(String, nullable=False)
    description = Column(Text, nullable=False, default="")
    privacy = Column(String, nullable=False, default=LiveSessionPrivacy.PUBLIC.value)  # public | friends
    is_live = Column(Boolean, nullable=False, default=True, index=True)
    # Set to owner_id while live, NULL once ended; unique so an owner has at most one live session
    live_owner_id = Column(String, nullable=True, unique=True)
    started_at = Column(DateTime, default=utcnow, nullable=False)
    last_heartbeat_at = Column(DateTime, default=utcnow, nullable=False)
    ended_at = Column(DateTime, nullable=True)

    __table_args__ = (Index("ix_live_sessions_live_heartbeat", "is_live", "last_heartbeat_at"),)

    def to_entity(self) -> LiveSession:
        return LiveSession(
            id=self.id,
            owner_id=self.owner_id,
            title=self.title,
            description=self.description or "",
            privacy=LiveSessionPrivacy(self.privacy),
            is_live=self.is_live,
            started_at=self.started_at,
            last_heartbeat_at=self.last_heartbeat_at,
            ended_at=self.ended_at,
        )
