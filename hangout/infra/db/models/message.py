"""Message database model."""
from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)

from hangout.domain.chat.models import Message, Reaction
from hangout.domain.common.types import utcnow
from hangout.infra.db.base import Base


class MessageModel(Base):
    """Room or direct message. reactions is a JSON list of {user_id, emoji}; version guards writes."""

    __tablename__ = "messages"

    id = Column(String, primary_key=True)
    room_id = Column(String, ForeignKey("rooms.id", ondelete="CASCADE"), nullable=True, index=True)
    to_user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=True, index=True)
    author_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    text = Column(Text, nullable=False)
    sequence = Column(Integer, nullable=True)  # per-room increment for ordering; null for DMs
    reactions = Column(JSON, nullable=False, default=list)
    version = Column(Integer, nullable=False, default=0)
    is_read = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        UniqueConstraint("room_id", "sequence", name="uq_messages_room_sequence"),
        CheckConstraint(
            "(room_id IS NULL) <> (to_user_id IS NULL)", name="ck_messages_single_target"
        ),
        Index("ix_messages_direct_pair", "author_id", "to_user_id", "created_at"),
    )

    def to_entity(self) -> Message:
        return Message(
            id=self.id,
            room_id=self.room_id,
            to_user_id=self.to_user_id,
            author_id=self.author_id,
            text=self.text,
            sequence=self.sequence,
            reactions=[Reaction(**r) for r in (self.reactions or [])],
            version=self.version,
            is_read=self.is_read,
            created_at=self.created_at,
        )
