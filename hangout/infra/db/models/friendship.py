"""Friendship database model."""
from sqlalchemy import CheckConstraint, Column, DateTime, ForeignKey, String

from hangout.domain.common.types import utcnow
from hangout.domain.friends.models import Friendship, FriendshipStatus
from hangout.infra.db.base import Base


class FriendshipModel(Base):
    """One row per unordered user pair; pair_key is the sorted "low:high" id pair."""

    __tablename__ = "friendships"

    id = Column(String, primary_key=True)
    requester_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    recipient_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    pair_key = Column(String, nullable=False, unique=True)
    status = Column(String, nullable=False, default=FriendshipStatus.PENDING.value, index=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint("requester_id <> recipient_id", name="ck_friendships_not_self"),
    )

    def to_entity(self) -> Friendship:
        return Friendship(
            id=self.id,
            requester_id=self.requester_id,
            recipient_id=self.recipient_id,
            status=FriendshipStatus(self.status),
            created_at=self.created_at,
            updated_at=self.updated_at,
        )
