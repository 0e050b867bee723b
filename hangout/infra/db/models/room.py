"""Room and membership database models."""
from sqlalchemy import (
    Boolean,
    CheckConstraint,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
)

from hangout.domain.common.types import utcnow
from hangout.domain.rooms.models import Room, RoomMembership, RoomPrivacy, RoomRole
from hangout.infra.db.base import Base


class RoomModel(Base):
    """Chat room. active_member_count only moves through conditional updates."""

    __tablename__ = "rooms"

    id = Column(String, primary_key=True)
    room_id = Column(String, nullable=False, unique=True, index=True)  # external slug
    name = Column(String, nullable=False)
    description = Column(Text, nullable=True)
    privacy = Column(String, nullable=False, default=RoomPrivacy.PUBLIC.value, index=True)  # public | private
    require_approval = Column(Boolean, nullable=False, default=False)
    max_members = Column(Integer, nullable=False, default=50)
    active_member_count = Column(Integer, nullable=False, default=0)
    owner_id = Column(String, ForeignKey("users.id"), nullable=False, index=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    __table_args__ = (
        CheckConstraint("active_member_count >= 0", name="ck_rooms_count_non_negative"),
        CheckConstraint("active_member_count <= max_members", name="ck_rooms_count_within_max"),
    )

    def to_entity(self) -> Room:
        return Room(
            id=self.id,
            room_id=self.room_id,
            name=self.name,
            description=self.description,
            privacy=RoomPrivacy(self.privacy),
            require_approval=self.require_approval,
            max_members=self.max_members,
            active_member_count=self.active_member_count,
            owner_id=self.owner_id,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )

    @classmethod
    def from_entity(cls, entity: Room) -> "RoomModel":
        return cls(
            id=entity.id,
            room_id=entity.room_id,
            name=entity.name,
            description=entity.description,
            privacy=entity.privacy.value,
            require_approval=entity.require_approval,
            max_members=entity.max_members,
            active_member_count=entity.active_member_count,
            owner_id=entity.owner_id,
            created_at=entity.created_at,
            updated_at=entity.updated_at,
        )


class RoomMembershipModel(Base):
    """A user's membership in a room. Rows are soft-removed, never deleted."""

    __tablename__ = "room_memberships"

    id = Column(String, primary_key=True)
    user_id = Column(String, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    room_id = Column(String, ForeignKey("rooms.id", ondelete="CASCADE"), nullable=False, index=True)
    role = Column(String, nullable=False, default=RoomRole.MEMBER.value)  # member | admin
    is_active = Column(Boolean, nullable=False, default=True)
    pending_approval = Column(Boolean, nullable=False, default=False)
    joined_at = Column(DateTime, default=utcnow, nullable=False)
    left_at = Column(DateTime, nullable=True)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow, nullable=False)

    __table_args__ = (UniqueConstraint("user_id", "room_id", name="uq_room_memberships_user_room"),)

    def to_entity(self) -> RoomMembership:
        return RoomMembership(
            id=self.id,
            user_id=self.user_id,
            room_id=self.room_id,
            role=RoomRole(self.role),
            is_active=self.is_active,
            pending_approval=self.pending_approval,
            joined_at=self.joined_at,
            left_at=self.left_at,
        )
