"""User database model."""
from sqlalchemy import Column, DateTime, String

from hangout.domain.common.types import utcnow
from hangout.domain.identity.models import User as UserEntity, UserRole
from hangout.infra.db.base import Base


class UserModel(Base):
    """User database model. Owned by the identity service; core writes last_seen_at only."""

    __tablename__ = "users"

    id = Column(String, primary_key=True)
    username = Column(String, unique=True, index=True, nullable=False)
    display_name = Column(String, nullable=True)
    role = Column(String, nullable=False, default=UserRole.MEMBER.value)  # member | moderator | admin
    last_seen_at = Column(DateTime, nullable=True, index=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    def to_entity(self) -> UserEntity:
        """Convert to domain entity."""
        return UserEntity(
            id=self.id,
            username=self.username,
            display_name=self.display_name,
            role=UserRole(self.role),
            last_seen_at=self.last_seen_at,
            created_at=self.created_at,
        )

    @classmethod
    def from_entity(cls, entity: UserEntity) -> "UserModel":
        """Create from domain entity."""
        return cls(
            id=entity.id,
            username=entity.username,
            display_name=entity.display_name,
            role=entity.role.value,
            last_seen_at=entity.last_seen_at,
            created_at=entity.created_at,
        )
