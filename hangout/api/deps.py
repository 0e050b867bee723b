"""API dependencies."""
from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from hangout.domain.chat.services import ChatService
from hangout.domain.common.channels import EventPublisher, Notifier
from hangout.domain.friends.services import FriendshipService
from hangout.domain.identity.models import User
from hangout.domain.presence.services import PresenceService
from hangout.domain.rooms.services import RoomService
from hangout.infra.db.repositories.friendship_repo import FriendshipRepositoryImpl
from hangout.infra.db.repositories.live_session_repo import LiveSessionRepositoryImpl
from hangout.infra.db.repositories.message_repo import MessageRepositoryImpl
from hangout.infra.db.repositories.room_repo import RoomRepositoryImpl
from hangout.infra.db.repositories.user_repo import UserRepositoryImpl
from hangout.infra.db.session import get_db
from hangout.infra.realtime.publisher import realtime_publisher
from hangout.infra.security.jwt import decode_token
from hangout.services.notification_service import InboxNotifier
from hangout.settings import settings

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/v1/auth/login")

__all__ = [
    "get_db",
    "get_current_user",
    "get_publisher",
    "get_notifier",
    "get_friendship_service",
    "get_room_service",
    "get_presence_service",
    "get_chat_service",
    "user_id_from_token",
]


def user_id_from_token(token: str):
    """User id from an access token, or None if invalid (also used by WebSockets)."""
    payload = decode_token(token)
    if not payload or payload.get("type") != "access":
        return None
    return payload.get("sub")


async def get_current_user(
    token: str = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Get current authenticated user."""
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    user_id = user_id_from_token(token)
    if user_id is None:
        raise credentials_exception

    user = await UserRepositoryImpl(db).get_by_id(user_id)
    if user is None:
        raise credentials_exception
    return user


def get_publisher() -> EventPublisher:
    return realtime_publisher


def get_notifier(
    db: AsyncSession = Depends(get_db),
    publisher: EventPublisher = Depends(get_publisher),
) -> Notifier:
    return InboxNotifier(db, publisher)


def get_friendship_service(
    db: AsyncSession = Depends(get_db),
    publisher: EventPublisher = Depends(get_publisher),
    notifier: Notifier = Depends(get_notifier),
) -> FriendshipService:
    return FriendshipService(
        FriendshipRepositoryImpl(db),
        UserRepositoryImpl(db),
        publisher=publisher,
        notifier=notifier,
        online_window_seconds=settings.friend_online_window_seconds,
    )


def get_room_service(
    db: AsyncSession = Depends(get_db),
    publisher: EventPublisher = Depends(get_publisher),
) -> RoomService:
    return RoomService(
        RoomRepositoryImpl(db),
        UserRepositoryImpl(db),
        publisher=publisher,
        default_max_members=settings.room_default_max_members,
        max_members_limit=settings.room_max_members_limit,
    )


def get_presence_service(db: AsyncSession = Depends(get_db)) -> PresenceService:
    return PresenceService(
        UserRepositoryImpl(db),
        live_session_repo=LiveSessionRepositoryImpl(db),
        friendship_repo=FriendshipRepositoryImpl(db),
        online_window_seconds=settings.presence_online_window_seconds,
        heartbeat_window_seconds=settings.live_session_heartbeat_window_seconds,
    )


def get_chat_service(
    db: AsyncSession = Depends(get_db),
    publisher: EventPublisher = Depends(get_publisher),
) -> ChatService:
    return ChatService(
        MessageRepositoryImpl(db),
        RoomRepositoryImpl(db),
        UserRepositoryImpl(db),
        FriendshipRepositoryImpl(db),
        publisher=publisher,
        max_length=settings.message_max_length,
        reaction_max_retries=settings.reaction_max_retries,
        online_window_seconds=settings.friend_online_window_seconds,
    )
