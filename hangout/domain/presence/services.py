"""Presence tracker: last-seen timestamps and live-session liveness.

Presence is an eventually consistent, best-effort signal. Each user has one
mutable last_seen_at written last-write-wins without locking; "online" is a
pure read of that field against a caller-chosen window.
"""
import logging
from datetime import datetime, timedelta
from typing import Callable, Optional

from hangout.domain.common.errors import (
    AuthorizationError,
    InvalidStateError,
    NotFoundError,
    ValidationError,
)
from hangout.domain.common.types import generate_id, utcnow
from hangout.domain.friends.repositories import FriendshipRepository
from hangout.domain.identity.repositories import UserRepository
from hangout.domain.presence.models import (
    LiveScope,
    LiveSession,
    LiveSessionPrivacy,
    PresenceStatus,
    is_within_window,
)
from hangout.domain.presence.repositories import LiveSessionRepository

logger = logging.getLogger(__name__)

DEFAULT_ONLINE_WINDOW_SECONDS = 120
DEFAULT_HEARTBEAT_WINDOW_SECONDS = 120


class PresenceService:
    """User presence and live-session heartbeats."""

    def __init__(
        self,
        user_repo: UserRepository,
        live_session_repo: Optional[LiveSessionRepository] = None,
        friendship_repo: Optional[FriendshipRepository] = None,
        online_window_seconds: float = DEFAULT_ONLINE_WINDOW_SECONDS,
        heartbeat_window_seconds: float = DEFAULT_HEARTBEAT_WINDOW_SECONDS,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.user_repo = user_repo
        self.live_session_repo = live_session_repo
        self.friendship_repo = friendship_repo
        self.online_window_seconds = online_window_seconds
        self.heartbeat_window_seconds = heartbeat_window_seconds
        self.clock = clock

    # ---- User presence ----
    async def touch(self, user_id: str) -> datetime:
        """Record activity now."""
        now = self.clock()
        if not await self.user_repo.set_last_seen(user_id, now):
            raise NotFoundError("User", user_id)
        return now

    async def is_online(self, user_id: str, window_seconds: Optional[float] = None) -> bool:
        user = await self.user_repo.get_by_id(user_id)
        if user is None:
            return False
        window = self.online_window_seconds if window_seconds is None else window_seconds
        return is_within_window(user.last_seen_at, window, self.clock())

    async def get_status(self, user_id: str) -> PresenceStatus:
        user = await self.user_repo.get_by_id(user_id)
        if user is None:
            raise NotFoundError("User", user_id)
        return PresenceStatus(
            user_id=user.id,
            is_online=is_within_window(user.last_seen_at, self.online_window_seconds, self.clock()),
            last_seen_at=user.last_seen_at,
        )

    # ---- Live sessions ----
    def is_session_live(self, session: LiveSession, now: Optional[datetime] = None) -> bool:
        """Liveness predicate: marked live and heartbeat inside the window."""
        if not session.is_live:
            return False
        return is_within_window(
            session.last_heartbeat_at, self.heartbeat_window_seconds, now or self.clock()
        )

    async def start_live_session(
        self,
        owner_id: str,
        title: Optional[str] = None,
        description: Optional[str] = None,
        privacy: LiveSessionPrivacy | str = LiveSessionPrivacy.PUBLIC,
    ) -> LiveSession:
        try:
            privacy = LiveSessionPrivacy(privacy)
        except ValueError:
            raise ValidationError(f"Invalid privacy setting: {privacy}")
        owner = await self.user_repo.get_by_id(owner_id)
        if owner is None:
            raise NotFoundError("User", owner_id)

        now = self.clock()
        session = LiveSession(
            id=generate_id(),
            owner_id=owner_id,
            title=(title or "").strip() or f"{owner.label}'s Stream",
            description=(description or "").strip(),
            privacy=privacy,
            is_live=True,
            started_at=now,
            last_heartbeat_at=now,
        )
        created = await self._live_repo().create_live(session)
        logger.info("Live session %s started by %s", created.id, owner_id)
        return created

    async def heartbeat(self, live_session_id: str, owner_id: str) -> datetime:
        """Keep a live session alive."""
        repo = self._live_repo()
        session = await repo.get_by_id(live_session_id)
        if session is None:
            raise NotFoundError("LiveSession", live_session_id)
        if session.owner_id != owner_id:
            raise AuthorizationError("Not authorized to update this live session")
        if not session.is_live:
            raise InvalidStateError("Live session is not live")

        now = self.clock()
        if not await repo.refresh_heartbeat(live_session_id, owner_id, now):
            # Closed between the read and the write
            raise InvalidStateError("Live session is not live")
        return now

    async def stop_live_session(self, owner_id: str, live_session_id: Optional[str] = None) -> int:
        """Stop one session (or every live session of the owner). Returns sessions closed."""
        repo = self._live_repo()
        now = self.clock()
        if live_session_id is None:
            return await repo.close_for_owner(owner_id, now)
        session = await repo.get_by_id(live_session_id)
        if session is None:
            raise NotFoundError("LiveSession", live_session_id)
        if session.owner_id != owner_id:
            raise AuthorizationError("Not authorized to stop this live session")
        return 1 if await repo.close(live_session_id, now) else 0

    async def find_stale_sessions(self, now: Optional[datetime] = None) -> list[LiveSession]:
        """Live sessions whose heartbeat fell outside the window; input for the reaper."""
        cutoff = (now or self.clock()) - timedelta(seconds=self.heartbeat_window_seconds)
        return await self._live_repo().list_stale(heartbeat_before=cutoff)

    async def close_session(self, live_session_id: str) -> bool:
        closed = await self._live_repo().close(live_session_id, self.clock())
        if closed:
            logger.info("Live session %s closed", live_session_id)
        return closed

    async def list_live_sessions(self, viewer_id: str, scope: LiveScope | str = LiveScope.FRIENDS) -> list[LiveSession]:
        try:
            scope = LiveScope(scope)
        except ValueError:
            raise ValidationError(f"Invalid scope: {scope}")
        repo = self._live_repo()
        fresh_after = self.clock() - timedelta(seconds=self.heartbeat_window_seconds)

        if scope == LiveScope.DISCOVER:
            return await repo.list_live(privacy=LiveSessionPrivacy.PUBLIC, heartbeat_after=fresh_after)
        if scope == LiveScope.ME:
            return await repo.list_live(owner_ids=[viewer_id])
        if self.friendship_repo is None:
            return []
        rows = await self.friendship_repo.list_accepted_with_users(viewer_id)
        friend_ids = [friend.id for _, friend in rows]
        if not friend_ids:
            return []
        return await repo.list_live(owner_ids=friend_ids, heartbeat_after=fresh_after)

    def _live_repo(self) -> LiveSessionRepository:
        if self.live_session_repo is None:
            raise RuntimeError("PresenceService was built without a live session repository")
        return self.live_session_repo
