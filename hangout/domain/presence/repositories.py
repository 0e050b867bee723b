"""Live session repository protocol."""
from datetime import datetime
from typing import Optional, Protocol

from hangout.domain.presence.models import LiveSession, LiveSessionPrivacy


class LiveSessionRepository(Protocol):
    """Live session repository protocol."""

    async def create_live(self, session: LiveSession) -> LiveSession:
        """Insert a live session. Raises AlreadyExistsError if the owner is already live."""
        ...

    async def get_by_id(self, live_session_id: str) -> Optional[LiveSession]:
        ...

    async def refresh_heartbeat(self, live_session_id: str, owner_id: str, at: datetime) -> bool:
        """Bump last_heartbeat_at on a live session owned by owner_id. False if none matched."""
        ...

    async def close(self, live_session_id: str, ended_at: datetime) -> bool:
        """Mark a session not live. False if it was already closed."""
        ...

    async def close_for_owner(self, owner_id: str, ended_at: datetime) -> int:
        ...

    async def list_live(
        self,
        owner_ids: Optional[list[str]] = None,
        privacy: Optional[LiveSessionPrivacy] = None,
        heartbeat_after: Optional[datetime] = None,
    ) -> list[LiveSession]:
        ...

    async def list_stale(self, heartbeat_before: datetime) -> list[LiveSession]:
        ...
