"""Live session repository implementation."""
from datetime import datetime
from typing import Optional

from sqlalchemy import select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from hangout.domain.common.errors import AlreadyExistsError
from hangout.domain.presence.models import LiveSession, LiveSessionPrivacy
from hangout.domain.presence.repositories import LiveSessionRepository
from hangout.infra.db.models.live_session import LiveSessionModel


class LiveSessionRepositoryImpl(LiveSessionRepository):
    """Live session repository implementation."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def create_live(self, session: LiveSession) -> LiveSession:
        model = LiveSessionModel(
            id=session.id,
            owner_id=session.owner_id,
            title=session.title,
            description=session.description,
            privacy=session.privacy.value,
            is_live=True,
            live_owner_id=session.owner_id,
            started_at=session.started_at,
            last_heartbeat_at=session.last_heartbeat_at,
        )
        self.session.add(model)
        try:
            await self.session.commit()
        except IntegrityError:
            await self.session.rollback()
            raise AlreadyExistsError("You already have an active live session")
        return model.to_entity()

    async def get_by_id(self, live_session_id: str) -> Optional[LiveSession]:
        result = await self.session.execute(
            select(LiveSessionModel)
            .where(LiveSessionModel.id == live_session_id)
            .execution_options(populate_existing=True)
        )
        model = result.scalar_one_or_none()
        return model.to_entity() if model else None

    async def refresh_heartbeat(self, live_session_id: str, owner_id: str, at: datetime) -> bool:
        result = await self.session.execute(
            update(LiveSessionModel)
            .where(
                LiveSessionModel.id == live_session_id,
                LiveSessionModel.owner_id == owner_id,
                LiveSessionModel.is_live.is_(True),
            )
            .values(last_heartbeat_at=at)
            .execution_options(synchronize_session=False)
        )
        await self.session.commit()
        return result.rowcount > 0

    async def close(self, live_session_id: str, ended_at: datetime) -> bool:
        result = await self.session.execute(
            update(LiveSessionModel)
            .where(LiveSessionModel.id == live_session_id, LiveSessionModel.is_live.is_(True))
            .values(is_live=False, live_owner_id=None, ended_at=ended_at)
            .execution_options(synchronize_session=False)
        )
        await self.session.commit()
        return result.rowcount > 0

    async def close_for_owner(self, owner_id: str, ended_at: datetime) -> int:
        result = await self.session.execute(
            update(LiveSessionModel)
            .where(LiveSessionModel.owner_id == owner_id, LiveSessionModel.is_live.is_(True))
            .values(is_live=False, live_owner_id=None, ended_at=ended_at)
            .execution_options(synchronize_session=False)
        )
        await self.session.commit()
        return result.rowcount or 0

    async def list_live(
        self,
        owner_ids: Optional[list[str]] = None,
        privacy: Optional[LiveSessionPrivacy] = None,
        heartbeat_after: Optional[datetime] = None,
    ) -> list[LiveSession]:
        q = (
            select(LiveSessionModel)
            .where(LiveSessionModel.is_live.is_(True))
            .order_by(LiveSessionModel.started_at.desc())
        )
        if owner_ids is not None:
            q = q.where(LiveSessionModel.owner_id.in_(owner_ids))
        if privacy is not None:
            q = q.where(LiveSessionModel.privacy == privacy.value)
        if heartbeat_after is not None:
            q = q.where(LiveSessionModel.last_heartbeat_at > heartbeat_after)
        result = await self.session.execute(q)
        return [m.to_entity() for m in result.scalars().all()]

    async def list_stale(self, heartbeat_before: datetime) -> list[LiveSession]:
        result = await self.session.execute(
            select(LiveSessionModel).where(
                LiveSessionModel.is_live.is_(True),
                LiveSessionModel.last_heartbeat_at <= heartbeat_before,
            )
        )
        return [m.to_entity() for m in result.scalars().all()]
