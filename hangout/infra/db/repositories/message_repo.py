"""Message repository implementation."""
from typing import Optional

from sqlalchemy import and_, func, or_, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from hangout.domain.chat.models import Message, Reaction
from hangout.domain.chat.repositories import MessageRepository
from hangout.domain.common.errors import AlreadyExistsError
from hangout.domain.common.types import generate_id, utcnow
from hangout.infra.db.base import violates_constraint
from hangout.infra.db.models.message import MessageModel


class MessageRepositoryImpl(MessageRepository):
    """Message repository implementation."""

    def __init__(self, session: AsyncSession):
        self.session = session

    async def _next_sequence(self, room_pk: str) -> int:
        result = await self.session.execute(
            select(func.coalesce(func.max(MessageModel.sequence), 0)).where(MessageModel.room_id == room_pk)
        )
        return (result.scalar() or 0) + 1

    async def append_room_message(self, room_pk: str, author_id: str, text: str) -> Message:
        model = MessageModel(
            id=generate_id(),
            room_id=room_pk,
            author_id=author_id,
            text=text,
            sequence=await self._next_sequence(room_pk),
            reactions=[],
            version=0,
            created_at=utcnow(),
        )
        self.session.add(model)
        try:
            await self.session.commit()
        except IntegrityError as e:
            await self.session.rollback()
            if not violates_constraint(e, "uq_messages_room_sequence", "messages.room_id, messages.sequence"):
                raise
            raise AlreadyExistsError(f"Sequence {model.sequence} already used in room {room_pk}")
        return model.to_entity()

    async def create_direct_message(self, author_id: str, to_user_id: str, text: str) -> Message:
        model = MessageModel(
            id=generate_id(),
            to_user_id=to_user_id,
            author_id=author_id,
            text=text,
            reactions=[],
            version=0,
            is_read=False,
            created_at=utcnow(),
        )
        self.session.add(model)
        await self.session.commit()
        return model.to_entity()

    async def get_by_id(self, message_id: str) -> Optional[Message]:
        result = await self.session.execute(
            select(MessageModel)
            .where(MessageModel.id == message_id)
            .execution_options(populate_existing=True)
        )
        model = result.scalar_one_or_none()
        return model.to_entity() if model else None

    async def update_reactions(
        self, message_id: str, expected_version: int, reactions: list[Reaction]
    ) -> Optional[Message]:
        result = await self.session.execute(
            update(MessageModel)
            .where(MessageModel.id == message_id, MessageModel.version == expected_version)
            .values(
                reactions=[r.model_dump() for r in reactions],
                version=expected_version + 1,
            )
            .execution_options(synchronize_session=False)
        )
        await self.session.commit()
        if result.rowcount == 0:
            return None
        return await self.get_by_id(message_id)

    async def list_room(
        self, room_pk: str, limit: int = 50, before_sequence: Optional[int] = None
    ) -> list[Message]:
        q = (
            select(MessageModel)
            .where(MessageModel.room_id == room_pk)
            .order_by(MessageModel.sequence.desc())
            .limit(limit)
        )
        if before_sequence is not None:
            q = q.where(MessageModel.sequence < before_sequence)
        result = await self.session.execute(q)
        return [m.to_entity() for m in reversed(result.scalars().all())]

    async def list_direct(self, user_a: str, user_b: str, limit: int = 100) -> list[Message]:
        result = await self.session.execute(
            select(MessageModel)
            .where(
                or_(
                    and_(MessageModel.author_id == user_a, MessageModel.to_user_id == user_b),
                    and_(MessageModel.author_id == user_b, MessageModel.to_user_id == user_a),
                )
            )
            .order_by(MessageModel.created_at.desc(), MessageModel.id.desc())
            .limit(limit)
        )
        return [m.to_entity() for m in reversed(result.scalars().all())]

    async def mark_direct_read(self, reader_id: str, author_id: str) -> int:
        result = await self.session.execute(
            update(MessageModel)
            .where(
                MessageModel.author_id == author_id,
                MessageModel.to_user_id == reader_id,
                MessageModel.is_read.is_(False),
            )
            .values(is_read=True)
            .execution_options(synchronize_session=False)
        )
        await self.session.commit()
        return result.rowcount or 0

    async def unread_direct_counts(self, reader_id: str) -> dict[str, int]:
        result = await self.session.execute(
            select(MessageModel.author_id, func.count(MessageModel.id))
            .where(MessageModel.to_user_id == reader_id, MessageModel.is_read.is_(False))
            .group_by(MessageModel.author_id)
        )
        return {author_id: count for author_id, count in result.all()}
