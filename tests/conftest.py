"""Pytest configuration and shared fixtures.

Tests run against a file-backed SQLite database (aiosqlite) so concurrent
sessions get their own connections, the way they would against Postgres.
"""
from datetime import datetime, timedelta
from types import SimpleNamespace
from typing import Any, Optional

import pytest

from hangout.domain.chat.services import ChatService
from hangout.domain.common.channels import KeyedLock
from hangout.domain.common.types import generate_id, utcnow
from hangout.domain.identity.models import User, UserRole
from hangout.domain.friends.services import FriendshipService
from hangout.domain.presence.services import PresenceService
from hangout.domain.rooms.services import RoomService
from hangout.infra.db import models  # noqa: F401
from hangout.infra.db.base import Base, make_engine, make_sessionmaker
from hangout.infra.db.repositories.friendship_repo import FriendshipRepositoryImpl
from hangout.infra.db.repositories.live_session_repo import LiveSessionRepositoryImpl
from hangout.infra.db.repositories.message_repo import MessageRepositoryImpl
from hangout.infra.db.repositories.room_repo import RoomRepositoryImpl
from hangout.infra.db.repositories.user_repo import UserRepositoryImpl


def pytest_configure(config):
    """Register markers."""
    config.addinivalue_line(
        "markers", "integration: marks tests that need a real DB or Redis (deselect with '-m \"not integration\"')"
    )


class FakePublisher:
    """Records published events instead of sending them."""

    def __init__(self, fail: bool = False):
        self.events: list[tuple[str, str, dict]] = []
        self.fail = fail

    async def publish(self, topic: str, event_type: str, payload: dict) -> None:
        if self.fail:
            raise ConnectionError("realtime channel down")
        self.events.append((topic, event_type, payload))

    def of_type(self, event_type: str) -> list[tuple[str, str, dict]]:
        return [e for e in self.events if e[1] == event_type]

    def on_topic(self, topic: str) -> list[tuple[str, str, dict]]:
        return [e for e in self.events if e[0] == topic]


class FakeNotifier:
    """Records notifications instead of delivering them."""

    def __init__(self, fail: bool = False):
        self.sent: list[dict[str, Any]] = []
        self.fail = fail

    async def notify(
        self,
        user_id: str,
        kind: str,
        title: str,
        message: str,
        data: Optional[dict[str, Any]] = None,
    ) -> None:
        if self.fail:
            raise RuntimeError("notification service down")
        self.sent.append({"user_id": user_id, "kind": kind, "title": title, "message": message, "data": data})


class FakeClock:
    """Controllable clock for presence windows."""

    def __init__(self, now: Optional[datetime] = None):
        self.now = now or utcnow()

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + timedelta(seconds=seconds)


@pytest.fixture
async def engine(tmp_path):
    """Fresh database file per test with every table created."""
    engine = make_engine(f"sqlite+aiosqlite:///{tmp_path / 'hangout_test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(engine):
    return make_sessionmaker(engine)


@pytest.fixture
async def db_session(session_factory):
    """Create a test database session."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def publisher():
    return FakePublisher()


@pytest.fixture
def notifier():
    return FakeNotifier()


@pytest.fixture
def failing_publisher():
    return FakePublisher(fail=True)


@pytest.fixture
def failing_notifier():
    return FakeNotifier(fail=True)


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def make_user(session_factory):
    """Factory: await make_user("alice") -> User persisted in its own session."""

    async def _make_user(username: Optional[str] = None, role: UserRole = UserRole.MEMBER, **kwargs) -> User:
        username = username or f"user_{generate_id()[:8]}"
        user = User(
            id=generate_id(),
            username=username,
            display_name=kwargs.pop("display_name", username.title()),
            role=role,
            created_at=utcnow(),
            **kwargs,
        )
        async with session_factory() as session:
            return await UserRepositoryImpl(session).create(user)

    return _make_user


@pytest.fixture
def make_services(publisher, notifier, clock):
    """Factory: make_services(session) -> namespace of core services bound to that session."""
    locks = KeyedLock()

    def _make_services(session, **overrides) -> SimpleNamespace:
        users = UserRepositoryImpl(session)
        friendships = FriendshipRepositoryImpl(session)
        rooms = RoomRepositoryImpl(session)
        pub = overrides.get("publisher", publisher)
        return SimpleNamespace(
            friends=FriendshipService(
                friendships,
                users,
                publisher=pub,
                notifier=overrides.get("notifier", notifier),
                online_window_seconds=300,
                clock=clock,
            ),
            rooms=RoomService(rooms, users, publisher=pub, default_max_members=50, max_members_limit=500),
            presence=PresenceService(
                users,
                live_session_repo=LiveSessionRepositoryImpl(session),
                friendship_repo=friendships,
                online_window_seconds=120,
                heartbeat_window_seconds=120,
                clock=clock,
            ),
            chat=ChatService(
                MessageRepositoryImpl(session),
                rooms,
                users,
                friendships,
                publisher=pub,
                max_length=overrides.get("max_length", 2000),
                reaction_max_retries=overrides.get("reaction_max_retries", 8),
                locks=locks,
                online_window_seconds=300,
                clock=clock,
            ),
        )

    return _make_services
