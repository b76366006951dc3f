"""
Pytest configuration and shared fixtures for chathub tests.

This module provides:
- Async database session fixtures (in-memory SQLite)
- User / channel factories
- A stub link unfurler
"""

from collections.abc import AsyncGenerator, Awaitable, Callable
from unittest.mock import AsyncMock

import pytest
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from chathub.models import Base, Channel, ChannelMember, MemberRole, User, create_engine_for_url
from chathub.schemas import LinkPreview


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture(scope="function")
async def async_engine():
    """Create an async engine with in-memory SQLite for testing."""
    engine = create_engine_for_url("sqlite+aiosqlite:///:memory:")

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture(scope="function")
async def db_session(async_engine) -> AsyncGenerator[AsyncSession, None]:
    """Provide a transactional database session for tests.

    Each test gets a fresh session that's rolled back after the test.
    """
    async_session_factory = async_sessionmaker(
        async_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )

    async with async_session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture(scope="function")
async def db(db_session: AsyncSession) -> AsyncSession:
    """Alias for db_session for convenience."""
    return db_session


# =============================================================================
# Factories
# =============================================================================

@pytest.fixture
def make_user(db: AsyncSession) -> Callable[..., Awaitable[User]]:
    """Factory inserting a user with a throwaway password hash."""

    async def _make_user(username: str, is_online: bool = False, **kwargs) -> User:
        user = User(
            username=username,
            email=kwargs.pop("email", f"{username}@example.com"),
            password_hash=kwargs.pop("password_hash", "not-a-real-hash"),
            is_online=is_online,
            **kwargs,
        )
        db.add(user)
        await db.flush()
        return user

    return _make_user


@pytest.fixture
async def alice(make_user) -> User:
    return await make_user("alice")


@pytest.fixture
async def bob(make_user) -> User:
    return await make_user("bob")


@pytest.fixture
async def carol(make_user) -> User:
    return await make_user("carol")


@pytest.fixture
def make_channel(db: AsyncSession) -> Callable[..., Awaitable[Channel]]:
    """Factory inserting a channel with explicit (user, role) memberships."""

    async def _make_channel(
        creator: User,
        name: str = "general",
        is_private: bool = False,
        members: list[tuple[User, MemberRole]] | None = None,
    ) -> Channel:
        channel = Channel(name=name, is_private=is_private, created_by=creator.id)
        db.add(channel)
        await db.flush()
        db.add(ChannelMember(channel_id=channel.id, user_id=creator.id, role=MemberRole.OWNER.value))
        for user, role in members or []:
            db.add(ChannelMember(channel_id=channel.id, user_id=user.id, role=role.value))
        await db.flush()
        return channel

    return _make_channel


# =============================================================================
# Collaborator Stubs
# =============================================================================

@pytest.fixture
def mock_unfurler():
    """Unfurler stub returning a full preview for whatever URL it gets."""
    unfurler = AsyncMock()

    async def _unfurl(url: str) -> LinkPreview:
        return LinkPreview(
            title="Example Domain",
            description="Illustrative example page",
            image="https://example.com/og.png",
            url=url,
        )

    unfurler.unfurl = AsyncMock(side_effect=_unfurl)
    return unfurler


@pytest.fixture
def failing_unfurler():
    """Unfurler stub that degrades like a failed fetch."""
    unfurler = AsyncMock()
    unfurler.unfurl = AsyncMock(side_effect=lambda url: LinkPreview(url=url))
    return unfurler
