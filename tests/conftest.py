from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timedelta
from unittest.mock import AsyncMock, MagicMock

import pytest

from warbler.models.post import PostDetail
from warbler.models.user import User
from warbler.services.auth import AuthService
from warbler.services.block import BlockService
from warbler.services.email import EmailService
from warbler.services.feed import FeedService
from warbler.services.follow import FollowService
from warbler.services.password_reset import PasswordResetTokenService
from warbler.services.post import PostService
from warbler.services.profile import ProfileService
from warbler.services.reply import ReplyService
from warbler.services.session import MemorySessionStore
from warbler.utils.storage import Storage


class FakeDatabase:
    """Stand-in for ``Database`` that hands out a single mock connection.

    Services only use the connection to pass it on to their private query
    methods, which the tests patch.
    """

    def __init__(self) -> None:
        self.conn = MagicMock(name="conn")
        self.ping = AsyncMock()
        self.dispose = AsyncMock()

    @asynccontextmanager
    async def connect(self) -> AsyncIterator[MagicMock]:
        yield self.conn

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[MagicMock]:
        yield self.conn


# Database fixtures
@pytest.fixture
def fake_db() -> FakeDatabase:
    return FakeDatabase()


# Service fixtures
@pytest.fixture
def block_service(fake_db: FakeDatabase) -> BlockService:
    return BlockService(fake_db)


@pytest.fixture
def follow_service(fake_db: FakeDatabase) -> FollowService:
    return FollowService(fake_db)


@pytest.fixture
def feed_service(
    fake_db: FakeDatabase, block_service: BlockService, follow_service: FollowService
) -> FeedService:
    return FeedService(fake_db, block_service, follow_service)


@pytest.fixture
def post_service(fake_db: FakeDatabase, block_service: BlockService) -> PostService:
    return PostService(fake_db, block_service)


@pytest.fixture
def reply_service(fake_db: FakeDatabase, block_service: BlockService) -> ReplyService:
    return ReplyService(fake_db, block_service)


@pytest.fixture
def session_store() -> MemorySessionStore:
    return MemorySessionStore(timedelta(days=7))


@pytest.fixture
def reset_token_service(fake_db: FakeDatabase) -> PasswordResetTokenService:
    return PasswordResetTokenService(fake_db)


@pytest.fixture
def email_service() -> EmailService:
    return EmailService(log_only=True)


@pytest.fixture
def auth_service(
    fake_db: FakeDatabase,
    session_store: MemorySessionStore,
    reset_token_service: PasswordResetTokenService,
    email_service: EmailService,
) -> AuthService:
    return AuthService(
        fake_db,
        session_store,
        reset_token_service,
        email_service,
        "http://localhost:3000",
    )


@pytest.fixture
def mock_storage() -> AsyncMock:
    return AsyncMock(spec=Storage)


@pytest.fixture
def profile_service(fake_db: FakeDatabase, mock_storage: AsyncMock) -> ProfileService:
    return ProfileService(fake_db, mock_storage)


# Test data fixtures
@pytest.fixture
def test_user() -> User:
    return User(
        id=1,
        username="alice",
        email="alice@example.com",
        bio="Test user bio",
        profile_picture_url=None,
    )


@pytest.fixture
def another_test_user() -> User:
    return User(
        id=2,
        username="bob",
        email="bob@example.com",
        bio=None,
        profile_picture_url="/uploads/profiles/bob.png",
    )


@pytest.fixture
def make_post():
    """Factory for posts as returned by the feed and post queries."""

    def _make_post(
        post_id: int, user_id: int, created_at: datetime, username: str = "author"
    ) -> PostDetail:
        return PostDetail(
            id=post_id,
            user_id=user_id,
            content=f"post {post_id}",
            created_at=created_at,
            username=username,
            profile_picture_url=None,
            like_count=0,
            liked_by_me=False,
            retweet_count=0,
            retweeted_by_me=False,
        )

    return _make_post
