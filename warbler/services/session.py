import secrets
from abc import ABC, abstractmethod
from datetime import UTC, datetime, timedelta

from pydantic import BaseModel, ConfigDict
from sqlalchemy.ext.asyncio import AsyncConnection

from warbler.db import Database, execute, fetch_one


def utcnow() -> datetime:
    """Current UTC time without tzinfo, matching DATETIME columns."""
    return datetime.now(UTC).replace(tzinfo=None)


class SessionData(BaseModel):
    """A login session.

    Attributes:
        session_id: Opaque identifier carried by the session cookie
        user_id: ID of the authenticated user
        username: Username at login time
        expires_at: When the session stops being valid (naive UTC)
    """

    model_config = ConfigDict(frozen=True)

    session_id: str
    user_id: int
    username: str
    expires_at: datetime

    def is_expired(self, now: datetime | None = None) -> bool:
        return (now or utcnow()) >= self.expires_at


class SessionStore(ABC):
    """Server-side storage for login sessions.

    A request without a session cookie, or whose cookie names a missing or
    expired session, is anonymous.
    """

    def __init__(self, ttl: timedelta) -> None:
        self.ttl = ttl

    def _new_session(self, user_id: int, username: str) -> SessionData:
        return SessionData(
            session_id=secrets.token_urlsafe(32),
            user_id=user_id,
            username=username,
            expires_at=utcnow() + self.ttl,
        )

    @abstractmethod
    async def create(self, user_id: int, username: str) -> SessionData:
        """Start a session for a user who just authenticated."""

    @abstractmethod
    async def get(self, session_id: str) -> SessionData | None:
        """Return the live session with this ID, or None."""

    @abstractmethod
    async def destroy(self, session_id: str) -> None:
        """End a session. Unknown IDs are ignored."""


class MemorySessionStore(SessionStore):
    """Session store that lives in process memory.

    Sessions are lost on restart and are not shared between workers, so
    this store is meant for development and tests.
    """

    def __init__(self, ttl: timedelta) -> None:
        super().__init__(ttl)
        self._sessions: dict[str, SessionData] = {}

    async def create(self, user_id: int, username: str) -> SessionData:
        session = self._new_session(user_id, username)
        self._sessions[session.session_id] = session
        return session

    async def get(self, session_id: str) -> SessionData | None:
        session = self._sessions.get(session_id)
        if session is None:
            return None
        if session.is_expired():
            self._sessions.pop(session_id, None)
            return None
        return session

    async def destroy(self, session_id: str) -> None:
        self._sessions.pop(session_id, None)


class DatabaseSessionStore(SessionStore):
    """Session store backed by the ``sessions`` table of the relational store."""

    def __init__(self, db: Database, ttl: timedelta) -> None:
        super().__init__(ttl)
        self.db = db

    async def create(self, user_id: int, username: str) -> SessionData:
        session = self._new_session(user_id, username)
        async with self.db.transaction() as conn:
            await self._insert_session(conn, session)
        return session

    async def _insert_session(self, conn: AsyncConnection, session: SessionData) -> None:
        await execute(
            conn,
            """
            INSERT INTO sessions (id, user_id, username, expires_at)
            VALUES (:session_id, :user_id, :username, :expires_at)
            """,
            **session.model_dump(),
        )

    async def get(self, session_id: str) -> SessionData | None:
        async with self.db.connect() as conn:
            row = await fetch_one(
                conn,
                """
                SELECT id AS session_id, user_id, username, expires_at
                FROM sessions
                WHERE id = :session_id AND expires_at > :now
                LIMIT 1
                """,
                session_id=session_id,
                now=utcnow(),
            )
        return SessionData(**row) if row else None

    async def destroy(self, session_id: str) -> None:
        async with self.db.transaction() as conn:
            await execute(conn, "DELETE FROM sessions WHERE id = :session_id", session_id=session_id)
