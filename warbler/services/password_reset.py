import secrets
from datetime import timedelta

from sqlalchemy.ext.asyncio import AsyncConnection

from warbler.db import Database, execute, fetch_one
from warbler.schemas.database_records import PasswordResetTokenRecord
from warbler.services.session import utcnow


class PasswordResetTokenService:
    """Service for issuing and redeeming password reset tokens.

    Tokens are 32 random bytes in hex and expire after ``ttl``.
    """

    def __init__(self, db: Database, ttl: timedelta = timedelta(hours=1)) -> None:
        self.db = db
        self.ttl = ttl

    async def create_token(self, user_id: int) -> PasswordResetTokenRecord:
        """Create and store a reset token for a user.

        Args:
            user_id: ID of the user resetting their password

        Returns:
            The stored token record
        """
        record = PasswordResetTokenRecord(
            user_id=user_id,
            token=secrets.token_hex(32),
            expires_at=utcnow() + self.ttl,
        )
        async with self.db.transaction() as conn:
            await self._insert_token(conn, record)
        return record

    async def _insert_token(self, conn: AsyncConnection, record: PasswordResetTokenRecord) -> None:
        await execute(
            conn,
            """
            INSERT INTO password_reset_tokens (user_id, token, expires_at)
            VALUES (:user_id, :token, :expires_at)
            """,
            user_id=record.user_id,
            token=record.token,
            expires_at=record.expires_at,
        )

    async def find_valid_token(self, token: str) -> PasswordResetTokenRecord | None:
        """Look up a token that has not expired yet.

        Returns:
            The token record, or None if it is unknown or expired
        """
        async with self.db.connect() as conn:
            row = await fetch_one(
                conn,
                """
                SELECT id, user_id, token, expires_at
                FROM password_reset_tokens
                WHERE token = :token AND expires_at > :now
                LIMIT 1
                """,
                token=token,
                now=utcnow(),
            )
        return PasswordResetTokenRecord(**row) if row else None

    async def invalidate_token(self, token: str) -> None:
        async with self.db.transaction() as conn:
            await execute(
                conn, "DELETE FROM password_reset_tokens WHERE token = :token", token=token
            )
