import logging
from typing import Any
from urllib.parse import quote

import bcrypt
from sqlalchemy.ext.asyncio import AsyncConnection

from warbler.db import Database, execute, fetch_one
from warbler.models.user import User, UserCredentials
from warbler.services.email import EmailService
from warbler.services.password_reset import PasswordResetTokenService
from warbler.services.session import SessionData, SessionStore
from warbler.validation import validate_email, validate_password, validate_username

logger = logging.getLogger(__name__)

BCRYPT_ROUNDS = 10
# bcrypt only reads the first 72 bytes of a password
BCRYPT_MAX_BYTES = 72


def hash_password(password: str) -> str:
    """Hash a password with bcrypt."""
    secret = password.encode("utf-8")[:BCRYPT_MAX_BYTES]
    return bcrypt.hashpw(secret, bcrypt.gensalt(rounds=BCRYPT_ROUNDS)).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    """Check a password against a bcrypt hash."""
    secret = password.encode("utf-8")[:BCRYPT_MAX_BYTES]
    return bcrypt.checkpw(secret, password_hash.encode("utf-8"))


class AuthError(Exception):
    """Base exception for auth-related errors."""

    pass


class InvalidCredentialsError(AuthError):
    """Exception raised when a login fails, whatever the reason."""

    def __init__(self, message: str = "Invalid credentials.") -> None:
        super().__init__(message)


class UsernameTakenError(AuthError):
    """Exception raised when a username is already in use."""

    def __init__(self, message: str = "Username is already taken.") -> None:
        super().__init__(message)


class EmailInUseError(AuthError):
    """Exception raised when an email address is already registered."""

    def __init__(self, message: str = "Email is already in use.") -> None:
        super().__init__(message)


class InvalidResetTokenError(AuthError):
    """Exception raised when a password reset token is unknown or expired."""

    def __init__(self, message: str = "Invalid or expired token.") -> None:
        super().__init__(message)


class UserNotFoundError(AuthError):
    """Exception raised when a user cannot be found."""

    def __init__(self, message: str = "User not found.") -> None:
        super().__init__(message)


class AuthService:
    """Service for accounts, login sessions and password resets.

    This service handles signup, credential checks, the session lifecycle
    (anonymous, authenticated, then anonymous again on logout or expiry)
    and the forgot/reset password flow.

    Attributes:
        db: The relational store
        sessions: Where login sessions are kept
        reset_tokens: Issues and redeems password reset tokens
        email_service: Delivers password reset links
        frontend_url: Base URL of the web client, used in reset links
    """

    def __init__(
        self,
        db: Database,
        sessions: SessionStore,
        reset_tokens: PasswordResetTokenService,
        email_service: EmailService,
        frontend_url: str,
    ) -> None:
        self.db = db
        self.sessions = sessions
        self.reset_tokens = reset_tokens
        self.email_service = email_service
        self.frontend_url = frontend_url.rstrip("/")

    async def signup(self, username: Any, password: Any, email: Any) -> User:
        """Create an account.

        Username, password and email are validated in that order. Username
        and email are stored lowercased.

        Args:
            username: Requested username
            password: Plain-text password
            email: Email address

        Returns:
            The created user

        Raises:
            ValueError: If any field fails validation
            UsernameTakenError: If the username is in use, ignoring case
            EmailInUseError: If the email is already registered
        """
        validate_username(username)
        validate_password(password)
        validate_email(email)

        normalized_username = username.lower()
        normalized_email = email.strip().lower()

        async with self.db.transaction() as conn:
            user = await self._create_user(
                conn, normalized_username, normalized_email, hash_password(password)
            )
        logger.info("Created user %s (%s)", user.id, user.username)
        return user

    async def _create_user(
        self, conn: AsyncConnection, username: str, email: str, password_hash: str
    ) -> User:
        if await fetch_one(
            conn,
            "SELECT id FROM users WHERE LOWER(username) = :username LIMIT 1",
            username=username,
        ):
            raise UsernameTakenError()
        if await fetch_one(
            conn, "SELECT id FROM users WHERE email = :email LIMIT 1", email=email
        ):
            raise EmailInUseError()

        result = await execute(
            conn,
            """
            INSERT INTO users (username, email, password_hash)
            VALUES (:username, :email, :password_hash)
            """,
            username=username,
            email=email,
            password_hash=password_hash,
        )
        return User(id=result.lastrowid, username=username, email=email)

    async def authenticate(self, username: Any, password: Any) -> UserCredentials:
        """Check a username and password.

        The username lookup ignores case; the password comparison does not.
        Every failure raises the same error so callers cannot tell an
        unknown username from a wrong password.

        Raises:
            InvalidCredentialsError: If the credentials do not match a user
        """
        if not isinstance(username, str) or not isinstance(password, str):
            raise InvalidCredentialsError()

        async with self.db.connect() as conn:
            credentials = await self._get_credentials(conn, username.lower())

        if credentials is None or not verify_password(password, credentials.password_hash):
            raise InvalidCredentialsError()
        return credentials

    async def _get_credentials(
        self, conn: AsyncConnection, username: str
    ) -> UserCredentials | None:
        row = await fetch_one(
            conn,
            """
            SELECT id, username, password_hash
            FROM users
            WHERE LOWER(username) = :username
            LIMIT 1
            """,
            username=username,
        )
        return UserCredentials(**row) if row else None

    async def login(self, username: Any, password: Any) -> SessionData:
        """Authenticate a user and open a session for them.

        Returns:
            The new session

        Raises:
            InvalidCredentialsError: If the credentials do not match a user
        """
        credentials = await self.authenticate(username, password)
        session = await self.sessions.create(credentials.id, credentials.username)
        logger.info("User %s logged in", credentials.id)
        return session

    async def logout(self, session_id: str | None) -> None:
        if session_id:
            await self.sessions.destroy(session_id)

    async def get_session(self, session_id: str | None) -> SessionData | None:
        """Resolve a session cookie value to a live session, if any."""
        if not session_id:
            return None
        return await self.sessions.get(session_id)

    async def get_user(self, user_id: int) -> User:
        """Get a user's own account details.

        Raises:
            UserNotFoundError: If the user no longer exists
        """
        async with self.db.connect() as conn:
            user = await self._get_user(conn, user_id)
        if user is None:
            raise UserNotFoundError()
        return user

    async def _get_user(self, conn: AsyncConnection, user_id: int) -> User | None:
        row = await fetch_one(
            conn,
            """
            SELECT id, username, email, bio, profile_picture_url
            FROM users
            WHERE id = :user_id
            LIMIT 1
            """,
            user_id=user_id,
        )
        return User(**row) if row else None

    async def request_password_reset(self, email: Any) -> None:
        """Email a password reset link if the address belongs to an account.

        Callers always report the same outcome, so this returns nothing and
        silently does nothing for invalid or unknown addresses.

        Args:
            email: Address the reset was requested for
        """
        try:
            validate_email(email)
        except ValueError:
            return

        normalized_email = email.strip().lower()
        async with self.db.connect() as conn:
            row = await fetch_one(
                conn,
                "SELECT id, email FROM users WHERE email = :email LIMIT 1",
                email=normalized_email,
            )
        if not row:
            return

        record = await self.reset_tokens.create_token(row["id"])
        reset_link = f"{self.frontend_url}/reset-password?token={quote(record.token, safe='')}"
        await self.email_service.send_password_reset(row["email"], reset_link)
        logger.info("Issued password reset token for user %s", row["id"])

    async def reset_password(self, token: Any, new_password: Any) -> None:
        """Set a new password using a reset token.

        The token is single-use: it is deleted once the password is changed.

        Raises:
            InvalidResetTokenError: If the token is blank, unknown or expired
            ValueError: If the new password fails validation
        """
        if not isinstance(token, str) or not token.strip():
            raise InvalidResetTokenError()
        validate_password(new_password)

        record = await self.reset_tokens.find_valid_token(token)
        if record is None:
            raise InvalidResetTokenError()

        async with self.db.transaction() as conn:
            await execute(
                conn,
                "UPDATE users SET password_hash = :password_hash WHERE id = :user_id",
                password_hash=hash_password(new_password),
                user_id=record.user_id,
            )
        await self.reset_tokens.invalidate_token(token)
        logger.info("Password reset for user %s", record.user_id)
