import logging
from typing import Any
from uuid import uuid4

from sqlalchemy.ext.asyncio import AsyncConnection

from warbler.db import Database, execute, fetch_one
from warbler.models.user import User, UserProfile
from warbler.services.auth import UsernameTakenError
from warbler.utils.storage import MAX_AVATAR_BYTES, Storage, prepare_avatar
from warbler.validation import validate_bio, validate_username

logger = logging.getLogger(__name__)

AVATAR_PREFIX = "profiles"


class ProfileError(Exception):
    """Base exception for profile-related errors."""

    pass


class ProfileNotFoundError(ProfileError):
    """Exception raised when a profile is not found."""

    def __init__(self, message: str = "User not found.") -> None:
        super().__init__(message)


class ProfileService:
    """Service for reading and editing user profiles.

    This service handles:
    - Public profiles with follower counts
    - Username and bio updates
    - Avatar uploads
    """

    def __init__(self, db: Database, storage: Storage) -> None:
        self.db = db
        self.storage = storage

    async def get_profile(self, viewer_id: int, user_id: int) -> UserProfile:
        """Get a user's public profile.

        Args:
            viewer_id: ID of the viewing user, used for ``is_following``
            user_id: ID of the user whose profile to get

        Returns:
            The requested profile

        Raises:
            ProfileNotFoundError: If the user does not exist
        """
        if user_id <= 0:
            raise ProfileNotFoundError()

        async with self.db.connect() as conn:
            profile = await self._get_profile(conn, viewer_id, user_id)
        if profile is None:
            raise ProfileNotFoundError()
        return profile

    async def _get_profile(
        self, conn: AsyncConnection, viewer_id: int, user_id: int
    ) -> UserProfile | None:
        query = """
        SELECT
            u.id,
            u.username,
            u.bio,
            u.profile_picture_url,
            (SELECT COUNT(*) FROM follows f1 WHERE f1.following_id = u.id) AS follower_count,
            (SELECT COUNT(*) FROM follows f2 WHERE f2.follower_id = u.id) AS following_count,
            EXISTS (
                SELECT 1 FROM follows f3
                WHERE f3.follower_id = :viewer_id AND f3.following_id = u.id
            ) AS is_following
        FROM users u
        WHERE u.id = :user_id
        LIMIT 1
        """
        row = await fetch_one(conn, query, viewer_id=viewer_id, user_id=user_id)
        return UserProfile(**row) if row else None

    async def update_profile(self, user_id: int, changes: dict[str, Any]) -> User:
        """Update the username and/or bio of a user.

        Only the keys present in ``changes`` are applied. A new username is
        lowercased; keeping the same username in a different case is not a
        conflict.

        Args:
            user_id: ID of the user being updated
            changes: Fields to change, among ``username`` and ``bio``

        Returns:
            The updated user

        Raises:
            ProfileNotFoundError: If the user does not exist
            ValueError: If a field fails validation
            UsernameTakenError: If the new username belongs to someone else
        """
        async with self.db.transaction() as conn:
            current = await self._get_user(conn, user_id)
            if current is None:
                raise ProfileNotFoundError()

            updates: dict[str, Any] = {}
            if "username" in changes:
                username = changes["username"]
                validate_username(username)
                normalized = username.lower()
                if normalized != current.username.lower() and await fetch_one(
                    conn,
                    "SELECT id FROM users WHERE LOWER(username) = :username LIMIT 1",
                    username=normalized,
                ):
                    raise UsernameTakenError()
                updates["username"] = normalized

            if "bio" in changes:
                validate_bio(changes["bio"])
                updates["bio"] = changes["bio"]

            if updates:
                await self._apply_updates(conn, user_id, updates)

            updated = await self._get_user(conn, user_id)
        if updated is None:
            raise ProfileNotFoundError()
        return updated

    async def _apply_updates(
        self, conn: AsyncConnection, user_id: int, updates: dict[str, Any]
    ) -> None:
        # Column names come from the fixed keys above, never from the client
        set_clause = ", ".join(f"{column} = :{column}" for column in updates)
        await execute(
            conn,
            f"UPDATE users SET {set_clause} WHERE id = :user_id",
            user_id=user_id,
            **updates,
        )

    async def update_avatar(
        self, user_id: int, content: bytes | None, content_type: str | None
    ) -> User:
        """Replace a user's avatar.

        The image is cropped to a 400x400 square and stored under a random
        name; its URL becomes the user's ``profile_picture_url``.

        Args:
            user_id: ID of the user
            content: Raw bytes of the uploaded image
            content_type: MIME type declared by the upload

        Returns:
            The updated user

        Raises:
            ValueError: If the file is missing, too large, or not JPEG/PNG
            ProfileNotFoundError: If the user does not exist
        """
        if content_type and content_type not in ("image/jpeg", "image/png"):
            raise ValueError("Only JPEG and PNG files are allowed.")
        if not content:
            raise ValueError("Avatar file is required.")
        if len(content) > MAX_AVATAR_BYTES:
            raise ValueError("File must be 2MB or smaller.")

        image, extension = prepare_avatar(content, content_type or "")
        key = f"{AVATAR_PREFIX}/{uuid4()}{extension}"
        url = await self.storage.upload(key, image, content_type or "")
        logger.info("Stored avatar for user %s at %s", user_id, url)

        async with self.db.transaction() as conn:
            await execute(
                conn,
                "UPDATE users SET profile_picture_url = :url WHERE id = :user_id",
                url=url,
                user_id=user_id,
            )
            updated = await self._get_user(conn, user_id)
        if updated is None:
            raise ProfileNotFoundError()
        return updated

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
