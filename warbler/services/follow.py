from sqlalchemy.ext.asyncio import AsyncConnection

from warbler.db import Database, execute, fetch_all, fetch_one


class FollowError(Exception):
    """Base exception for follow-related errors."""

    pass


class SelfFollowError(FollowError):
    """Exception raised when a user tries to follow themselves."""

    pass


class FollowTargetNotFoundError(FollowError):
    """Exception raised when the user to follow does not exist."""

    pass


class FollowService:
    """Service for managing user follow relationships.

    This service handles:
    - Following/unfollowing users
    - Listing the users a viewer follows
    """

    def __init__(self, db: Database) -> None:
        self.db = db

    async def follow_user(self, origin_id: int, target_id: int) -> None:
        """Follow a user.

        Following a user twice is a no-op.

        Args:
            origin_id: ID of the user doing the following
            target_id: ID of the user to follow

        Raises:
            SelfFollowError: If a user tries to follow themselves
            FollowTargetNotFoundError: If the target user does not exist
        """
        if target_id <= 0:
            raise FollowTargetNotFoundError("User not found.")
        if origin_id == target_id:
            raise SelfFollowError("You cannot follow yourself.")

        async with self.db.transaction() as conn:
            await self._create_follow_relationship(conn, origin_id, target_id)

    async def _create_follow_relationship(
        self, conn: AsyncConnection, origin_id: int, target_id: int
    ) -> None:
        target = await fetch_one(
            conn, "SELECT id FROM users WHERE id = :target_id LIMIT 1", target_id=target_id
        )
        if not target:
            raise FollowTargetNotFoundError("User not found.")

        await execute(
            conn,
            """
            INSERT IGNORE INTO follows (follower_id, following_id)
            VALUES (:origin_id, :target_id)
            """,
            origin_id=origin_id,
            target_id=target_id,
        )

    async def unfollow_user(self, origin_id: int, target_id: int) -> None:
        """Unfollow a user. Unfollowing someone not followed succeeds silently."""
        if target_id <= 0:
            raise FollowTargetNotFoundError("User not found.")

        async with self.db.transaction() as conn:
            await self._remove_follow_relationship(conn, origin_id, target_id)

    async def _remove_follow_relationship(
        self, conn: AsyncConnection, origin_id: int, target_id: int
    ) -> None:
        await execute(
            conn,
            "DELETE FROM follows WHERE follower_id = :origin_id AND following_id = :target_id",
            origin_id=origin_id,
            target_id=target_id,
        )

    async def get_followed_ids(self, user_id: int) -> list[int]:
        """Get the IDs of every user the given user follows.

        Args:
            user_id: ID of the following user

        Returns:
            IDs of the followed users, in no particular order
        """
        async with self.db.connect() as conn:
            return await self._get_followed_ids(conn, user_id)

    async def _get_followed_ids(self, conn: AsyncConnection, user_id: int) -> list[int]:
        rows = await fetch_all(
            conn,
            "SELECT following_id FROM follows WHERE follower_id = :user_id",
            user_id=user_id,
        )
        return [row["following_id"] for row in rows]
