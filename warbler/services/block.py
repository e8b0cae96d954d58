import logging

from sqlalchemy.ext.asyncio import AsyncConnection

from warbler.db import Database, execute, fetch_all, fetch_one
from warbler.models.block import Block
from warbler.schemas.database_records import CreateBlockRecord

logger = logging.getLogger(__name__)


class BlockError(Exception):
    """Base exception for block-related errors."""

    pass


class SelfBlockError(BlockError):
    """Exception raised when a user tries to block themselves."""

    pass


class BlockTargetNotFoundError(BlockError):
    """Exception raised when the user to block does not exist."""

    pass


class BlockService:
    """Service for managing user blocks.

    This service handles creating and removing block relationships,
    cleaning up any affected follow relationships, and resolving the set of
    users whose content must be hidden from a viewer.
    """

    def __init__(self, db: Database) -> None:
        self.db = db

    async def get_blocked_set(self, viewer_id: int) -> set[int]:
        """Resolve every user hidden from the viewer by a block.

        The result is symmetric: it holds the users the viewer blocked and
        the users who blocked the viewer.

        Args:
            viewer_id: ID of the viewing user

        Returns:
            IDs of the users on the other side of a block edge
        """
        async with self.db.connect() as conn:
            edges = await self._get_block_edges(conn, viewer_id)

        blocked: set[int] = set()
        for edge in edges:
            if (other := edge.other_party(viewer_id)) is not None:
                blocked.add(other)
        return blocked

    async def _get_block_edges(self, conn: AsyncConnection, viewer_id: int) -> list[Block]:
        query = """
        SELECT blocker_id, blocked_id
        FROM blocks
        WHERE blocker_id = :viewer_id OR blocked_id = :viewer_id
        """
        rows = await fetch_all(conn, query, viewer_id=viewer_id)
        return [Block(**row) for row in rows]

    async def block(self, origin_id: int, target_id: int) -> CreateBlockRecord:
        """Block a user.

        Blocking removes follow relationships in both directions. They are
        not restored by a later unblock.

        Args:
            origin_id: ID of the user doing the blocking
            target_id: ID of the user to block

        Returns:
            Record of the block creation

        Raises:
            SelfBlockError: If a user tries to block themselves
            BlockTargetNotFoundError: If the target user does not exist
        """
        if target_id <= 0:
            raise BlockTargetNotFoundError("User not found.")
        if origin_id == target_id:
            raise SelfBlockError("You cannot block yourself.")

        async with self.db.transaction() as conn:
            return await self._create_block_relationship(conn, origin_id, target_id)

    async def _create_block_relationship(
        self, conn: AsyncConnection, origin_id: int, target_id: int
    ) -> CreateBlockRecord:
        target = await fetch_one(
            conn, "SELECT id FROM users WHERE id = :target_id LIMIT 1", target_id=target_id
        )
        if not target:
            raise BlockTargetNotFoundError("User not found.")

        await execute(
            conn,
            "INSERT IGNORE INTO blocks (blocker_id, blocked_id) VALUES (:origin_id, :target_id)",
            origin_id=origin_id,
            target_id=target_id,
        )
        # Drop follows in both directions
        query = "DELETE FROM follows WHERE follower_id = :follower_id AND following_id = :following_id"
        forward = await execute(conn, query, follower_id=origin_id, following_id=target_id)
        reverse = await execute(conn, query, follower_id=target_id, following_id=origin_id)

        logger.info("User %s blocked user %s", origin_id, target_id)
        return CreateBlockRecord(
            blocked_user_id=target_id,
            removed_forward_follow=forward.rowcount > 0,
            removed_reverse_follow=reverse.rowcount > 0,
        )

    async def unblock(self, origin_id: int, target_id: int) -> None:
        """Unblock a user.

        Removing a block that does not exist is a silent success.

        Args:
            origin_id: ID of the user doing the unblocking
            target_id: ID of the user to unblock
        """
        if target_id <= 0:
            raise BlockTargetNotFoundError("User not found.")

        async with self.db.transaction() as conn:
            await self._remove_block_relationship(conn, origin_id, target_id)

    async def _remove_block_relationship(
        self, conn: AsyncConnection, origin_id: int, target_id: int
    ) -> None:
        await execute(
            conn,
            "DELETE FROM blocks WHERE blocker_id = :origin_id AND blocked_id = :target_id",
            origin_id=origin_id,
            target_id=target_id,
        )

    async def is_blocked_between(self, user_id: int, other_id: int) -> bool:
        """Check whether a block exists in either direction between two users.

        Args:
            user_id: ID of one user
            other_id: ID of the other user

        Returns:
            True if either user has blocked the other
        """
        return other_id in await self.get_blocked_set(user_id)
