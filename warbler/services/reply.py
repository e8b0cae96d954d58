import logging

from sqlalchemy.ext.asyncio import AsyncConnection

from warbler.db import Database, execute, fetch_all, fetch_one
from warbler.models.reply import Reply, ReplyWithAuthor
from warbler.services.block import BlockService
from warbler.services.post import PostNotFoundError
from warbler.validation import validate_post_content

logger = logging.getLogger(__name__)


class ReplyError(Exception):
    """Base exception for reply-related errors."""

    pass


class ReplyNotFoundError(ReplyError):
    """Exception raised when a reply is not found."""

    def __init__(self, message: str = "Reply not found.") -> None:
        super().__init__(message)


class ReplyPermissionError(ReplyError):
    """Exception raised when a user deletes a reply they did not write."""

    def __init__(self, message: str = "Forbidden") -> None:
        super().__init__(message)


class ReplyService:
    """Service for managing replies to posts."""

    def __init__(self, db: Database, block_service: BlockService) -> None:
        self.db = db
        self.block_service = block_service

    async def create_reply(self, user_id: int, post_id: int, content: str | None) -> Reply:
        """Reply to a post.

        The content is validated before the parent post is looked up.

        Args:
            user_id: ID of the replying user
            post_id: ID of the post being replied to
            content: Text of the reply

        Returns:
            The created reply

        Raises:
            ValueError: If the content is missing or not 1-280 characters
            PostNotFoundError: If the parent post does not exist
        """
        if post_id <= 0:
            raise PostNotFoundError()
        validate_post_content(content)

        async with self.db.transaction() as conn:
            reply = await self._create_reply(conn, user_id, post_id, content)
        logger.info("User %s replied to post %s", user_id, post_id)
        return reply

    async def _create_reply(
        self, conn: AsyncConnection, user_id: int, post_id: int, content: str
    ) -> Reply:
        if not await fetch_one(
            conn, "SELECT id FROM posts WHERE id = :post_id LIMIT 1", post_id=post_id
        ):
            raise PostNotFoundError()

        result = await execute(
            conn,
            """
            INSERT INTO replies (user_id, parent_post_id, content)
            VALUES (:user_id, :post_id, :content)
            """,
            user_id=user_id,
            post_id=post_id,
            content=content,
        )
        row = await fetch_one(
            conn,
            """
            SELECT id, user_id, parent_post_id, content, created_at
            FROM replies
            WHERE id = :reply_id
            LIMIT 1
            """,
            reply_id=result.lastrowid,
        )
        if not row:
            raise ReplyError("Failed to read back the created reply")
        return Reply(**row)

    async def get_post_replies(self, viewer_id: int, post_id: int) -> list[ReplyWithAuthor]:
        """Get the replies to a post, oldest first.

        Replies written by users in the viewer's blocked set are left out.

        Args:
            viewer_id: ID of the viewing user
            post_id: ID of the parent post

        Returns:
            The visible replies with their authors' display fields

        Raises:
            PostNotFoundError: If the parent post does not exist
        """
        if post_id <= 0:
            raise PostNotFoundError()

        async with self.db.connect() as conn:
            replies = await self._get_post_replies(conn, post_id)

        blocked = await self.block_service.get_blocked_set(viewer_id)
        return [reply for reply in replies if reply.user_id not in blocked]

    async def _get_post_replies(
        self, conn: AsyncConnection, post_id: int
    ) -> list[ReplyWithAuthor]:
        if not await fetch_one(
            conn, "SELECT id FROM posts WHERE id = :post_id LIMIT 1", post_id=post_id
        ):
            raise PostNotFoundError()

        query = """
        SELECT
            r.id,
            r.user_id,
            r.parent_post_id,
            r.content,
            r.created_at,
            u.username,
            u.profile_picture_url
        FROM replies r
        JOIN users u ON u.id = r.user_id
        WHERE r.parent_post_id = :post_id
        ORDER BY r.created_at ASC
        """
        rows = await fetch_all(conn, query, post_id=post_id)
        return [ReplyWithAuthor(**row) for row in rows]

    async def delete_reply(self, user_id: int, reply_id: int) -> None:
        """Delete a reply.

        Existence is checked before ownership.

        Raises:
            ReplyNotFoundError: If the reply does not exist
            ReplyPermissionError: If the user did not write the reply
        """
        if reply_id <= 0:
            raise ReplyNotFoundError()

        async with self.db.transaction() as conn:
            await self._delete_reply(conn, user_id, reply_id)
        logger.info("User %s deleted reply %s", user_id, reply_id)

    async def _delete_reply(self, conn: AsyncConnection, user_id: int, reply_id: int) -> None:
        row = await fetch_one(
            conn,
            "SELECT id, user_id FROM replies WHERE id = :reply_id LIMIT 1",
            reply_id=reply_id,
        )
        if not row:
            raise ReplyNotFoundError()
        if row["user_id"] != user_id:
            raise ReplyPermissionError()
        await execute(conn, "DELETE FROM replies WHERE id = :reply_id", reply_id=reply_id)
