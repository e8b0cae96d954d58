import logging
from enum import Enum

from sqlalchemy.ext.asyncio import AsyncConnection

from warbler.db import Database, execute, fetch_one
from warbler.models.post import Post, PostDetail
from warbler.services.block import BlockService
from warbler.services.feed import POST_DETAIL_COLUMNS
from warbler.validation import validate_post_content

logger = logging.getLogger(__name__)


class PostError(Exception):
    """Base exception for post-related errors."""

    pass


class PostNotFoundError(PostError):
    """Exception raised when a post is not found."""

    def __init__(self, message: str = "Post not found.") -> None:
        super().__init__(message)


class PostPermissionError(PostError):
    """Exception raised when a user acts on a post they do not own."""

    def __init__(self, message: str = "Forbidden") -> None:
        super().__init__(message)


class EngagementType(str, Enum):
    """Ways a user can engage with a post.

    The value is the table holding the (user, post) edges.

    Attributes:
        LIKE: A like on the post
        RETWEET: A retweet of the post
    """

    LIKE = "likes"
    RETWEET = "retweets"


class PostService:
    """Service for managing posts and engagement on them.

    This service handles creating, reading and deleting posts as well as
    liking and retweeting them. Likes and retweets are unique per
    (user, post) pair, so adding or removing one twice is a no-op.
    """

    def __init__(self, db: Database, block_service: BlockService) -> None:
        self.db = db
        self.block_service = block_service

    async def create_post(self, user_id: int, content: str | None) -> Post:
        """Create a new post.

        Args:
            user_id: ID of the author
            content: Text of the post

        Returns:
            The created post

        Raises:
            ValueError: If the content is missing or not 1-280 characters
        """
        validate_post_content(content)
        async with self.db.transaction() as conn:
            post = await self._create_post(conn, user_id, content)
        logger.info("User %s created post %s", user_id, post.id)
        return post

    async def _create_post(self, conn: AsyncConnection, user_id: int, content: str) -> Post:
        result = await execute(
            conn,
            "INSERT INTO posts (user_id, content) VALUES (:user_id, :content)",
            user_id=user_id,
            content=content,
        )
        row = await fetch_one(
            conn,
            "SELECT id, user_id, content, created_at FROM posts WHERE id = :post_id LIMIT 1",
            post_id=result.lastrowid,
        )
        if not row:
            raise PostError("Failed to read back the created post")
        return Post(**row)

    async def get_post(self, viewer_id: int, post_id: int) -> PostDetail:
        """Get a post with engagement stats for the viewer.

        A post by someone in the viewer's blocked set is reported as missing.

        Args:
            viewer_id: ID of the viewing user
            post_id: ID of the post to get

        Returns:
            The requested post

        Raises:
            PostNotFoundError: If the post does not exist or is hidden
        """
        if post_id <= 0:
            raise PostNotFoundError()

        async with self.db.connect() as conn:
            post = await self._get_post_detail(conn, viewer_id, post_id)
        if post is None:
            raise PostNotFoundError()

        if post.user_id in await self.block_service.get_blocked_set(viewer_id):
            raise PostNotFoundError()
        return post

    async def _get_post_detail(
        self, conn: AsyncConnection, viewer_id: int, post_id: int
    ) -> PostDetail | None:
        query = f"""
        SELECT {POST_DETAIL_COLUMNS}
        FROM posts p
        JOIN users u ON u.id = p.user_id
        WHERE p.id = :post_id
        LIMIT 1
        """
        if row := await fetch_one(conn, query, viewer_id=viewer_id, post_id=post_id):
            return PostDetail(**row)
        return None

    async def delete_post(self, user_id: int, post_id: int) -> None:
        """Delete a post.

        Existence is checked before ownership.

        Args:
            user_id: ID of the user asking for the deletion
            post_id: ID of the post to delete

        Raises:
            PostNotFoundError: If the post does not exist
            PostPermissionError: If the user is not the post's author
        """
        if post_id <= 0:
            raise PostNotFoundError()

        async with self.db.transaction() as conn:
            await self._delete_post(conn, user_id, post_id)
        logger.info("User %s deleted post %s", user_id, post_id)

    async def _delete_post(self, conn: AsyncConnection, user_id: int, post_id: int) -> None:
        row = await fetch_one(
            conn, "SELECT id, user_id FROM posts WHERE id = :post_id LIMIT 1", post_id=post_id
        )
        if not row:
            raise PostNotFoundError()
        if row["user_id"] != user_id:
            raise PostPermissionError()
        await execute(conn, "DELETE FROM posts WHERE id = :post_id", post_id=post_id)

    async def add_engagement(
        self, user_id: int, post_id: int, engagement: EngagementType
    ) -> None:
        """Like or retweet a post.

        Args:
            user_id: ID of the engaging user
            post_id: ID of the post
            engagement: Whether this is a like or a retweet

        Raises:
            PostNotFoundError: If the post does not exist
        """
        if post_id <= 0:
            raise PostNotFoundError()

        async with self.db.transaction() as conn:
            await self._create_engagement(conn, user_id, post_id, engagement)

    async def _create_engagement(
        self,
        conn: AsyncConnection,
        user_id: int,
        post_id: int,
        engagement: EngagementType,
    ) -> None:
        if not await fetch_one(
            conn, "SELECT id FROM posts WHERE id = :post_id LIMIT 1", post_id=post_id
        ):
            raise PostNotFoundError()
        await execute(
            conn,
            f"INSERT IGNORE INTO {engagement.value} (user_id, post_id) VALUES (:user_id, :post_id)",
            user_id=user_id,
            post_id=post_id,
        )

    async def remove_engagement(
        self, user_id: int, post_id: int, engagement: EngagementType
    ) -> None:
        """Remove a like or a retweet.

        Removing an engagement that does not exist succeeds silently, even
        when the post itself is gone.

        Raises:
            PostNotFoundError: If the post ID is not a positive integer
        """
        if post_id <= 0:
            raise PostNotFoundError()

        async with self.db.transaction() as conn:
            await self._remove_engagement(conn, user_id, post_id, engagement)

    async def _remove_engagement(
        self,
        conn: AsyncConnection,
        user_id: int,
        post_id: int,
        engagement: EngagementType,
    ) -> None:
        await execute(
            conn,
            f"DELETE FROM {engagement.value} WHERE user_id = :user_id AND post_id = :post_id",
            user_id=user_id,
            post_id=post_id,
        )

    async def like_post(self, user_id: int, post_id: int) -> None:
        await self.add_engagement(user_id, post_id, EngagementType.LIKE)

    async def unlike_post(self, user_id: int, post_id: int) -> None:
        await self.remove_engagement(user_id, post_id, EngagementType.LIKE)

    async def retweet_post(self, user_id: int, post_id: int) -> None:
        await self.add_engagement(user_id, post_id, EngagementType.RETWEET)

    async def unretweet_post(self, user_id: int, post_id: int) -> None:
        await self.remove_engagement(user_id, post_id, EngagementType.RETWEET)
