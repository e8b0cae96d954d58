import logging

from sqlalchemy.ext.asyncio import AsyncConnection

from warbler.db import Database, fetch_all
from warbler.models.feed import (
    FeedAuthor,
    FeedItem,
    FeedPost,
    PostFeedItem,
    RetweetFeedItem,
)
from warbler.models.post import PostDetail
from warbler.services.block import BlockService
from warbler.services.follow import FollowService

logger = logging.getLogger(__name__)

FEED_LIMIT = 20

# language=sql
POST_DETAIL_COLUMNS = """
    p.id,
    p.user_id,
    p.content,
    p.created_at,
    u.username,
    u.profile_picture_url,
    (SELECT COUNT(*) FROM likes l WHERE l.post_id = p.id) AS like_count,
    EXISTS (
        SELECT 1 FROM likes l2 WHERE l2.post_id = p.id AND l2.user_id = :viewer_id
    ) AS liked_by_me,
    (SELECT COUNT(*) FROM retweets r WHERE r.post_id = p.id) AS retweet_count,
    EXISTS (
        SELECT 1 FROM retweets r2 WHERE r2.post_id = p.id AND r2.user_id = :viewer_id
    ) AS retweeted_by_me
"""


class FeedService:
    """Service that assembles a viewer's timelines.

    Two feeds are offered:
    - for-you: the most recent posts from everyone
    - following: posts and retweets from the users the viewer follows

    Both hide content from users in the viewer's blocked set and return at
    most ``FEED_LIMIT`` items, newest first. The limit is applied after
    filtering.
    """

    def __init__(
        self,
        db: Database,
        block_service: BlockService,
        follow_service: FollowService,
    ) -> None:
        self.db = db
        self.block_service = block_service
        self.follow_service = follow_service

    async def get_for_you_feed(self, viewer_id: int) -> list[PostDetail]:
        """Get the global feed for a viewer.

        Args:
            viewer_id: ID of the viewing user

        Returns:
            Up to ``FEED_LIMIT`` posts, newest first, with engagement stats
        """
        blocked = await self.block_service.get_blocked_set(viewer_id)
        async with self.db.connect() as conn:
            posts = await self._get_recent_posts(conn, viewer_id)

        visible = [post for post in posts if post.user_id not in blocked]
        return visible[:FEED_LIMIT]

    async def _get_recent_posts(
        self, conn: AsyncConnection, viewer_id: int
    ) -> list[PostDetail]:
        query = f"""
        SELECT {POST_DETAIL_COLUMNS}
        FROM posts p
        JOIN users u ON u.id = p.user_id
        ORDER BY p.created_at DESC
        """
        rows = await fetch_all(conn, query, viewer_id=viewer_id)
        return [PostDetail(**row) for row in rows]

    async def get_following_feed(self, viewer_id: int) -> list[FeedItem]:
        """Get the feed of posts and retweets from followed users.

        Original posts are ranked by when they were written; retweets by when
        they were retweeted. A retweet is hidden when either the retweeter or
        the original author is in the viewer's blocked set.

        Args:
            viewer_id: ID of the viewing user

        Returns:
            Up to ``FEED_LIMIT`` feed items, newest first. Empty when the
            viewer follows nobody, in which case no content is queried.
        """
        blocked = await self.block_service.get_blocked_set(viewer_id)
        followed_ids = await self.follow_service.get_followed_ids(viewer_id)
        if not followed_ids:
            return []

        async with self.db.connect() as conn:
            posts = await self._get_followed_posts(conn, viewer_id, followed_ids)
            retweets = await self._get_followed_retweets(conn, viewer_id, followed_ids)

        items: list[FeedItem] = [
            item for item in posts if item.author.id not in blocked
        ]
        items.extend(
            item
            for item in retweets
            if item.retweeter.id not in blocked and item.author.id not in blocked
        )
        items.sort(key=lambda item: item.timestamp, reverse=True)
        return items[:FEED_LIMIT]

    async def _get_followed_posts(
        self, conn: AsyncConnection, viewer_id: int, followed_ids: list[int]
    ) -> list[PostFeedItem]:
        query = f"""
        SELECT {POST_DETAIL_COLUMNS}
        FROM posts p
        JOIN users u ON u.id = p.user_id
        WHERE p.user_id IN :followed_ids
        ORDER BY p.created_at DESC
        """
        rows = await fetch_all(conn, query, viewer_id=viewer_id, followed_ids=followed_ids)
        return [
            PostFeedItem(
                post=FeedPost(**row),
                author=FeedAuthor(
                    id=row["user_id"],
                    username=row["username"],
                    profile_picture_url=row["profile_picture_url"],
                ),
            )
            for row in rows
        ]

    async def _get_followed_retweets(
        self, conn: AsyncConnection, viewer_id: int, followed_ids: list[int]
    ) -> list[RetweetFeedItem]:
        query = """
        SELECT
            r.id AS retweet_id,
            r.user_id AS retweeter_id,
            r.created_at AS retweeted_at,
            ru.username AS retweeter_username,
            ru.profile_picture_url AS retweeter_profile_picture_url,
            p.id AS original_post_id,
            p.user_id AS original_author_id,
            p.content AS original_content,
            p.created_at AS original_created_at,
            (SELECT COUNT(*) FROM likes l WHERE l.post_id = p.id) AS original_like_count,
            EXISTS (
                SELECT 1 FROM likes l2 WHERE l2.post_id = p.id AND l2.user_id = :viewer_id
            ) AS original_liked_by_me,
            (SELECT COUNT(*) FROM retweets r2 WHERE r2.post_id = p.id) AS original_retweet_count,
            EXISTS (
                SELECT 1 FROM retweets r3 WHERE r3.post_id = p.id AND r3.user_id = :viewer_id
            ) AS original_retweeted_by_me,
            au.username AS original_author_username,
            au.profile_picture_url AS original_author_profile_picture_url
        FROM retweets r
        JOIN users ru ON ru.id = r.user_id
        JOIN posts p ON p.id = r.post_id
        JOIN users au ON au.id = p.user_id
        WHERE r.user_id IN :followed_ids
        ORDER BY r.created_at DESC
        """
        rows = await fetch_all(conn, query, viewer_id=viewer_id, followed_ids=followed_ids)
        return [
            RetweetFeedItem(
                retweeted_at=row["retweeted_at"],
                retweeter=FeedAuthor(
                    id=row["retweeter_id"],
                    username=row["retweeter_username"],
                    profile_picture_url=row["retweeter_profile_picture_url"],
                ),
                post=FeedPost(
                    id=row["original_post_id"],
                    user_id=row["original_author_id"],
                    content=row["original_content"],
                    created_at=row["original_created_at"],
                    like_count=row["original_like_count"],
                    liked_by_me=row["original_liked_by_me"],
                    retweet_count=row["original_retweet_count"],
                    retweeted_by_me=row["original_retweeted_by_me"],
                ),
                author=FeedAuthor(
                    id=row["original_author_id"],
                    username=row["original_author_username"],
                    profile_picture_url=row["original_author_profile_picture_url"],
                ),
            )
            for row in rows
        ]
