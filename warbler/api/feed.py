import logging
from typing import Annotated

from fastapi import APIRouter, Depends

from warbler.dependencies import get_current_user, get_feed_service, internal_server_error
from warbler.models.feed import FeedItem
from warbler.models.post import PostDetail
from warbler.services.feed import FeedService
from warbler.services.session import SessionData

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/feed", tags=["feed"])


@router.get("/for-you", response_model=list[PostDetail])
async def get_for_you_feed(
    current_user: Annotated[SessionData, Depends(get_current_user)],
    feed_service: Annotated[FeedService, Depends(get_feed_service)],
) -> list[PostDetail]:
    """Get the newest posts from everyone outside the viewer's blocked set.

    Args:
        current_user: The authenticated user
        feed_service: Service assembling feeds

    Returns:
        Up to 20 posts, newest first
    """
    try:
        return await feed_service.get_for_you_feed(current_user.user_id)
    except Exception:
        logger.exception("Failed to build for-you feed for user %s", current_user.user_id)
        raise internal_server_error()


@router.get("/following", response_model=list[FeedItem])
async def get_following_feed(
    current_user: Annotated[SessionData, Depends(get_current_user)],
    feed_service: Annotated[FeedService, Depends(get_feed_service)],
) -> list[FeedItem]:
    """Get posts and retweets from followed users.

    Args:
        current_user: The authenticated user
        feed_service: Service assembling feeds

    Returns:
        Up to 20 items, newest first
    """
    try:
        return await feed_service.get_following_feed(current_user.user_id)
    except Exception:
        logger.exception("Failed to build following feed for user %s", current_user.user_id)
        raise internal_server_error()
