import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from warbler.dependencies import (
    get_current_user,
    get_post_service,
    get_reply_service,
    internal_server_error,
    parse_id,
)
from warbler.models.post import Post, PostDetail
from warbler.models.reply import Reply, ReplyWithAuthor
from warbler.schemas.requests import PostContentRequest
from warbler.services.post import (
    EngagementType,
    PostNotFoundError,
    PostPermissionError,
    PostService,
)
from warbler.services.reply import ReplyService
from warbler.services.session import SessionData

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/posts", tags=["posts"])


@router.post("", response_model=Post, status_code=status.HTTP_201_CREATED)
async def create_post(
    current_user: Annotated[SessionData, Depends(get_current_user)],
    post_service: Annotated[PostService, Depends(get_post_service)],
    payload: PostContentRequest | None = None,
) -> Post:
    """Create a new post.

    Args:
        current_user: The authenticated user
        post_service: Service handling posts
        payload: The post's content

    Returns:
        The created post

    Raises:
        HTTPException: 400 if the content is invalid
    """
    payload = payload or PostContentRequest()
    try:
        return await post_service.create_post(current_user.user_id, payload.content)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )
    except Exception:
        logger.exception("Failed to create post for user %s", current_user.user_id)
        raise internal_server_error()


@router.get("/{post_id}", response_model=PostDetail)
async def get_post(
    post_id: str,
    current_user: Annotated[SessionData, Depends(get_current_user)],
    post_service: Annotated[PostService, Depends(get_post_service)],
) -> PostDetail:
    """Get a post with its engagement stats.

    Raises:
        HTTPException: 404 if the post is missing or its author is blocked
    """
    try:
        return await post_service.get_post(current_user.user_id, parse_id(post_id))
    except PostNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        )
    except Exception:
        logger.exception("Failed to load post %s", post_id)
        raise internal_server_error()


@router.delete("/{post_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_post(
    post_id: str,
    current_user: Annotated[SessionData, Depends(get_current_user)],
    post_service: Annotated[PostService, Depends(get_post_service)],
) -> None:
    """Delete one of the current user's posts.

    Raises:
        HTTPException: 404 if the post does not exist, 403 if it is not theirs
    """
    try:
        await post_service.delete_post(current_user.user_id, parse_id(post_id))
    except PostNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        )
    except PostPermissionError as e:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=str(e),
        )
    except Exception:
        logger.exception("Failed to delete post %s", post_id)
        raise internal_server_error()


async def _add_engagement(
    post_service: PostService, user_id: int, raw_post_id: str, engagement: EngagementType
) -> None:
    try:
        await post_service.add_engagement(user_id, parse_id(raw_post_id), engagement)
    except PostNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        )
    except Exception:
        logger.exception("Failed to add %s on post %s", engagement.value, raw_post_id)
        raise internal_server_error()


async def _remove_engagement(
    post_service: PostService, user_id: int, raw_post_id: str, engagement: EngagementType
) -> None:
    try:
        await post_service.remove_engagement(user_id, parse_id(raw_post_id), engagement)
    except PostNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        )
    except Exception:
        logger.exception("Failed to remove %s on post %s", engagement.value, raw_post_id)
        raise internal_server_error()


@router.post("/{post_id}/like", status_code=status.HTTP_204_NO_CONTENT)
async def like_post(
    post_id: str,
    current_user: Annotated[SessionData, Depends(get_current_user)],
    post_service: Annotated[PostService, Depends(get_post_service)],
) -> None:
    """Like a post. Liking it again is a no-op."""
    await _add_engagement(post_service, current_user.user_id, post_id, EngagementType.LIKE)


@router.delete("/{post_id}/like", status_code=status.HTTP_204_NO_CONTENT)
async def unlike_post(
    post_id: str,
    current_user: Annotated[SessionData, Depends(get_current_user)],
    post_service: Annotated[PostService, Depends(get_post_service)],
) -> None:
    await _remove_engagement(post_service, current_user.user_id, post_id, EngagementType.LIKE)


@router.post("/{post_id}/retweet", status_code=status.HTTP_204_NO_CONTENT)
async def retweet_post(
    post_id: str,
    current_user: Annotated[SessionData, Depends(get_current_user)],
    post_service: Annotated[PostService, Depends(get_post_service)],
) -> None:
    """Retweet a post. Retweeting it again is a no-op."""
    await _add_engagement(post_service, current_user.user_id, post_id, EngagementType.RETWEET)


@router.delete("/{post_id}/retweet", status_code=status.HTTP_204_NO_CONTENT)
async def unretweet_post(
    post_id: str,
    current_user: Annotated[SessionData, Depends(get_current_user)],
    post_service: Annotated[PostService, Depends(get_post_service)],
) -> None:
    await _remove_engagement(
        post_service, current_user.user_id, post_id, EngagementType.RETWEET
    )


@router.post(
    "/{post_id}/replies",
    response_model=Reply,
    status_code=status.HTTP_201_CREATED,
)
async def create_reply(
    post_id: str,
    current_user: Annotated[SessionData, Depends(get_current_user)],
    reply_service: Annotated[ReplyService, Depends(get_reply_service)],
    payload: PostContentRequest | None = None,
) -> Reply:
    """Reply to a post.

    Args:
        post_id: ID of the post being replied to
        current_user: The authenticated user
        reply_service: Service handling replies
        payload: The reply's content

    Returns:
        The created reply

    Raises:
        HTTPException: 400 if the content is invalid, 404 if the post is missing
    """
    payload = payload or PostContentRequest()
    try:
        return await reply_service.create_reply(
            current_user.user_id, parse_id(post_id), payload.content
        )
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )
    except PostNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        )
    except Exception:
        logger.exception("Failed to reply to post %s", post_id)
        raise internal_server_error()


@router.get("/{post_id}/replies", response_model=list[ReplyWithAuthor])
async def get_post_replies(
    post_id: str,
    current_user: Annotated[SessionData, Depends(get_current_user)],
    reply_service: Annotated[ReplyService, Depends(get_reply_service)],
) -> list[ReplyWithAuthor]:
    """Get the replies to a post, oldest first.

    Raises:
        HTTPException: 404 if the post does not exist
    """
    try:
        return await reply_service.get_post_replies(current_user.user_id, parse_id(post_id))
    except PostNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        )
    except Exception:
        logger.exception("Failed to list replies of post %s", post_id)
        raise internal_server_error()
