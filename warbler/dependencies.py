import logging
from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from warbler.config import Settings
from warbler.db import Database
from warbler.services.auth import AuthService
from warbler.services.block import BlockService
from warbler.services.feed import FeedService
from warbler.services.follow import FollowService
from warbler.services.post import PostService
from warbler.services.profile import ProfileService
from warbler.services.reply import ReplyService
from warbler.services.session import SessionData

logger = logging.getLogger(__name__)

INTERNAL_SERVER_ERROR = "Internal server error."


def internal_server_error() -> HTTPException:
    """Build the generic 500 returned when a handler fails unexpectedly."""
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=INTERNAL_SERVER_ERROR,
    )


# Services are built once by create_app and kept on app.state; routes reach
# them through these providers so tests can swap them with dependency_overrides.


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_database(request: Request) -> Database:
    return request.app.state.database


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def get_block_service(request: Request) -> BlockService:
    return request.app.state.block_service


def get_follow_service(request: Request) -> FollowService:
    return request.app.state.follow_service


def get_feed_service(request: Request) -> FeedService:
    return request.app.state.feed_service


def get_post_service(request: Request) -> PostService:
    return request.app.state.post_service


def get_reply_service(request: Request) -> ReplyService:
    return request.app.state.reply_service


def get_profile_service(request: Request) -> ProfileService:
    return request.app.state.profile_service


async def get_current_user(
    request: Request,
    settings: Annotated[Settings, Depends(get_app_settings)],
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
) -> SessionData:
    """Dependency for getting the current authenticated user.

    The session id is read from the session cookie and resolved against the
    session store. Use this to protect routes that require authentication.

    Args:
        request: The FastAPI request object
        settings: Application settings, for the cookie name
        auth_service: Resolves the session

    Returns:
        The live session of the requesting user

    Raises:
        HTTPException: 401 if there is no live session
    """
    session_id = request.cookies.get(settings.session_cookie_name)
    try:
        session = await auth_service.get_session(session_id)
    except Exception:
        logger.exception("Failed to load session")
        raise internal_server_error()

    if session is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
        )
    return session


def parse_id(raw: str) -> int:
    """Parse a numeric path id.

    Anything that is not a whole number maps to 0, which every service
    treats as a missing record.
    """
    try:
        return int(raw)
    except ValueError:
        return 0
