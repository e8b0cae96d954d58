import logging
from typing import Annotated

from fastapi import APIRouter, Depends, File, HTTPException, UploadFile, status

from warbler.dependencies import (
    get_block_service,
    get_current_user,
    get_follow_service,
    get_profile_service,
    internal_server_error,
    parse_id,
)
from warbler.models.user import User, UserProfile
from warbler.schemas.requests import ProfileUpdateRequest
from warbler.services.auth import UsernameTakenError
from warbler.services.block import BlockService, BlockTargetNotFoundError, SelfBlockError
from warbler.services.follow import (
    FollowService,
    FollowTargetNotFoundError,
    SelfFollowError,
)
from warbler.services.profile import ProfileNotFoundError, ProfileService
from warbler.services.session import SessionData
from warbler.utils.storage import MAX_AVATAR_BYTES

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/users", tags=["users"])


@router.post("/{user_id}/block", status_code=status.HTTP_204_NO_CONTENT)
async def block_user(
    user_id: str,
    current_user: Annotated[SessionData, Depends(get_current_user)],
    block_service: Annotated[BlockService, Depends(get_block_service)],
) -> None:
    """Block a user.

    Follow relationships between the two users are removed in both
    directions.

    Args:
        user_id: ID of the user to block
        current_user: The authenticated user
        block_service: Service handling blocks

    Raises:
        HTTPException: 400 on a self-block, 404 if the user does not exist
    """
    try:
        await block_service.block(current_user.user_id, parse_id(user_id))
    except SelfBlockError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )
    except BlockTargetNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        )
    except Exception:
        logger.exception("Failed to block user %s", user_id)
        raise internal_server_error()


@router.delete("/{user_id}/block", status_code=status.HTTP_204_NO_CONTENT)
async def unblock_user(
    user_id: str,
    current_user: Annotated[SessionData, Depends(get_current_user)],
    block_service: Annotated[BlockService, Depends(get_block_service)],
) -> None:
    """Unblock a user. Follows removed by the block are not restored."""
    try:
        await block_service.unblock(current_user.user_id, parse_id(user_id))
    except BlockTargetNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        )
    except Exception:
        logger.exception("Failed to unblock user %s", user_id)
        raise internal_server_error()


@router.post("/{user_id}/follow", status_code=status.HTTP_204_NO_CONTENT)
async def follow_user(
    user_id: str,
    current_user: Annotated[SessionData, Depends(get_current_user)],
    follow_service: Annotated[FollowService, Depends(get_follow_service)],
) -> None:
    """Follow a user.

    Raises:
        HTTPException: 400 on a self-follow, 404 if the user does not exist
    """
    try:
        await follow_service.follow_user(current_user.user_id, parse_id(user_id))
    except SelfFollowError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )
    except FollowTargetNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        )
    except Exception:
        logger.exception("Failed to follow user %s", user_id)
        raise internal_server_error()


@router.delete("/{user_id}/follow", status_code=status.HTTP_204_NO_CONTENT)
async def unfollow_user(
    user_id: str,
    current_user: Annotated[SessionData, Depends(get_current_user)],
    follow_service: Annotated[FollowService, Depends(get_follow_service)],
) -> None:
    try:
        await follow_service.unfollow_user(current_user.user_id, parse_id(user_id))
    except FollowTargetNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        )
    except Exception:
        logger.exception("Failed to unfollow user %s", user_id)
        raise internal_server_error()


@router.patch("/me", response_model=User)
async def update_my_profile(
    current_user: Annotated[SessionData, Depends(get_current_user)],
    profile_service: Annotated[ProfileService, Depends(get_profile_service)],
    payload: ProfileUpdateRequest | None = None,
) -> User:
    """Update the current user's username and/or bio.

    Only the fields present in the body are changed.

    Args:
        current_user: The authenticated user
        profile_service: Service handling profiles
        payload: Fields to change

    Returns:
        The updated account

    Raises:
        HTTPException: 400 if a field is invalid or the username is taken
    """
    changes = payload.model_dump(include=payload.model_fields_set) if payload else {}
    try:
        return await profile_service.update_profile(current_user.user_id, changes)
    except (ValueError, UsernameTakenError) as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )
    except ProfileNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        )
    except Exception:
        logger.exception("Failed to update profile of user %s", current_user.user_id)
        raise internal_server_error()


@router.patch("/me/avatar", response_model=User)
async def update_my_avatar(
    current_user: Annotated[SessionData, Depends(get_current_user)],
    profile_service: Annotated[ProfileService, Depends(get_profile_service)],
    avatar: Annotated[UploadFile | None, File()] = None,
) -> User:
    """Upload a new avatar for the current user.

    The ``avatar`` form field must hold a JPEG or PNG of at most 2MB.

    Raises:
        HTTPException: 400 if the file is missing, too large or of another type
    """
    # One byte past the limit is enough to reject an oversized file
    content = await avatar.read(MAX_AVATAR_BYTES + 1) if avatar is not None else None
    content_type = avatar.content_type if avatar is not None else None
    try:
        return await profile_service.update_avatar(current_user.user_id, content, content_type)
    except ValueError as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )
    except ProfileNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        )
    except Exception:
        logger.exception("Failed to update avatar of user %s", current_user.user_id)
        raise internal_server_error()


@router.get("/{user_id}", response_model=UserProfile)
async def get_profile(
    user_id: str,
    current_user: Annotated[SessionData, Depends(get_current_user)],
    profile_service: Annotated[ProfileService, Depends(get_profile_service)],
) -> UserProfile:
    """Get a user's public profile.

    Raises:
        HTTPException: 404 if the user does not exist
    """
    try:
        return await profile_service.get_profile(current_user.user_id, parse_id(user_id))
    except ProfileNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        )
    except Exception:
        logger.exception("Failed to load profile of user %s", user_id)
        raise internal_server_error()
