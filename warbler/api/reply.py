import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, status

from warbler.dependencies import (
    get_current_user,
    get_reply_service,
    internal_server_error,
    parse_id,
)
from warbler.services.reply import (
    ReplyNotFoundError,
    ReplyPermissionError,
    ReplyService,
)
from warbler.services.session import SessionData

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/replies", tags=["replies"])


@router.delete("/{reply_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_reply(
    reply_id: str,
    current_user: Annotated[SessionData, Depends(get_current_user)],
    reply_service: Annotated[ReplyService, Depends(get_reply_service)],
) -> None:
    """Delete one of the current user's replies.

    Args:
        reply_id: ID of the reply to delete
        current_user: The authenticated user
        reply_service: Service handling replies

    Raises:
        HTTPException: 404 if the reply does not exist, 403 if it is not theirs
    """
    try:
        await reply_service.delete_reply(current_user.user_id, parse_id(reply_id))
    except ReplyNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        )
    except ReplyPermissionError as e:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail=str(e),
        )
    except Exception:
        logger.exception("Failed to delete reply %s", reply_id)
        raise internal_server_error()
