from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class CreateBlockRecord(BaseModel):
    """Record of a block relationship creation.

    Attributes:
        blocked_user_id: ID of the user who was blocked
        removed_forward_follow: Whether a follow from blocker to blocked was removed
        removed_reverse_follow: Whether a follow from blocked to blocker was removed
    """

    model_config = ConfigDict(frozen=True)

    blocked_user_id: int = Field(description="ID of the user who was blocked")
    removed_forward_follow: bool = Field(
        description="Whether a follow from blocker to blocked was removed"
    )
    removed_reverse_follow: bool = Field(
        description="Whether a follow from blocked to blocker was removed"
    )


class PasswordResetTokenRecord(BaseModel):
    """A stored password reset token.

    Attributes:
        id: Row identifier of the token
        user_id: ID of the user the token resets
        token: The secret token sent by email
        expires_at: When the token stops being accepted
    """

    model_config = ConfigDict(frozen=True)

    id: int | None = None
    user_id: int
    token: str
    expires_at: datetime
