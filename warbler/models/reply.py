from datetime import datetime

from pydantic import BaseModel, ConfigDict


class Reply(BaseModel):
    """Model representing a reply to a post.

    Attributes:
        id: Unique identifier for the reply
        user_id: ID of the user who wrote the reply
        parent_post_id: ID of the post being replied to
        content: Text of the reply (1-280 characters)
        created_at: When the reply was created
    """

    model_config = ConfigDict(frozen=True)

    id: int
    user_id: int
    parent_post_id: int
    content: str
    created_at: datetime


class ReplyWithAuthor(Reply):
    """A reply together with its author's display fields."""

    username: str
    profile_picture_url: str | None = None
