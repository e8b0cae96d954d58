from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class Post(BaseModel):
    """Model representing a post as stored.

    Attributes:
        id: Unique identifier for the post
        user_id: ID of the author
        content: Text of the post (1-280 characters)
        created_at: When the post was created
    """

    model_config = ConfigDict(frozen=True)

    id: int = Field(description="Unique identifier for the post")
    user_id: int = Field(description="ID of the user who wrote the post")
    content: str = Field(description="Text of the post")
    created_at: datetime = Field(description="When the post was created")


class PostDetail(Post):
    """A post with its author's display fields and engagement for a viewer.

    Attributes:
        username: Author's username
        profile_picture_url: Author's avatar URL
        like_count: Number of likes
        liked_by_me: Whether the viewer liked the post
        retweet_count: Number of retweets
        retweeted_by_me: Whether the viewer retweeted the post
    """

    username: str
    profile_picture_url: str | None = None
    like_count: int = Field(default=0, ge=0, description="Number of likes")
    liked_by_me: bool = False
    retweet_count: int = Field(default=0, ge=0, description="Number of retweets")
    retweeted_by_me: bool = False
