from datetime import datetime
from typing import Annotated, Literal

from pydantic import BaseModel, ConfigDict, Field


class FeedAuthor(BaseModel):
    """Display fields of a user shown next to feed content.

    Attributes:
        id: ID of the user
        username: The user's username
        profile_picture_url: The user's avatar URL if set
    """

    model_config = ConfigDict(frozen=True)

    id: int
    username: str
    profile_picture_url: str | None = None


class FeedPost(BaseModel):
    """A post as it appears inside a following-feed item.

    Attributes:
        id: ID of the post
        user_id: ID of the post's author
        content: Text of the post
        created_at: When the post was created
        like_count: Number of likes
        liked_by_me: Whether the viewer liked the post
        retweet_count: Number of retweets
        retweeted_by_me: Whether the viewer retweeted the post
    """

    model_config = ConfigDict(frozen=True)

    id: int
    user_id: int
    content: str
    created_at: datetime
    like_count: int = Field(default=0, ge=0)
    liked_by_me: bool = False
    retweet_count: int = Field(default=0, ge=0)
    retweeted_by_me: bool = False


class PostFeedItem(BaseModel):
    """An original post by a followed author."""

    model_config = ConfigDict(frozen=True)

    type: Literal["post"] = "post"
    post: FeedPost
    author: FeedAuthor

    @property
    def timestamp(self) -> datetime:
        return self.post.created_at


class RetweetFeedItem(BaseModel):
    """A retweet made by a followed user.

    The embedded ``post`` and ``author`` describe the original post, which
    may belong to anyone, including users the viewer does not follow.

    Attributes:
        retweeted_at: When the retweet was made
        retweeter: The followed user who retweeted
        post: The original post
        author: The original post's author
    """

    model_config = ConfigDict(frozen=True)

    type: Literal["retweet"] = "retweet"
    retweeted_at: datetime
    retweeter: FeedAuthor
    post: FeedPost
    author: FeedAuthor

    @property
    def timestamp(self) -> datetime:
        return self.retweeted_at


FeedItem = Annotated[PostFeedItem | RetweetFeedItem, Field(discriminator="type")]
