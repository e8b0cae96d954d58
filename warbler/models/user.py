from pydantic import BaseModel, ConfigDict, Field


class User(BaseModel):
    """User model as seen by the account owner.

    This is the shape returned by ``/auth/me`` and by the profile update
    endpoints, so it includes the private email address.

    Attributes:
        id: Unique identifier for the user
        username: Lowercased, unique username
        email: Lowercased email address
        bio: User's biography if set
        profile_picture_url: URL of the avatar if one was uploaded
    """

    model_config = ConfigDict(frozen=True)

    id: int
    username: str
    email: str
    bio: str | None = None
    profile_picture_url: str | None = None


class UserCredentials(BaseModel):
    """Login record of a user, never sent to clients.

    Attributes:
        id: Unique identifier for the user
        username: Stored username
        password_hash: bcrypt hash of the password
    """

    model_config = ConfigDict(frozen=True)

    id: int
    username: str
    password_hash: str


class UserProfile(BaseModel):
    """Public profile of a user as seen by a viewer.

    Attributes:
        id: Unique identifier for the user
        username: The user's username
        bio: User's biography if set
        profile_picture_url: URL of the avatar if one was uploaded
        follower_count: Number of users following this user
        following_count: Number of users this user follows
        is_following: Whether the viewer follows this user
    """

    model_config = ConfigDict(frozen=True)

    id: int
    username: str
    bio: str | None = None
    profile_picture_url: str | None = None
    follower_count: int = Field(default=0, ge=0)
    following_count: int = Field(default=0, ge=0)
    is_following: bool = False
