from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class SignupRequest(BaseModel):
    """Body of a signup request.

    Fields accept any JSON value so that missing or mistyped fields reach
    the validators and produce their field-specific message.
    """

    username: Any = None
    password: Any = None
    email: Any = None


class LoginRequest(BaseModel):
    username: Any = None
    password: Any = None


class ForgotPasswordRequest(BaseModel):
    email: Any = None


class ResetPasswordRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    token: Any = None
    new_password: Any = Field(default=None, alias="newPassword")


class PostContentRequest(BaseModel):
    """Body for creating a post or a reply."""

    content: Any = None


class ProfileUpdateRequest(BaseModel):
    """Partial profile update.

    Only the fields present in the request body are applied; use
    ``model_fields_set`` to tell an omitted field from an explicit null.
    """

    username: Any = None
    bio: Any = None
