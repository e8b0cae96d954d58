from pydantic import BaseModel, ConfigDict, Field


class HealthCheckResponseSchema(BaseModel):
    """Result of the health check.

    Attributes:
        ok: Whether the service is healthy
        db: Reachability of the relational store ("ok" or "unavailable")
    """

    ok: bool = Field(description="Whether the service is healthy")
    db: str = Field(description="Reachability of the relational store")


class PingResponseSchema(BaseModel):
    pong: bool = True


class MessageResponseSchema(BaseModel):
    message: str


class SignupResponseSchema(BaseModel):
    """Account created by a signup."""

    model_config = ConfigDict(frozen=True)

    id: int
    username: str
    email: str


class LoginResponseSchema(BaseModel):
    """Identity of the user that just logged in."""

    model_config = ConfigDict(frozen=True)

    id: int
    username: str
