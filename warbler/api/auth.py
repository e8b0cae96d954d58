import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status

from warbler.config import Settings
from warbler.dependencies import (
    get_app_settings,
    get_auth_service,
    get_current_user,
    internal_server_error,
)
from warbler.models.user import User
from warbler.schemas.requests import (
    ForgotPasswordRequest,
    LoginRequest,
    ResetPasswordRequest,
    SignupRequest,
)
from warbler.schemas.responses import (
    LoginResponseSchema,
    MessageResponseSchema,
    SignupResponseSchema,
)
from warbler.services.auth import (
    AuthService,
    EmailInUseError,
    InvalidCredentialsError,
    InvalidResetTokenError,
    UsernameTakenError,
    UserNotFoundError,
)
from warbler.services.session import SessionData

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["auth"])

FORGOT_PASSWORD_MESSAGE = "If an account exists, you will receive an email."


@router.post(
    "/signup",
    response_model=SignupResponseSchema,
    status_code=status.HTTP_201_CREATED,
)
async def signup(
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
    payload: SignupRequest | None = None,
) -> SignupResponseSchema:
    """Create an account.

    Args:
        auth_service: Service handling accounts
        payload: Username, password and email of the new account

    Returns:
        The created account

    Raises:
        HTTPException: If a field is invalid or already in use
    """
    payload = payload or SignupRequest()
    try:
        user = await auth_service.signup(payload.username, payload.password, payload.email)
    except (ValueError, UsernameTakenError, EmailInUseError) as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )
    except Exception:
        logger.exception("Signup failed")
        raise internal_server_error()

    return SignupResponseSchema(id=user.id, username=user.username, email=user.email)


@router.post("/login", response_model=LoginResponseSchema)
async def login(
    response: Response,
    settings: Annotated[Settings, Depends(get_app_settings)],
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
    payload: LoginRequest | None = None,
) -> LoginResponseSchema:
    """Log in and set the session cookie.

    Args:
        response: Outgoing response, receives the cookie
        settings: Application settings, for the cookie attributes
        auth_service: Service handling sessions
        payload: Username and password

    Returns:
        The logged-in user's id and username

    Raises:
        HTTPException: 401 if the credentials do not match a user
    """
    payload = payload or LoginRequest()
    try:
        session = await auth_service.login(payload.username, payload.password)
    except InvalidCredentialsError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(e),
        )
    except Exception:
        logger.exception("Login failed")
        raise internal_server_error()

    response.set_cookie(
        key=settings.session_cookie_name,
        value=session.session_id,
        max_age=settings.session_ttl_seconds,
        httponly=True,
        samesite="lax",
        secure=settings.cookie_secure,
    )
    return LoginResponseSchema(id=session.user_id, username=session.username)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(
    request: Request,
    response: Response,
    settings: Annotated[Settings, Depends(get_app_settings)],
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
) -> None:
    """End the current session, if any, and clear the cookie."""
    try:
        await auth_service.logout(request.cookies.get(settings.session_cookie_name))
    except Exception:
        logger.exception("Logout failed")
        raise internal_server_error()

    response.delete_cookie(
        key=settings.session_cookie_name,
        httponly=True,
        samesite="lax",
        secure=settings.cookie_secure,
    )


@router.get("/me", response_model=User)
async def get_me(
    current_user: Annotated[SessionData, Depends(get_current_user)],
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
) -> User:
    """Get the logged-in user's own account.

    Raises:
        HTTPException: 404 if the account no longer exists
    """
    try:
        return await auth_service.get_user(current_user.user_id)
    except UserNotFoundError as e:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(e),
        )
    except Exception:
        logger.exception("Failed to load user %s", current_user.user_id)
        raise internal_server_error()


@router.post("/forgot-password", response_model=MessageResponseSchema)
async def forgot_password(
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
    payload: ForgotPasswordRequest | None = None,
) -> MessageResponseSchema:
    """Request a password reset link.

    The response is the same whether or not the address belongs to an
    account.
    """
    payload = payload or ForgotPasswordRequest()
    try:
        await auth_service.request_password_reset(payload.email)
    except Exception:
        logger.exception("Password reset request failed")
        raise internal_server_error()

    return MessageResponseSchema(message=FORGOT_PASSWORD_MESSAGE)


@router.post("/reset-password", status_code=status.HTTP_204_NO_CONTENT)
async def reset_password(
    auth_service: Annotated[AuthService, Depends(get_auth_service)],
    payload: ResetPasswordRequest | None = None,
) -> None:
    """Set a new password with a reset token.

    Raises:
        HTTPException: 400 if the token or the new password is rejected
    """
    payload = payload or ResetPasswordRequest()
    try:
        await auth_service.reset_password(payload.token, payload.new_password)
    except (ValueError, InvalidResetTokenError) as e:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(e),
        )
    except Exception:
        logger.exception("Password reset failed")
        raise internal_server_error()
