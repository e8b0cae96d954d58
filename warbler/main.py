import logging
from contextlib import asynccontextmanager
from datetime import timedelta

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles

from warbler.api import auth, feed, health, post, reply, user
from warbler.config import Settings, get_settings
from warbler.db import Database
from warbler.services.auth import AuthService
from warbler.services.block import BlockService
from warbler.services.email import EmailService
from warbler.services.feed import FeedService
from warbler.services.follow import FollowService
from warbler.services.password_reset import PasswordResetTokenService
from warbler.services.post import PostService
from warbler.services.profile import ProfileService
from warbler.services.reply import ReplyService
from warbler.services.session import (
    DatabaseSessionStore,
    MemorySessionStore,
    SessionStore,
)
from warbler.utils.storage import LocalStorage, S3Storage, Storage

logger = logging.getLogger(__name__)

LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"
UPLOADS_PATH = "/uploads"


def _build_session_store(settings: Settings, database: Database) -> SessionStore:
    ttl = timedelta(seconds=settings.session_ttl_seconds)
    if settings.session_backend == "memory":
        return MemorySessionStore(ttl)
    return DatabaseSessionStore(database, ttl)


def _build_storage(settings: Settings) -> Storage:
    if settings.storage_backend == "s3":
        return S3Storage(settings.s3_bucket_name, settings.s3_public_base_url)
    return LocalStorage(settings.upload_dir, url_prefix=UPLOADS_PATH)


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Report malformed request input as a plain 400."""
    errors = exc.errors()
    message = errors[0]["msg"] if errors else "Invalid request."
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": message},
    )


def create_app(
    settings: Settings | None = None,
    *,
    database: Database | None = None,
    session_store: SessionStore | None = None,
    storage: Storage | None = None,
    email_service: EmailService | None = None,
) -> FastAPI:
    """Build the Warbler application.

    Collaborators not passed in are built from ``settings``.

    Args:
        settings: Application settings, read from the environment if omitted
        database: The relational store
        session_store: Where login sessions are kept
        storage: Where avatars are written
        email_service: Sends password reset links

    Returns:
        The configured FastAPI application
    """
    settings = settings or get_settings()
    logging.basicConfig(level=settings.log_level.upper(), format=LOG_FORMAT)

    database = database or Database(
        settings.database_url, pool_recycle=settings.database_pool_recycle
    )
    session_store = session_store or _build_session_store(settings, database)
    storage = storage or _build_storage(settings)
    email_service = email_service or EmailService.from_settings(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        if isinstance(storage, LocalStorage):
            storage.root.mkdir(parents=True, exist_ok=True)
        logger.info("%s started", settings.app_name)
        yield
        await database.dispose()

    app = FastAPI(title=settings.app_name, lifespan=lifespan)

    block_service = BlockService(database)
    follow_service = FollowService(database)
    app.state.settings = settings
    app.state.database = database
    app.state.block_service = block_service
    app.state.follow_service = follow_service
    app.state.feed_service = FeedService(database, block_service, follow_service)
    app.state.post_service = PostService(database, block_service)
    app.state.reply_service = ReplyService(database, block_service)
    app.state.profile_service = ProfileService(database, storage)
    app.state.auth_service = AuthService(
        database,
        session_store,
        PasswordResetTokenService(
            database, ttl=timedelta(seconds=settings.password_reset_ttl_seconds)
        ),
        email_service,
        settings.frontend_url,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_exception_handler(RequestValidationError, validation_exception_handler)

    for module in (health, auth, feed, post, reply, user):
        app.include_router(module.router, prefix="/api")

    if isinstance(storage, LocalStorage):
        app.mount(
            UPLOADS_PATH,
            StaticFiles(directory=storage.root, check_dir=False),
            name="uploads",
        )

    return app


app = create_app()
