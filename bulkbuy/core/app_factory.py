from __future__ import annotations

import logging
import time
from contextlib import asynccontextmanager
from typing import AsyncIterator, Optional

from fastapi import FastAPI

from .. import __version__
from ..application.services.auth_service import AuthService
from ..application.services.comment_service import CommentService
from ..application.services.product_service import ProductService
from ..application.services.user_service import UserService
from ..domain.ports.mail import MailSender
from ..domain.ports.persistence import PersistenceGateway
from ..infrastructure.persistence.sqlite import SQLitePersistence
from ..presentation.api.errors import register_exception_handlers
from ..presentation.api.middleware import register_middleware
from ..presentation.api.routers import auth as auth_router
from ..presentation.api.routers import comments as comments_router
from ..presentation.api.routers import products as products_router
from ..presentation.api.routers import system as system_router
from ..presentation.api.routers import users as users_router
from ..services.background import BackgroundTaskSink
from ..services.email_service import EmailService
from ..services.presence import ActivityTracker, PresenceSweeper
from ..services.security import PasswordHasher, TokenIssuer
from .config import Settings
from .container import ApplicationContainer
from .logging import configure_logging

logger = logging.getLogger(__name__)


def create_application(
    settings: Optional[Settings] = None,
    *,
    persistence: Optional[PersistenceGateway] = None,
    mailer: Optional[MailSender] = None,
) -> FastAPI:
    settings = settings or Settings()

    app = FastAPI(
        title="BulkBuy API",
        version=__version__,
        lifespan=_create_lifespan(settings, persistence, mailer),
    )
    app.state.started_at = time.monotonic()  # type: ignore[attr-defined]

    register_middleware(app, settings)
    register_exception_handlers(app, settings)

    app.include_router(system_router.router)
    app.include_router(auth_router.router)
    app.include_router(products_router.router)
    app.include_router(comments_router.router)
    app.include_router(users_router.router)

    return app


def _create_lifespan(
    settings: Settings,
    persistence_override: Optional[PersistenceGateway],
    mailer_override: Optional[MailSender],
):
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        configure_logging()
        settings.warn_insecure_defaults()

        persistence = persistence_override or SQLitePersistence(settings.database_path)
        mailer = mailer_override or EmailService(
            smtp_host=settings.smtp_host,
            smtp_port=settings.smtp_port,
            smtp_username=settings.smtp_username,
            smtp_password=settings.smtp_password,
            from_email=settings.from_email,
            otp_expire_minutes=settings.otp_expire_minutes,
        )
        background = BackgroundTaskSink(max_workers=settings.background_workers)
        activity_tracker = ActivityTracker(persistence, background)
        presence_sweeper = PresenceSweeper(
            persistence,
            interval_seconds=settings.presence_sweep_seconds,
            idle_minutes=settings.presence_idle_minutes,
        )
        auth_service = AuthService(
            persistence,
            mailer,
            PasswordHasher(rounds=settings.bcrypt_rounds),
            TokenIssuer(settings.jwt_secret, expire_days=settings.jwt_expire_days),
            otp_expire_minutes=settings.otp_expire_minutes,
        )

        container = ApplicationContainer(
            settings=settings,
            persistence=persistence,
            mailer=mailer,
            background=background,
            activity_tracker=activity_tracker,
            presence_sweeper=presence_sweeper,
            auth_service=auth_service,
            product_service=ProductService(persistence, persistence, persistence),
            comment_service=CommentService(persistence, persistence, persistence),
            user_service=UserService(persistence, persistence, persistence),
        )

        app.state.container = container  # type: ignore[attr-defined]

        await background.start()
        await presence_sweeper.start()
        logger.info("BulkBuy API ready (environment=%s, database=%s).", settings.environment, settings.database_path)

        try:
            yield
        finally:
            await presence_sweeper.stop()
            await background.stop()
            if persistence_override is None:
                persistence.close()

    return lifespan
