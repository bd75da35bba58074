from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from clearance import __version__
from clearance.api.errors import register_exception_handlers
from clearance.api.routers import clearance, health
from clearance.core.config import Settings, get_settings
from clearance.core.logger import setup_logger
from clearance.core.security import AuthConfig, TokenAuthenticator
from clearance.db.base import Base
from clearance.db.session import build_engine, build_session_factory
from clearance.services.certificates import ArtifactGenerator
from clearance.services.clearance import build_clearance_service
from clearance.services.dispatch import CollaboratorPool
from clearance.services.notifications import Notifier
from clearance.services.qrcodes import ScannableCodeGenerator


def create_app(
    settings: Optional[Settings] = None,
    *,
    notifier: Optional[Notifier] = None,
    generator: Optional[ArtifactGenerator] = None,
    code_generator: Optional[ScannableCodeGenerator] = None,
) -> FastAPI:
    """Build the application with explicitly constructed dependencies."""
    settings = settings or get_settings()

    setup_logger(settings)

    engine = build_engine(settings.database_url)
    if settings.create_tables:
        Base.metadata.create_all(engine)
    session_factory = build_session_factory(engine)

    pool = CollaboratorPool(
        timeout=settings.collaborator_timeout,
        max_workers=settings.collaborator_workers,
    )

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        yield
        pool.shutdown(wait=False)
        engine.dispose()

    app = FastAPI(
        title=settings.app_name,
        description="Departmental clearance workflow",
        version=__version__,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.debug else [],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.state.settings = settings
    app.state.session_factory = session_factory
    app.state.authenticator = TokenAuthenticator(AuthConfig.from_settings(settings))
    app.state.clearance = build_clearance_service(
        settings,
        session_factory,
        notifier=notifier,
        generator=generator,
        code_generator=code_generator,
        pool=pool,
    )

    register_exception_handlers(app)
    app.include_router(health.router)
    app.include_router(clearance.router, prefix="/api")

    return app
