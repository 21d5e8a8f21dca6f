"""FastAPI application for the Newsroom API.

Use ``create_app`` to build the application. Everything configurable is
taken from the ``Settings`` value passed in (or loaded from the environment
once, here) and stored on ``app.state``.
"""

import asyncio
import uuid
from contextlib import asynccontextmanager
from typing import AsyncIterator

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from newsroom_api import __version__
from newsroom_api.api.models import error, fail
from newsroom_api.api.routes.accounts import router as accounts_router
from newsroom_api.api.routes.donations import router as donations_router
from newsroom_api.auth.gate import AuthGate
from newsroom_api.auth.tokens import BearerTokenFormat, IDTokenFormat
from newsroom_api.config import Settings
from newsroom_api.domain.exceptions import (
    GatewayError,
    NewsroomAPIError,
    Unauthenticated,
    ValidationError,
)
from newsroom_api.gateway.base import PaymentGateway
from newsroom_api.gateway.factory import GatewayFactory
from newsroom_api.infrastructure.database import (
    create_db_engine,
    create_session_factory,
    init_db,
)
from newsroom_api.infrastructure.mailer import MailServiceClient
from newsroom_api.logging_config import configure_logging

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Create the schema on startup and release pooled resources on shutdown."""
    settings: Settings = app.state.settings
    logger.info(
        "service_starting",
        version=__version__,
        payment_gateway=settings.payment_gateway,
    )
    init_db(app.state.engine)

    yield

    logger.info("service_stopping")
    await app.state.gateway.close()
    await app.state.mailer.close()
    app.state.engine.dispose()


def _register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(NewsroomAPIError)
    async def handle_api_error(request: Request, exc: NewsroomAPIError) -> JSONResponse:
        if isinstance(exc, ValidationError):
            return fail({exc.field: exc.message}, status_code=exc.status_code)
        if isinstance(exc, Unauthenticated):
            return fail(
                {"message": exc.message},
                status_code=exc.status_code,
                headers={"WWW-Authenticate": "Bearer"},
            )
        if isinstance(exc, GatewayError):
            return error(
                exc.message,
                status_code=exc.status_code,
                data={"order_number": exc.order_number, "code": exc.code},
            )
        if exc.status_code >= 500:
            logger.error("request_failed", error_type=type(exc).__name__, error=exc.message)
            return error(exc.message or "internal error", status_code=exc.status_code)
        return fail({"message": exc.message}, status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
        first = exc.errors()[0]
        # Drop the "path"/"query"/"body" prefix from the location
        location = [str(part) for part in first["loc"][1:]] or [str(part) for part in first["loc"]]
        return fail({".".join(location): first["msg"]}, status_code=400)

    @app.exception_handler(Exception)
    async def handle_unexpected(request: Request, exc: Exception) -> JSONResponse:
        logger.exception("unhandled_exception", path=request.url.path)
        return error("internal server error", status_code=500)


def create_app(
    settings: Settings | None = None,
    *,
    gateway: PaymentGateway | None = None,
    mailer: MailServiceClient | None = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Application settings; loaded from the environment if None
        gateway: Payment gateway override; built by GatewayFactory if None
        mailer: Mail service client override

    Returns:
        Configured FastAPI application
    """
    settings = settings or Settings()

    configure_logging(
        log_level=settings.log_level,
        format_as_json=settings.is_production,
        service_name=settings.service_name,
        environment=settings.environment,
    )

    app = FastAPI(
        title="Newsroom API",
        description="Accounts, identity tokens and donations for the newsroom site",
        version=__version__,
        docs_url="/docs" if settings.debug else None,  # Disable docs in production
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    bearer = BearerTokenFormat(settings.jwt)
    id_token = IDTokenFormat(settings.jwt)
    engine = create_db_engine(settings.database)

    app.state.settings = settings
    app.state.engine = engine
    app.state.session_factory = create_session_factory(engine)
    app.state.id_token_format = id_token
    app.state.auth_gate = AuthGate(bearer, id_token, cookie_name=settings.cookie.name)
    app.state.gateway = gateway or GatewayFactory.create_gateway(settings)
    app.state.mailer = mailer or MailServiceClient(
        base_url=settings.mail_service.base_url,
        timeout_seconds=settings.mail_service.timeout_seconds,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def request_context(request: Request, call_next):
        request_id = request.headers.get("X-Request-ID") or str(uuid.uuid4())
        with structlog.contextvars.bound_contextvars(request_id=request_id):
            try:
                response = await asyncio.wait_for(
                    call_next(request), timeout=settings.request_timeout_seconds
                )
            except asyncio.TimeoutError:
                logger.error(
                    "request_deadline_exceeded",
                    method=request.method,
                    path=request.url.path,
                    timeout_seconds=settings.request_timeout_seconds,
                )
                response = error("request timed out", status_code=503)
        response.headers["X-Request-ID"] = request_id
        return response

    _register_exception_handlers(app)

    app.include_router(accounts_router)
    app.include_router(donations_router)

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy", "service": settings.service_name}

    return app


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "newsroom_api.api.main:create_app",
        factory=True,
        host="0.0.0.0",
        port=8080,
        log_level="info",
    )
