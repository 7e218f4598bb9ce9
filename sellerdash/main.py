"""FastAPI application entry point."""

from contextlib import asynccontextmanager
from typing import AsyncGenerator
import logging

from fastapi import FastAPI, Request, status
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from sellerdash import __version__
from sellerdash.config import get_settings
from sellerdash.core.logging import configure_logging
from sellerdash.services.amazon.client import APIRequestError
from sellerdash.services.amazon.tokens import TokenExchangeError
from sellerdash.services.storage import PersistenceError

settings = get_settings()
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup/shutdown events."""
    configure_logging(settings.LOG_LEVEL)
    logger.info(f"Starting {settings.APP_NAME} ({settings.ENVIRONMENT})")

    yield

    from sellerdash.db.session import engine

    await engine.dispose()


async def api_request_error_handler(request: Request, exc: APIRequestError) -> JSONResponse:
    """Upstream SP-API failure, with the 403 diagnosis when it applies."""
    return JSONResponse(
        status_code=status.HTTP_502_BAD_GATEWAY,
        content={
            "message": "Amazon SP-API request failed",
            "status_code": exc.status_code,
            "diagnosis": exc.diagnosis,
            "hint": exc.hint,
            "error": exc.message,
        },
    )


async def token_exchange_error_handler(request: Request, exc: TokenExchangeError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_502_BAD_GATEWAY,
        content={"message": "Could not obtain an Amazon access token", **exc.to_dict()},
    )


async def persistence_error_handler(request: Request, exc: PersistenceError) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={"message": f"Database error during {exc.operation}", "error": exc.message},
    )


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title=settings.APP_NAME,
        version=__version__,
        description="Multi-account Amazon seller dashboard backed by SP-API",
        lifespan=lifespan,
        docs_url="/api/docs" if settings.DEBUG else None,
        redoc_url="/api/redoc" if settings.DEBUG else None,
    )

    # CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if settings.DEBUG else [],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(APIRequestError, api_request_error_handler)
    app.add_exception_handler(TokenExchangeError, token_exchange_error_handler)
    app.add_exception_handler(PersistenceError, persistence_error_handler)

    # Register API routers
    from sellerdash.api.v1.router import api_router

    app.include_router(api_router, prefix="/api/v1")

    return app


# Create the application instance
app = create_app()
