import logging
from fastapi import FastAPI
from starlette.middleware.cors import CORSMiddleware
from peer_support.api.v1.api import api_router
from peer_support.core.config import settings
from peer_support.core.errors import NotFoundError, TransportError
from fastapi.exceptions import RequestValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException
from peer_support.core.exception_handlers import (
    http_exception_handler,
    validation_exception_handler,
    not_found_handler,
    transport_error_handler,
)
from peer_support.core.rate_limit import limiter
from peer_support.schemas.response import ValidationErrorResponse, HTTPErrorResponse
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded

from contextlib import asynccontextmanager

logger = logging.getLogger(__name__)

def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(NotFoundError, not_found_handler)
    app.add_exception_handler(TransportError, transport_error_handler)
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Create tables and built-in groups on startup
    from peer_support.db.session import engine, AsyncSessionLocal
    from peer_support.db.init_db import create_tables, seed_defaults

    await create_tables(engine)
    async with AsyncSessionLocal() as session:
        await seed_defaults(session)

    logger.info(f"{settings.PROJECT_NAME} started, docs at {settings.API_V1_STR}/openapi.json")
    yield
    await engine.dispose()

app = FastAPI(
    title=settings.PROJECT_NAME,
    openapi_url=f"{settings.API_V1_STR}/openapi.json",
    lifespan=lifespan,
    responses={
        400: {"model": ValidationErrorResponse, "description": "Validation Error"},
        401: {"model": HTTPErrorResponse, "description": "Unauthorized"},
        403: {"model": HTTPErrorResponse, "description": "Forbidden"},
        404: {"model": HTTPErrorResponse, "description": "Not Found"},
        503: {"model": HTTPErrorResponse, "description": "Message store unavailable"},
    }
)

app.state.limiter = limiter
register_exception_handlers(app)

# Set all CORS enabled origins
if settings.BACKEND_CORS_ORIGINS:
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[str(origin) for origin in settings.BACKEND_CORS_ORIGINS],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

app.include_router(api_router, prefix=settings.API_V1_STR)
