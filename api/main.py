"""
FastAPI main application for the Library API.
"""

import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

import structlog
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware

from library.database import LibraryDatabase
from library.property_mapping import PropertyMappingService
from library.repository import LibraryRepository
from utilities.config import LibraryConfig, config as library_config
from utilities.logger import bind_request_context, setup_logging

from api.caching import HttpCacheHeaders
from api.config import APIConfig, config as api_config
from api.mapping import ResourceMapper
from api.models import ErrorResponse, HealthResponse
from api.rate_limit import IpRateLimiter, parse_rules
from api.routers import routers

# Setup logging
logger = structlog.get_logger(__name__)

UNEXPECTED_FAULT_MESSAGE = "An unexpected fault happened. Try again later."


def create_app(settings: Optional[APIConfig] = None,
               library_settings: Optional[LibraryConfig] = None) -> FastAPI:
    """
    Build the application.

    The mapper and property mapping service are created here; the database
    connection and repository are created by the lifespan handler.
    """
    settings = settings or api_config
    library_settings = library_settings or library_config

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """Application lifespan manager."""
        setup_logging(
            log_level=library_settings.log_level,
            log_format=library_settings.log_format,
            log_file=library_settings.get_log_file_path(),
            debug=library_settings.debug
        )
        logger.info("Starting Library API")

        database = LibraryDatabase(
            connection_url=library_settings.mongodb_url,
            database_name=library_settings.mongodb_database,
            authors_collection=library_settings.authors_collection,
            books_collection=library_settings.books_collection
        )
        try:
            await database.connect()
            if library_settings.seed_on_startup:
                await database.ensure_seed_data()
        except Exception as e:
            logger.error("Failed to connect to database", error=str(e))
            raise

        app.state.database = database
        app.state.repository = LibraryRepository(
            database.authors, database.books, app.state.property_mapping_service
        )

        yield

        logger.info("Shutting down Library API")
        await database.disconnect()

    app = FastAPI(
        title=settings.api_title,
        description="""
    A REST API for browsing and managing authors and their books.

    ## Features

    * **Authors**: Paging, filtering by genre, searching, sorting and data shaping
    * **Books**: Create, read, update (PUT and JSON Patch upserts) and delete
    * **Content negotiation**: JSON, XML and `application/vnd.marvin.hateoas+json`
    * **Caching**: ETag, Last-Modified and Cache-Control headers, conditional requests
    * **Rate Limiting**: Per client IP, 1000 requests per 5 minutes and 200 per 10 seconds
    """,
        version=settings.api_version,
        license_info={
            "name": "MIT",
            "url": "https://opensource.org/licenses/MIT",
        },
        lifespan=lifespan
    )

    app.state.settings = settings
    app.state.mapper = ResourceMapper()
    app.state.property_mapping_service = PropertyMappingService()

    if settings.cache_enabled:
        app.state.cache_headers = HttpCacheHeaders(
            max_age=settings.cache_max_age,
            must_revalidate=settings.cache_must_revalidate,
            max_entries=settings.cache_max_entries
        )
        app.add_middleware(BaseHTTPMiddleware, dispatch=app.state.cache_headers)

    if settings.rate_limit_enabled:
        app.state.rate_limiter = IpRateLimiter(parse_rules(settings.rate_limit_rules))
        app.add_middleware(BaseHTTPMiddleware, dispatch=app.state.rate_limiter)

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Bind the request to every log event and log how it ended."""
        request_id = request.headers.get("x-request-id") or uuid4().hex
        bind_request_context(
            request_id=request_id,
            method=request.method,
            path=request.url.path,
            client_ip=request.client.host if request.client else None,
        )
        start_time = time.perf_counter()

        response = await call_next(request)

        logger.info(
            "Request handled",
            status_code=response.status_code,
            duration_ms=round((time.perf_counter() - start_time) * 1000, 2),
        )
        response.headers["X-Request-ID"] = request_id
        return response

    # Add CORS middleware
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=settings.cors_allow_credentials,
        allow_methods=settings.cors_allow_methods,
        allow_headers=settings.cors_allow_headers,
        expose_headers=["X-Pagination", "Location", "ETag", "X-Request-ID"],
    )

    # Exception handlers
    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(request: Request, exc: StarletteHTTPException):
        """Handle HTTP exceptions."""
        return JSONResponse(
            status_code=exc.status_code,
            content=ErrorResponse(
                error=str(exc.detail),
                status_code=exc.status_code
            ).model_dump(by_alias=True),
            headers=exc.headers
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError):
        """Handle invalid request bodies and parameters."""
        errors = [
            {"loc": list(error.get("loc", ())), "msg": error.get("msg"), "type": error.get("type")}
            for error in exc.errors()
        ]
        content = ErrorResponse(
            error="Validation failed",
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY
        ).model_dump(by_alias=True)
        content["errors"] = errors
        return JSONResponse(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, content=content)

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        """Handle general exceptions."""
        logger.error("Unhandled exception", error=str(exc), path=request.url.path, exc_info=exc)
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=ErrorResponse(
                error=UNEXPECTED_FAULT_MESSAGE,
                detail=str(exc) if settings.debug else None,
                status_code=status.HTTP_500_INTERNAL_SERVER_ERROR
            ).model_dump(by_alias=True)
        )

    # Health check endpoint
    @app.get("/health", response_model=HealthResponse, tags=["Health"])
    async def health_check(request: Request):
        """Health check endpoint."""
        db_status = "unavailable"
        database = getattr(request.app.state, "database", None)
        if database:
            health_info = await database.health_check()
            db_status = health_info.get("status", "unknown")

        return HealthResponse(
            status="healthy" if db_status == "healthy" else "degraded",
            timestamp=datetime.now(timezone.utc),
            version=settings.api_version,
            database_status=db_status
        )

    for router in routers:
        app.include_router(router, prefix=settings.api_prefix)

    return app


# Create FastAPI application
app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "api.main:app",
        host=api_config.host,
        port=api_config.port,
        reload=True,
        log_level="info"
    )
