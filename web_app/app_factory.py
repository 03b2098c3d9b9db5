"""FastAPI application factory."""

import math
import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from shortener.analytics import AnalyticsAggregator
from shortener.common.logging_config import get_logger
from shortener.errors import RateLimitedError, ShortenerError
from shortener.rate_limiter import RateLimiter

from .api import api_router
from .web import web_router
from .middleware import ForwardedHeadersMiddleware, LoggingMiddleware


def _error(status_code: int, message: str, headers: dict = None) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": message}, headers=headers)


def register_exception_handlers(app: FastAPI, logger: logging.Logger) -> None:
    """Render every error as ``{"error": message}``."""
    
    @app.exception_handler(ShortenerError)
    async def shortener_error_handler(request: Request, exc: ShortenerError):
        headers = None
        if isinstance(exc, RateLimitedError) and exc.retry_after is not None:
            headers = {"Retry-After": str(max(1, math.ceil(exc.retry_after)))}
        return _error(exc.status_code, exc.message, headers)
    
    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(request: Request, exc: StarletteHTTPException):
        return _error(exc.status_code, str(exc.detail), getattr(exc, "headers", None))
    
    @app.exception_handler(RequestValidationError)
    async def validation_error_handler(request: Request, exc: RequestValidationError):
        errors = exc.errors()
        if errors:
            first = errors[0]
            location = ".".join(str(part) for part in first.get("loc", ()) if part != "body")
            message = f"Invalid request: {location}: {first.get('msg')}" if location else f"Invalid request: {first.get('msg')}"
        else:
            message = "Invalid request"
        return _error(400, message)
    
    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled error on {request.method} {request.url.path}: {exc}", exc_info=exc)
        return _error(500, "Internal server error")


def create_app(
    service_instance,
    config,
    rate_limiter: RateLimiter = None,
    analytics: AnalyticsAggregator = None,
    logger: logging.Logger = None,
) -> FastAPI:
    """Create and configure FastAPI application.
    
    Args:
        service_instance: Link service (may be None and set later by the lifespan)
        config: Configuration instance
        rate_limiter: Shared rate limiter (built from config if omitted)
        analytics: Analytics aggregator (built from the service if omitted)
        logger: Optional logger
        
    Returns:
        Configured FastAPI app
    """
    logger = logger or get_logger("web")
    
    app = FastAPI(
        title="URL Shortener",
        description="Short links with expiry, rate limiting and visit analytics",
        version="1.0.0",
        docs_url="/api/docs",
        redoc_url="/api/redoc",
        openapi_url="/api/openapi.json",
    )
    
    if rate_limiter is None:
        rate_limiter = RateLimiter(
            rate_limit=config.rate_limit,
            burst_size=config.rate_limit_burst,
        )
    if analytics is None and service_instance is not None:
        analytics = AnalyticsAggregator(service_instance)
    
    # Store instances in app state for access in routes
    app.state.service = service_instance
    app.state.analytics = analytics
    app.state.rate_limiter = rate_limiter
    app.state.config = config
    app.state.logger = logger
    
    register_exception_handlers(app, logger)
    
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"],
    )
    
    # Added last so it runs first: client IP is resolved before logging
    app.add_middleware(LoggingMiddleware, logger=logger)
    app.add_middleware(ForwardedHeadersMiddleware)
    
    app.include_router(api_router, tags=["API"])
    # Catch-all /{code} must come after every fixed path
    app.include_router(web_router, tags=["Redirect"])
    
    return app
