"""API routes implementation."""

from fastapi import APIRouter, Depends, Request
from datetime import datetime, timezone

from .schemas import (
    ShortenRequest,
    ShortenResponse,
    AnalyticsResponse,
    HealthResponse,
    ErrorResponse,
)
from .dependencies import require_auth, enforce_rate_limit
from shortener.common.url_builder import short_url_for_request

router = APIRouter()


async def _shorten(request: Request, body: ShortenRequest) -> ShortenResponse:
    service = request.app.state.service
    config = request.app.state.config
    
    link = await service.create(
        url=body.url,
        custom_code=body.code,
        ttl=body.ttl,
    )
    
    short_url = short_url_for_request(
        link.code,
        headers=dict(request.headers),
        fallback_base_url=config.base_url,
        path_prefix=config.path_prefix,
    )
    
    return ShortenResponse(
        code=link.code,
        short_url=short_url,
        expires_at=link.expires_at,
    )


@router.post(
    "/shorten",
    response_model=ShortenResponse,
    dependencies=[Depends(require_auth), Depends(enforce_rate_limit)],
    responses={
        400: {"model": ErrorResponse, "description": "Invalid URL, code or TTL"},
        401: {"model": ErrorResponse, "description": "Invalid or missing token"},
        409: {"model": ErrorResponse, "description": "Code already exists"},
        429: {"model": ErrorResponse, "description": "Rate limit exceeded"},
        500: {"model": ErrorResponse, "description": "Internal server error"},
    },
    summary="Create short URL (authenticated)",
    description="Create a short link. Requires the bearer token when one is configured.",
)
async def shorten_url(request: Request, body: ShortenRequest):
    """Create a short link (authenticated)."""
    return await _shorten(request, body)


@router.post(
    "/api/shorten",
    response_model=ShortenResponse,
    dependencies=[Depends(enforce_rate_limit)],
    responses={
        400: {"model": ErrorResponse, "description": "Invalid URL, code or TTL"},
        409: {"model": ErrorResponse, "description": "Code already exists"},
        429: {"model": ErrorResponse, "description": "Rate limit exceeded"},
        500: {"model": ErrorResponse, "description": "Internal server error"},
    },
    summary="Create short URL (public)",
    description="Create a short link without authentication. Rate limited per client IP.",
)
async def shorten_url_public(request: Request, body: ShortenRequest):
    """Create a short link (public, rate limited)."""
    return await _shorten(request, body)


@router.get(
    "/analytics/{code}",
    response_model=AnalyticsResponse,
    dependencies=[Depends(require_auth)],
    responses={
        401: {"model": ErrorResponse, "description": "Invalid or missing token"},
        404: {"model": ErrorResponse, "description": "Short link not found or expired"},
    },
    summary="Link analytics",
    description="Visit statistics: totals, countries, referers, daily counts and recent visits.",
)
async def link_analytics(request: Request, code: str):
    """Get visit statistics for a short link."""
    analytics = request.app.state.analytics
    
    report = await analytics.summarize(code)
    
    return AnalyticsResponse(**report.to_dict())


@router.get(
    "/api/health",
    response_model=HealthResponse,
    summary="Health check",
    description="Check if the service is healthy.",
)
async def health_check(request: Request):
    """Health check endpoint for load balancers and monitoring."""
    service = request.app.state.service
    
    health = await service.health_check()
    
    return HealthResponse(
        status="healthy" if health["overall"] else "unhealthy",
        database="healthy" if health["database"] else "unhealthy",
        cache="healthy" if health["cache"] else "unhealthy",
        timestamp=datetime.now(timezone.utc),
    )
