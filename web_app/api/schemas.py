"""Pydantic schemas for API requests and responses."""

from pydantic import BaseModel, Field
from typing import List, Optional
from datetime import datetime


class ShortenRequest(BaseModel):
    """Request to shorten a URL."""
    
    url: str = Field(..., description="The URL to shorten")
    code: Optional[str] = Field(None, description="Optional custom short code (1-32 chars, [A-Za-z0-9_-])")
    ttl: Optional[str] = Field(None, description="Optional TTL such as 5m, 1h, 3d (5 minutes to 30 days)")
    
    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "url": "https://example.com/very/long/path/to/resource",
                },
                {
                    "url": "https://github.com/user/repo",
                    "code": "myrepo",
                    "ttl": "3d"
                }
            ]
        }
    }


class ShortenResponse(BaseModel):
    """Response after shortening a URL."""
    
    code: str = Field(..., description="The short code")
    short_url: str = Field(..., description="The complete short URL")
    expires_at: int = Field(..., description="Expiration time (Unix seconds)")
    
    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "code": "aB3dE9x",
                    "short_url": "https://short.link/aB3dE9x",
                    "expires_at": 1760000000
                }
            ]
        }
    }


class CountStat(BaseModel):
    """Visit count for one country or referer value."""
    
    value: Optional[str] = None
    count: int


class DailyStat(BaseModel):
    """Visit count for one UTC day."""
    
    date: str = Field(..., description="YYYY-MM-DD")
    count: int


class VisitRow(BaseModel):
    """A single recorded visit."""
    
    visited_at: int
    ip: Optional[str] = None
    country: Optional[str] = None
    city: Optional[str] = None
    user_agent: Optional[str] = None
    referer: Optional[str] = None


class AnalyticsResponse(BaseModel):
    """Visit statistics for a short link."""
    
    code: str
    original_url: str
    created_at: int
    expires_at: int
    total_visits: int
    countries: List[CountStat]
    referers: List[CountStat]
    daily: List[DailyStat]
    recent_visits: List[VisitRow]


class HealthResponse(BaseModel):
    """Health check response."""
    
    status: str = Field(..., description="Overall status")
    database: str = Field(..., description="Database status")
    cache: str = Field(..., description="Cache status")
    timestamp: datetime = Field(..., description="Check timestamp")


class ErrorResponse(BaseModel):
    """Error response."""
    
    error: str = Field(..., description="Error message")
