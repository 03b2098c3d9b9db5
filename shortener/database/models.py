"""Data models for the link store."""

from dataclasses import dataclass, asdict
from typing import Optional


@dataclass(frozen=True)
class Link:
    """A persisted short link. Never mutated after creation."""

    code: str
    original_url: str
    created_at: int
    expires_at: int

    def is_expired(self, now: int) -> bool:
        """Expiry is strict: a link is still live at ``now == expires_at``."""
        return now > self.expires_at

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "Link":
        """Create from dictionary."""
        return cls(
            code=data["code"],
            original_url=data["original_url"],
            created_at=int(data["created_at"]),
            expires_at=int(data["expires_at"]),
        )


@dataclass(frozen=True)
class Visit:
    """One recorded redirect against a link."""

    code: str
    visited_at: int
    ip: Optional[str] = None
    country: Optional[str] = None
    city: Optional[str] = None
    user_agent: Optional[str] = None
    referer: Optional[str] = None
    id: Optional[int] = None

    def to_row(self) -> dict:
        """Public representation used in analytics reports (no store id)."""
        return {
            "visited_at": self.visited_at,
            "ip": self.ip,
            "country": self.country,
            "city": self.city,
            "user_agent": self.user_agent,
            "referer": self.referer,
        }
