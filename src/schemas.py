from datetime import datetime, timezone
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator


def ensure_aware(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive timestamps as UTC so comparisons never mix naive and aware values."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class Feed(BaseModel):
    """A subscription source."""

    url: str = Field(..., min_length=1, description="Feed URL (unique key)")
    title: str = Field(..., description="Display title")
    last_update: Optional[datetime] = Field(
        default=None,
        description="Publication time of the newest entry already merged",
    )

    @field_validator("last_update")
    @classmethod
    def aware_last_update(cls, value):
        return ensure_aware(value)


class AvailableItem(BaseModel):
    """A catalog entry that has not been watched yet."""

    url: str = Field(..., min_length=1)
    title: str
    publication: datetime
    feed: Feed
    duration_secs: Optional[float] = Field(default=None, description="Length reported by the feed, if any")

    @field_validator("publication")
    @classmethod
    def aware_publication(cls, value):
        return ensure_aware(value)


class ActiveItem(BaseModel):
    """An item that is being (or about to be) watched."""

    url: str = Field(..., min_length=1)
    title: Optional[str] = None
    position_secs: float = Field(default=0.0, ge=0.0)
    duration_secs: Optional[float] = None
    feed_title: Optional[str] = None


class RefreshResult(BaseModel):
    """Outcome of one refresh pass over all feeds."""

    refreshed: List[str] = Field(default_factory=list, description="Feeds merged this pass")
    failed: Dict[str, str] = Field(default_factory=dict, description="Feed url -> error message")
    new_items: int = Field(default=0, description="Available rows actually created")
