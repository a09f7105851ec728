"""SQLAlchemy ORM models for the feed catalog."""

from datetime import datetime, timezone
from typing import List, Optional

from sqlalchemy import Float, ForeignKey, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship
from sqlalchemy.types import TypeDecorator


class IsoTimestamp(TypeDecorator):
    """Timezone-aware datetime persisted as ISO 8601 text.

    Naive values are taken as UTC on the way in, so every stored timestamp
    carries an explicit offset and compares correctly after a round trip.
    """

    impl = Text
    cache_ok = True

    def process_bind_param(self, value: Optional[datetime], dialect) -> Optional[str]:
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc).isoformat()

    def process_result_value(self, value: Optional[str], dialect) -> Optional[datetime]:
        if value is None:
            return None
        parsed = datetime.fromisoformat(value)
        if parsed.tzinfo is None:
            parsed = parsed.replace(tzinfo=timezone.utc)
        return parsed


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class FeedRecord(Base):
    """Subscription source and its merge watermark."""

    __tablename__ = "feed"

    url: Mapped[str] = mapped_column("feedurl", Text, primary_key=True)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    last_update: Mapped[Optional[datetime]] = mapped_column("lastupdate", IsoTimestamp)

    # Unsubscribing drops the feed's pending items with it
    available: Mapped[List["AvailableRecord"]] = relationship(
        "AvailableRecord", back_populates="feed", cascade="all, delete-orphan"
    )

    def __repr__(self) -> str:
        return f"<FeedRecord(url={self.url!r}, title={self.title!r})>"


class AvailableRecord(Base):
    """Catalog entry discovered from a feed and not yet watched."""

    __tablename__ = "available"

    url: Mapped[str] = mapped_column(Text, primary_key=True)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    publication: Mapped[datetime] = mapped_column(IsoTimestamp, nullable=False)
    duration_secs: Mapped[Optional[float]] = mapped_column(Float)
    feed_url: Mapped[str] = mapped_column(
        "feedurl", Text, ForeignKey("feed.feedurl", ondelete="CASCADE"), nullable=False
    )

    feed: Mapped["FeedRecord"] = relationship("FeedRecord", back_populates="available")

    def __repr__(self) -> str:
        return f"<AvailableRecord(url={self.url!r}, title={self.title!r})>"


class ActiveRecord(Base):
    """Item being watched, with its resume position.

    No foreign key to ``feed``: active items outlive the feed they came from
    and may not come from a feed at all.
    """

    __tablename__ = "active"

    url: Mapped[str] = mapped_column(Text, primary_key=True)
    title: Mapped[Optional[str]] = mapped_column(Text)
    position_secs: Mapped[float] = mapped_column(Float, nullable=False, default=0.0)
    duration_secs: Mapped[Optional[float]] = mapped_column(Float)
    feed_title: Mapped[Optional[str]] = mapped_column(Text)

    def __repr__(self) -> str:
        return f"<ActiveRecord(url={self.url!r}, position_secs={self.position_secs})>"
