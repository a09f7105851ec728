"""
Pytest configuration and fixtures for uvp tests.

This module runs before any test imports, setting up the test environment.
Environment variables are explicitly cleared so that a developer's own
configuration (or .env file) never points tests at a real catalog.
"""

import os
from datetime import datetime, timedelta, timezone

import pytest

for _name in ("UVP_STORE_URL", "UVP_DATABASE_URL", "UVP_FETCH_TIMEOUT", "UVP_MPV_BINARY"):
    os.environ.pop(_name, None)

from src.db.repository import SQLAlchemyCatalogStore  # noqa: E402
from src.feeds.feed_parser import FeedEntry  # noqa: E402
from src.schemas import Feed  # noqa: E402

# Base instant for generated entries; T1 < T2 < T3
T0 = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
T1 = T0 + timedelta(hours=1)
T2 = T0 + timedelta(hours=2)
T3 = T0 + timedelta(hours=3)


def make_entry(n: int, publication: datetime, feed_url: str = "https://example.com/feed.xml") -> FeedEntry:
    """Build a normalized entry with a url derived from `feed_url` and `n`."""
    return FeedEntry(
        title=f"Video {n}",
        url=f"{feed_url}#video-{n}",
        publication=publication,
    )


@pytest.fixture
def store(tmp_path):
    """
    Create a temporary SQLite-backed catalog store for tests.

    Yields the store and closes it when the fixture is torn down.
    """
    db_path = tmp_path / "test.db"
    repo = SQLAlchemyCatalogStore(f"sqlite:///{db_path}")
    yield repo
    repo.close()


@pytest.fixture
def sample_feed(store):
    """Subscribe and return a feed with no watermark."""
    feed = Feed(url="https://example.com/feed.xml", title="Example Channel")
    store.add_feed(feed)
    return feed
