"""Feed handling module.

Provides functionality for:
- RSS/Atom entry normalization
- Feed document fetching
- Watermark-based feed synchronization
- Feed URL builders
"""

from .feed_parser import FeedEntry, FeedParseError, FeedParser
from .feed_sync import FeedSyncService
from .fetcher import FetchError, fetch_feed
from .sources import custom_feed, mediathek_feed, youtube_feed

__all__ = [
    "FeedEntry",
    "FeedParseError",
    "FeedParser",
    "FeedSyncService",
    "FetchError",
    "fetch_feed",
    "custom_feed",
    "mediathek_feed",
    "youtube_feed",
]
