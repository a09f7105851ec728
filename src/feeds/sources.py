"""Feed URL builders for the services uvp knows about."""

from typing import Optional
from urllib.parse import quote_plus

from ..schemas import Feed

YOUTUBE_FEED_URL = "https://www.youtube.com/feeds/videos.xml"
MEDIATHEK_FEED_URL = "https://mediathekviewweb.de/feed"


def youtube_feed(channel_name: str, channel_id: Optional[str] = None) -> Feed:
    """Feed for a YouTube channel, by channel id when known, else by user name."""
    if channel_id:
        url = f"{YOUTUBE_FEED_URL}?channel_id={quote_plus(channel_id)}"
    else:
        url = f"{YOUTUBE_FEED_URL}?user={quote_plus(channel_name)}"
    return Feed(url=url, title=channel_name)


def mediathek_feed(query: str, title: Optional[str] = None) -> Feed:
    """Feed for a query against the German public broadcasters' media library."""
    return Feed(url=f"{MEDIATHEK_FEED_URL}?query={quote_plus(query)}", title=title or query)


def custom_feed(url: str, title: Optional[str] = None) -> Feed:
    return Feed(url=url, title=title or url)
