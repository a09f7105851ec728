"""RSS/Atom feed parser producing normalized entries.

Uses feedparser library to handle the various feed formats and reduces each
entry to the handful of fields the catalog needs.
"""

import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import List, Optional, Union

import feedparser

logger = logging.getLogger(__name__)


class FeedParseError(Exception):
    """The document is not a parseable RSS or Atom feed."""


@dataclass
class FeedEntry:
    """Normalized entry from a feed document."""

    title: str
    url: str
    publication: datetime
    duration_secs: Optional[float] = None


def parse_publication(value: Optional[str]) -> Optional[datetime]:
    """Parse a publication timestamp.

    Tries the RFC 2822 format used by RSS first, then ISO 8601 as used by
    Atom. Timestamps without an offset are taken as UTC.

    Args:
        value: Raw timestamp string

    Returns:
        Timezone-aware datetime, or None if neither format matches
    """
    if not value:
        return None

    value = value.strip()
    parsed = None
    try:
        parsed = parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError):
        pass

    if parsed is None:
        try:
            parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def parse_duration(value) -> Optional[float]:
    """Parse duration string into seconds.

    Handles various formats:
    - Seconds: "3600"
    - MM:SS: "60:00"
    - HH:MM:SS: "1:00:00"

    Args:
        value: Duration string

    Returns:
        Duration in seconds or None
    """
    if not value:
        return None

    value_str = str(value).strip()

    # Try parsing as plain seconds
    try:
        return float(value_str)
    except ValueError:
        pass

    # Try parsing as HH:MM:SS or MM:SS
    parts = value_str.split(":")
    try:
        if len(parts) == 2:
            return int(parts[0]) * 60 + float(parts[1])
        elif len(parts) == 3:
            return int(parts[0]) * 3600 + int(parts[1]) * 60 + float(parts[2])
    except (ValueError, TypeError):
        pass

    return None


class FeedParser:
    """Parser for RSS/Atom feeds of episodic content.

    Example:
        parser = FeedParser()
        for entry in parser.parse_entries(document):
            print(f"{entry.publication:%Y-%m-%d} {entry.title}")
    """

    def parse_entries(self, document: Union[bytes, str]) -> List[FeedEntry]:
        """Parse a feed document into normalized entries.

        Entries without a title, url or parseable publication time are
        dropped; partial feeds are common and must not fail as a whole.
        The returned order is whatever the document declares and callers
        must not rely on it.

        Args:
            document: Raw RSS or Atom document

        Returns:
            List of FeedEntry

        Raises:
            FeedParseError: If the document is not a feed at all
        """
        feed = feedparser.parse(document)

        if feed.bozo and not feed.entries and not feed.feed:
            raise FeedParseError(f"Failed to parse feed: {feed.get('bozo_exception')}")

        if feed.bozo:
            logger.warning(f"Feed parsing warning: {feed.get('bozo_exception')}")

        entries = []
        for raw in feed.entries:
            entry = self._parse_entry(raw)
            if entry:
                entries.append(entry)

        logger.debug(f"Parsed {len(entries)} of {len(feed.entries)} entries")
        return entries

    def _parse_entry(self, raw: feedparser.FeedParserDict) -> Optional[FeedEntry]:
        """Normalize one feedparser entry, or return None if a required field is missing."""
        title = raw.get("title")
        url = self._extract_url(raw)
        publication = parse_publication(raw.get("published"))

        if not title or not url or publication is None:
            logger.debug(f"Skipping incomplete entry: {title or url or '<untitled>'}")
            return None

        return FeedEntry(
            title=title,
            url=url,
            publication=publication,
            duration_secs=self._extract_duration(raw),
        )

    def _extract_url(self, raw: feedparser.FeedParserDict) -> Optional[str]:
        """Media enclosure first, then the entry link."""
        for enclosure in raw.get("enclosures", []):
            url = enclosure.get("href") or enclosure.get("url")
            if url:
                return url

        if raw.get("link"):
            return raw.link

        for link in raw.get("links", []):
            if link.get("href"):
                return link.href

        return None

    def _extract_duration(self, raw: feedparser.FeedParserDict) -> Optional[float]:
        duration = parse_duration(raw.get("itunes_duration"))
        if duration is not None:
            return duration

        for media in raw.get("media_content", []):
            duration = parse_duration(media.get("duration"))
            if duration is not None:
                return duration

        return None
