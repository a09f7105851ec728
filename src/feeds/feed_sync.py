"""Feed synchronization service.

Polls every subscribed feed and merges entries newer than the feed's
watermark into the available set of the catalog.
"""

import asyncio
import logging
from typing import List, Optional, Sequence, Tuple

import aiohttp

from ..db.repository import CatalogStoreInterface
from ..schemas import AvailableItem, Feed, RefreshResult
from .feed_parser import FeedEntry, FeedParseError, FeedParser
from .fetcher import DEFAULT_FETCH_TIMEOUT, FetchError, create_session, fetch_feed

logger = logging.getLogger(__name__)


class FeedSyncService:
    """Service for merging polled feeds into the catalog.

    Each feed carries a watermark: the publication time of the newest entry
    already merged. Only entries strictly newer than the watermark are
    offered to the store, and the watermark only ever moves forward, so a
    refresh can be repeated or interrupted at any point without duplicating
    or losing items.

    Two distinct entries published at exactly the watermark instant are a
    known blind spot: once one of them has been merged and the watermark set
    to its time, the other is never considered.

    Example:
        sync_service = FeedSyncService(store)
        result = sync_service.refresh()
        print(f"New items: {result.new_items}")
    """

    def __init__(
        self,
        store: CatalogStoreInterface,
        fetch_timeout: float = DEFAULT_FETCH_TIMEOUT,
        feed_parser: Optional[FeedParser] = None,
    ):
        """
        Create a FeedSyncService that merges feeds into the given store.

        Parameters:
            store (CatalogStoreInterface): Catalog to read feeds from and write items to.
            fetch_timeout (float): Seconds before a single feed fetch is abandoned.
            feed_parser (Optional[FeedParser]): Parser for fetched documents.
        """
        self.store = store
        self.fetch_timeout = fetch_timeout
        self.feed_parser = feed_parser or FeedParser()

    def refresh(self) -> RefreshResult:
        """
        Fetch all feeds concurrently, then merge them one after another.

        A feed that cannot be fetched or parsed is logged, reported in the
        result and skipped; its watermark is left alone and other feeds are
        unaffected. Store failures abort the pass and propagate.

        Returns:
            RefreshResult: Merged feed urls, failed feed urls with their errors, and the number of items created.
        """
        feeds = self.store.list_feeds()
        result = RefreshResult()

        if not feeds:
            logger.info("No feeds to refresh")
            return result

        fetched = asyncio.run(self._fetch_all(feeds))

        for feed, (entries, error) in zip(feeds, fetched):
            if error is not None:
                logger.warning(f"Skipping feed {feed.title}: {error}")
                result.failed[feed.url] = error
                continue

            result.new_items += self.merge_entries(feed, entries)
            result.refreshed.append(feed.url)

        logger.info(
            f"Refresh complete: {len(result.refreshed)} refreshed, "
            f"{len(result.failed)} failed, "
            f"{result.new_items} new items"
        )
        return result

    def merge_entries(self, feed: Feed, entries: Sequence[FeedEntry]) -> int:
        """
        Merge one feed's entries into the available set and advance its watermark.

        Parameters:
            feed (Feed): The feed as snapshotted before fetching, including its watermark.
            entries (Sequence[FeedEntry]): Normalized entries in any order.

        Returns:
            int: Number of available items actually created.
        """
        watermark = feed.last_update
        newest_seen = None
        created = 0

        for entry in entries:
            # Equal to the watermark means already merged
            if watermark is not None and entry.publication <= watermark:
                continue

            item = AvailableItem(
                url=entry.url,
                title=entry.title,
                publication=entry.publication,
                duration_secs=entry.duration_secs,
                feed=feed,
            )
            if self.store.add_available(item):
                created += 1
                logger.debug(f"Added item: {entry.title}")

            if newest_seen is None or entry.publication > newest_seen:
                newest_seen = entry.publication

        if newest_seen is not None:
            new_watermark = newest_seen if watermark is None else max(watermark, newest_seen)
            self.store.set_last_update(feed.url, new_watermark)

        if created:
            logger.info(f"Merged feed '{feed.title}': {created} new items")
        return created

    async def _fetch_all(
        self, feeds: List[Feed]
    ) -> List[Tuple[List[FeedEntry], Optional[str]]]:
        async with create_session(self.fetch_timeout) as session:
            return await asyncio.gather(
                *(self._fetch_entries(session, feed) for feed in feeds)
            )

    async def _fetch_entries(
        self, session: aiohttp.ClientSession, feed: Feed
    ) -> Tuple[List[FeedEntry], Optional[str]]:
        """Fetch and normalize one feed, returning (entries, error message)."""
        try:
            document = await fetch_feed(session, feed.url)
            return self.feed_parser.parse_entries(document), None
        except FetchError as e:
            logger.error(f"Failed to fetch feed {feed.title}: {e.reason}")
            return [], str(e)
        except FeedParseError as e:
            logger.error(f"Failed to parse feed {feed.title}: {e}")
            return [], str(e)
