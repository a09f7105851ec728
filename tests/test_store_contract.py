"""
Behavioral tests shared by every catalog store backend.

Each test runs twice: against the embedded SQLite store directly, and
through the HTTP client talking to an in-process server that wraps the same
kind of embedded store.
"""

import pytest
from conftest import T1, T2, T3
from fastapi.testclient import TestClient

from src.db.remote import HttpCatalogStore
from src.db.repository import SQLAlchemyCatalogStore, StoreError
from src.schemas import ActiveItem, AvailableItem, Feed
from src.web.app import create_app

FEED = Feed(url="https://example.com/feed.xml", title="Example Channel")


@pytest.fixture(params=["embedded", "remote"])
def catalog(request, tmp_path):
    """Yield a store of each backend kind over a fresh database."""
    embedded = SQLAlchemyCatalogStore(f"sqlite:///{tmp_path / 'catalog.db'}")
    if request.param == "embedded":
        yield embedded
    else:
        remote = HttpCatalogStore("http://testserver", client=TestClient(create_app(embedded)))
        yield remote
        remote.close()
    embedded.close()


def _available(n, publication, feed=FEED, duration_secs=None):
    return AvailableItem(
        url=f"https://example.com/video-{n}",
        title=f"Video {n}",
        publication=publication,
        feed=feed,
        duration_secs=duration_secs,
    )


class TestFeeds:
    """Feed subscription operations."""

    def test_add_and_list(self, catalog):
        assert catalog.add_feed(FEED) is True

        feeds = catalog.list_feeds()

        assert feeds == [FEED]
        assert feeds[0].last_update is None

    def test_add_is_insert_if_absent(self, catalog):
        """Subscribing twice keeps the first registration."""
        catalog.add_feed(FEED)

        assert catalog.add_feed(Feed(url=FEED.url, title="Renamed")) is False
        assert [feed.title for feed in catalog.list_feeds()] == ["Example Channel"]

    def test_set_last_update(self, catalog):
        catalog.add_feed(FEED)

        catalog.set_last_update(FEED.url, T2)

        assert catalog.list_feeds()[0].last_update == T2

    def test_set_last_update_unknown_feed_ignored(self, catalog):
        catalog.set_last_update("https://nowhere.example/feed", T2)

        assert catalog.list_feeds() == []

    def test_set_feed_title(self, catalog):
        catalog.add_feed(FEED)

        catalog.set_feed_title(FEED.url, "Better Title")

        assert catalog.list_feeds()[0].title == "Better Title"

    def test_remove_feed_cascades_to_available(self, catalog):
        """Unsubscribing deletes the feed's available items but not active ones."""
        catalog.add_feed(FEED)
        catalog.add_available(_available(1, T1))
        catalog.add_available(_available(2, T2))
        catalog.promote(_available(2, T2).url)

        assert catalog.remove_feed(FEED.url) is True

        assert catalog.list_feeds() == []
        assert catalog.list_available() == []
        assert [item.url for item in catalog.list_active()] == [_available(2, T2).url]

    def test_remove_unknown_feed(self, catalog):
        assert catalog.remove_feed(FEED.url) is False


class TestAvailable:
    """Available set operations."""

    def test_add_and_find(self, catalog):
        catalog.add_feed(FEED)
        item = _available(1, T1, duration_secs=300.0)

        assert catalog.add_available(item) is True

        found = catalog.find_available(item.url)
        assert found == item
        assert found.feed.title == FEED.title

    def test_find_missing(self, catalog):
        assert catalog.find_available("https://example.com/missing") is None

    def test_add_is_insert_if_absent(self, catalog):
        """A second add with the same url changes nothing."""
        catalog.add_feed(FEED)
        catalog.add_available(_available(1, T1))

        duplicate = _available(1, T3).model_copy(update={"title": "Other"})
        assert catalog.add_available(duplicate) is False

        found = catalog.find_available(duplicate.url)
        assert found.title == "Video 1"
        assert found.publication == T1

    def test_list_newest_first(self, catalog):
        catalog.add_feed(FEED)
        for n, publication in ((1, T2), (2, T1), (3, T3)):
            catalog.add_available(_available(n, publication))

        assert [item.publication for item in catalog.list_available()] == [T3, T2, T1]

    def test_add_for_unknown_feed_fails(self, catalog):
        """An available item must belong to a subscribed feed."""
        with pytest.raises(StoreError):
            catalog.add_available(_available(1, T1))

        assert catalog.list_available() == []

    def test_add_skips_url_already_active(self, catalog):
        """A url cannot be both available and active."""
        catalog.add_feed(FEED)
        item = _available(1, T1)
        catalog.add_active(ActiveItem(url=item.url, position_secs=12.5))

        assert catalog.add_available(item) is False
        assert catalog.list_available() == []

    def test_remove(self, catalog):
        catalog.add_feed(FEED)
        item = _available(1, T1)
        catalog.add_available(item)

        assert catalog.remove_available(item.url) is True
        assert catalog.remove_available(item.url) is False
        assert catalog.find_available(item.url) is None


class TestActive:
    """Active set operations."""

    def test_add_and_find(self, catalog):
        item = ActiveItem(url="https://example.com/a", title="A", position_secs=10.0)

        assert catalog.add_active(item) is True

        assert catalog.find_active(item.url) == item

    def test_add_is_insert_if_absent(self, catalog):
        catalog.add_active(ActiveItem(url="https://example.com/a", position_secs=10.0))

        assert catalog.add_active(ActiveItem(url="https://example.com/a", position_secs=99.0)) is False
        assert catalog.find_active("https://example.com/a").position_secs == 10.0

    def test_add_removes_available_row(self, catalog):
        """Activating a url directly takes it out of the available set."""
        catalog.add_feed(FEED)
        item = _available(1, T1)
        catalog.add_available(item)

        catalog.add_active(ActiveItem(url=item.url))

        assert catalog.find_available(item.url) is None
        assert catalog.find_active(item.url) is not None

    def test_list_sorted_by_url(self, catalog):
        for url in ("https://b.example/x", "https://a.example/x"):
            catalog.add_active(ActiveItem(url=url))

        assert [item.url for item in catalog.list_active()] == [
            "https://a.example/x",
            "https://b.example/x",
        ]

    def test_setters(self, catalog):
        url = "https://example.com/a"
        catalog.add_active(ActiveItem(url=url))

        catalog.set_position(url, 120.5)
        catalog.set_duration(url, 600.0)
        catalog.set_title(url, "Now titled")

        item = catalog.find_active(url)
        assert item.position_secs == 120.5
        assert item.duration_secs == 600.0
        assert item.title == "Now titled"

    def test_setters_ignore_unknown_url(self, catalog):
        catalog.set_position("https://example.com/none", 1.0)
        catalog.set_title("https://example.com/none", "x")

        assert catalog.list_active() == []

    def test_remove(self, catalog):
        catalog.add_active(ActiveItem(url="https://example.com/a"))

        assert catalog.remove_active("https://example.com/a") is True
        assert catalog.remove_active("https://example.com/a") is False


class TestPromote:
    """Promotion from the available set to the active set."""

    def test_promote_available_item(self, catalog):
        """Title, duration and feed title carry over and the position starts at zero."""
        catalog.add_feed(FEED)
        item = _available(1, T1, duration_secs=900.0)
        catalog.add_available(item)

        active = catalog.promote(item.url)

        assert active == ActiveItem(
            url=item.url,
            title="Video 1",
            position_secs=0.0,
            duration_secs=900.0,
            feed_title="Example Channel",
        )
        assert catalog.find_available(item.url) is None
        assert catalog.find_active(item.url) == active

    def test_promote_unknown_url(self, catalog):
        """A url from nowhere becomes a bare active record."""
        active = catalog.promote("https://example.com/direct")

        assert active.url == "https://example.com/direct"
        assert active.title is None
        assert active.position_secs == 0.0
        assert active.feed_title is None

    def test_promote_active_url_keeps_progress(self, catalog):
        """Promoting an already active url returns it unchanged."""
        url = "https://example.com/a"
        catalog.add_active(ActiveItem(url=url, title="A", position_secs=321.0))

        active = catalog.promote(url)

        assert active.position_secs == 321.0
        assert len(catalog.list_active()) == 1
