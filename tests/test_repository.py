"""
Tests for the SQLAlchemy catalog store.

Behavior shared with the remote backend lives in test_store_contract.py;
these tests cover what only the embedded database does.
"""

from datetime import datetime, timedelta, timezone

import pytest
from conftest import T1, T2
from sqlalchemy import text
from sqlalchemy.exc import OperationalError

from src.db.factory import create_store
from src.db.remote import HttpCatalogStore
from src.db.repository import SQLAlchemyCatalogStore, StoreError
from src.schemas import ActiveItem, AvailableItem, Feed


class TestPersistence:
    """Tests for data surviving a reopen."""

    def test_catalog_survives_reopen(self, tmp_path):
        """Everything written is visible to a new store on the same file."""
        url = f"sqlite:///{tmp_path / 'catalog.db'}"
        first = SQLAlchemyCatalogStore(url)
        feed = Feed(url="https://example.com/feed.xml", title="Example")
        first.add_feed(feed)
        first.set_last_update(feed.url, T2)
        first.add_available(
            AvailableItem(url="https://example.com/1", title="One", publication=T1, feed=feed)
        )
        first.add_active(ActiveItem(url="https://example.com/2", position_secs=33.0))
        first.close()

        second = SQLAlchemyCatalogStore(url)
        try:
            assert second.list_feeds()[0].last_update == T2
            assert second.find_available("https://example.com/1").title == "One"
            assert second.find_active("https://example.com/2").position_secs == 33.0
        finally:
            second.close()

    def test_creates_missing_parent_directory(self, tmp_path):
        db_path = tmp_path / "nested" / "dir" / "catalog.db"

        store = SQLAlchemyCatalogStore(f"sqlite:///{db_path}")
        store.close()

        assert db_path.exists()


class TestTimestamps:
    """Tests for timestamp storage."""

    def test_stored_as_utc_text(self, store):
        """Offsets are normalized to UTC ISO 8601 in the table."""
        local = datetime(2024, 1, 1, 14, 0, tzinfo=timezone(timedelta(hours=2)))
        store.add_feed(Feed(url="https://example.com/feed.xml", title="Example", last_update=local))

        with store.engine.connect() as conn:
            raw = conn.execute(text("SELECT lastupdate FROM feed")).scalar_one()

        assert raw == "2024-01-01T12:00:00+00:00"
        assert store.list_feeds()[0].last_update == local

    def test_naive_timestamp_taken_as_utc(self, store):
        store.add_feed(Feed(url="https://example.com/feed.xml", title="Example"))

        store.set_last_update("https://example.com/feed.xml", datetime(2024, 1, 1, 12, 0))

        assert store.list_feeds()[0].last_update == datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)


class TestOrdering:
    """Tests for list ordering."""

    def test_feeds_sorted_by_title(self, store):
        store.add_feed(Feed(url="https://b.example/feed", title="Zeta"))
        store.add_feed(Feed(url="https://a.example/feed", title="Alpha"))

        assert [feed.title for feed in store.list_feeds()] == ["Alpha", "Zeta"]

    def test_available_spans_feeds(self, store):
        """Items of all feeds are interleaved by publication."""
        first = Feed(url="https://a.example/feed", title="A")
        second = Feed(url="https://b.example/feed", title="B")
        store.add_feed(first)
        store.add_feed(second)
        store.add_available(AvailableItem(url="https://a.example/1", title="a1", publication=T1, feed=first))
        store.add_available(AvailableItem(url="https://b.example/1", title="b1", publication=T2, feed=second))

        items = store.list_available()

        assert [item.url for item in items] == ["https://b.example/1", "https://a.example/1"]
        assert [item.feed.title for item in items] == ["B", "A"]


class TestErrors:
    """Tests for backend failure handling."""

    def test_database_error_becomes_store_error(self, store):
        """Driver exceptions never leak out of the store."""
        store.SessionLocal = lambda: _FailingSession()

        with pytest.raises(StoreError, match="Database operation failed"):
            store.list_feeds()


class _FailingSession:
    """Session double whose every query fails like a locked database."""

    def scalars(self, *args, **kwargs):
        raise OperationalError("SELECT", {}, Exception("database is locked"))

    def rollback(self):
        pass

    def close(self):
        pass


class TestFactory:
    """Tests for backend selection."""

    def test_database_url_creates_embedded_store(self, tmp_path):
        store = create_store(database_url=f"sqlite:///{tmp_path / 'x.db'}")
        try:
            assert isinstance(store, SQLAlchemyCatalogStore)
        finally:
            store.close()

    def test_store_url_creates_remote_store(self, tmp_path):
        store = create_store(
            database_url=f"sqlite:///{tmp_path / 'x.db'}",
            store_url="http://localhost:3000",
        )
        try:
            assert isinstance(store, HttpCatalogStore)
            assert store.base_url == "http://localhost:3000"
        finally:
            store.close()

    def test_store_url_must_be_http(self):
        with pytest.raises(ValueError):
            create_store(store_url="ftp://example.com")

    def test_env_database_url(self, tmp_path, monkeypatch):
        db_path = tmp_path / "env.db"
        monkeypatch.setenv("UVP_DATABASE_URL", f"sqlite:///{db_path}")

        store = create_store()
        try:
            assert store.database_url == f"sqlite:///{db_path}"
        finally:
            store.close()
