"""Repository pattern implementation for the feed catalog.

Provides the abstract catalog store interface shared by every backend and
the SQLAlchemy implementation used for the local embedded database.
"""

import logging
import os
import threading
from abc import ABC, abstractmethod
from contextlib import contextmanager
from datetime import datetime
from typing import Iterator, List, Optional

from sqlalchemy import create_engine, delete, select
from sqlalchemy.engine import make_url
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, joinedload, sessionmaker

from ..schemas import ActiveItem, AvailableItem, Feed, RefreshResult
from .models import ActiveRecord, AvailableRecord, Base, FeedRecord

logger = logging.getLogger(__name__)


class StoreError(Exception):
    """A catalog operation failed in the backend (database or remote service)."""


class CatalogStoreInterface(ABC):
    """Abstract interface for catalog persistence.

    Every backend must behave identically from the caller's point of view.
    Inserts are insert-if-absent: adding a url that is already present is a
    no-op reported through the boolean return value, never an error.
    """

    # Per-feed fetch timeout for refresh; None uses the fetcher default
    fetch_timeout: Optional[float] = None

    # --- Feed Operations ---

    @abstractmethod
    def list_feeds(self) -> List[Feed]:
        """Return every subscribed feed with its current watermark."""
        pass

    @abstractmethod
    def add_feed(self, feed: Feed) -> bool:
        """
        Subscribe to a feed.

        Returns:
            bool: `True` if the feed was created, `False` if its url was already subscribed.
        """
        pass

    @abstractmethod
    def remove_feed(self, url: str) -> bool:
        """
        Unsubscribe from a feed.

        The feed's available items are deleted with it. Active items are kept,
        they only carry the feed title.

        Returns:
            bool: `True` if a feed was removed, `False` if no feed has this url.
        """
        pass

    @abstractmethod
    def set_last_update(self, url: str, when: datetime) -> None:
        """Overwrite a feed's watermark. Unknown urls are ignored."""
        pass

    @abstractmethod
    def set_feed_title(self, url: str, title: str) -> None:
        """Rename a feed. Unknown urls are ignored."""
        pass

    # --- Available Operations ---

    @abstractmethod
    def list_available(self) -> List[AvailableItem]:
        """Return all available items, newest publication first."""
        pass

    @abstractmethod
    def find_available(self, url: str) -> Optional[AvailableItem]:
        pass

    @abstractmethod
    def remove_available(self, url: str) -> bool:
        pass

    @abstractmethod
    def add_available(self, item: AvailableItem) -> bool:
        """
        Insert an item into the available set unless its url is already known.

        A url that is already available or already active is left untouched.

        Returns:
            bool: `True` if a row was created, `False` otherwise.

        Raises:
            StoreError: If the item's feed is not subscribed or the backend fails.
        """
        pass

    # --- Active Operations ---

    @abstractmethod
    def list_active(self) -> List[ActiveItem]:
        pass

    @abstractmethod
    def find_active(self, url: str) -> Optional[ActiveItem]:
        pass

    @abstractmethod
    def add_active(self, item: ActiveItem) -> bool:
        """
        Insert an item into the active set unless its url is already active.

        Returns:
            bool: `True` if a row was created, `False` otherwise.
        """
        pass

    @abstractmethod
    def promote(self, url: str) -> ActiveItem:
        """
        Make a url active.

        An available item moves to the active set with its title, duration and
        feed title and a position of zero. An unknown url becomes a bare active
        record. A url that is already active is returned unchanged.

        Returns:
            ActiveItem: The active record for `url`.
        """
        pass

    @abstractmethod
    def set_position(self, url: str, position_secs: float) -> None:
        pass

    @abstractmethod
    def set_duration(self, url: str, duration_secs: float) -> None:
        pass

    @abstractmethod
    def set_title(self, url: str, title: str) -> None:
        pass

    @abstractmethod
    def remove_active(self, url: str) -> bool:
        pass

    # --- Orchestration ---

    def refresh(self) -> RefreshResult:
        """
        Fetch every feed and merge its new entries into the available set.

        Returns:
            RefreshResult: Which feeds were merged, which failed, and how many items were created.
        """
        from ..feeds.feed_sync import FeedSyncService
        from ..feeds.fetcher import DEFAULT_FETCH_TIMEOUT

        timeout = self.fetch_timeout if self.fetch_timeout is not None else DEFAULT_FETCH_TIMEOUT
        return FeedSyncService(self, fetch_timeout=timeout).refresh()

    # --- Connection Management ---

    def close(self) -> None:
        """Release any resources held by the backend."""
        pass


def _to_feed(record: FeedRecord) -> Feed:
    return Feed(url=record.url, title=record.title, last_update=record.last_update)


def _to_available(record: AvailableRecord) -> AvailableItem:
    return AvailableItem(
        url=record.url,
        title=record.title,
        publication=record.publication,
        duration_secs=record.duration_secs,
        feed=_to_feed(record.feed),
    )


def _to_active(record: ActiveRecord) -> ActiveItem:
    return ActiveItem(
        url=record.url,
        title=record.title,
        position_secs=record.position_secs,
        duration_secs=record.duration_secs,
        feed_title=record.feed_title,
    )


class SQLAlchemyCatalogStore(CatalogStoreInterface):
    """SQLAlchemy-based implementation of the catalog store.

    All operations are serialized through one lock, so a single store may be
    shared by the threads of the network service. The expected operation
    rate is personal scale, which keeps a single writer good enough.
    """

    def __init__(
        self,
        database_url: str,
        echo: bool = False,
        fetch_timeout: Optional[float] = None,
    ):
        """
        Initialize the store, its SQLAlchemy engine and session factory, and create missing tables.

        Parameters:
            database_url (str): SQLAlchemy-compatible database URL.
            echo (bool): If true, enable SQLAlchemy SQL statement logging.
            fetch_timeout (Optional[float]): Per-feed fetch timeout used by `refresh`; None uses the fetcher default.
        """
        self.database_url = database_url
        self.fetch_timeout = fetch_timeout

        # SQLite is accessed from the service's worker threads
        if database_url.startswith("sqlite"):
            database = make_url(database_url).database
            if database and database != ":memory:":
                directory = os.path.dirname(os.path.abspath(database))
                os.makedirs(directory, exist_ok=True)
            self.engine = create_engine(
                database_url,
                echo=echo,
                connect_args={"check_same_thread": False},
            )
        else:
            self.engine = create_engine(database_url, echo=echo)

        Base.metadata.create_all(self.engine)
        self.SessionLocal = sessionmaker(bind=self.engine, expire_on_commit=False)
        self._lock = threading.RLock()

        logger.info(f"Database initialized: {database_url.split('@')[-1] if '@' in database_url else database_url}")

    @contextmanager
    def _session_scope(self) -> Iterator[Session]:
        """
        Hold the store lock and yield a fresh session, converting backend failures into `StoreError`.
        """
        with self._lock:
            session = self.SessionLocal()
            try:
                yield session
            except SQLAlchemyError as e:
                session.rollback()
                raise StoreError(f"Database operation failed: {e}") from e
            finally:
                session.close()

    def _url_taken(self, session: Session, url: str) -> bool:
        return (
            session.get(AvailableRecord, url) is not None
            or session.get(ActiveRecord, url) is not None
        )

    # --- Feed Operations ---

    def list_feeds(self) -> List[Feed]:
        with self._session_scope() as session:
            stmt = select(FeedRecord).order_by(FeedRecord.title)
            return [_to_feed(record) for record in session.scalars(stmt).all()]

    def add_feed(self, feed: Feed) -> bool:
        with self._session_scope() as session:
            if session.get(FeedRecord, feed.url) is not None:
                return False
            session.add(
                FeedRecord(url=feed.url, title=feed.title, last_update=feed.last_update)
            )
            try:
                session.commit()
            except IntegrityError:
                # Another process subscribed first
                session.rollback()
                if session.get(FeedRecord, feed.url) is not None:
                    return False
                raise
            logger.info(f"Added feed: {feed.title} ({feed.url})")
            return True

    def remove_feed(self, url: str) -> bool:
        with self._session_scope() as session:
            record = session.get(FeedRecord, url)
            if record is None:
                return False
            session.delete(record)
            session.commit()
            logger.info(f"Removed feed: {record.title} ({url})")
            return True

    def set_last_update(self, url: str, when: datetime) -> None:
        with self._session_scope() as session:
            record = session.get(FeedRecord, url)
            if record is not None:
                record.last_update = when
                session.commit()

    def set_feed_title(self, url: str, title: str) -> None:
        with self._session_scope() as session:
            record = session.get(FeedRecord, url)
            if record is not None:
                record.title = title
                session.commit()

    # --- Available Operations ---

    def list_available(self) -> List[AvailableItem]:
        with self._session_scope() as session:
            stmt = select(AvailableRecord).options(joinedload(AvailableRecord.feed))
            items = [_to_available(record) for record in session.scalars(stmt).unique().all()]
        return sorted(items, key=lambda item: item.publication, reverse=True)

    def find_available(self, url: str) -> Optional[AvailableItem]:
        with self._session_scope() as session:
            stmt = (
                select(AvailableRecord)
                .options(joinedload(AvailableRecord.feed))
                .where(AvailableRecord.url == url)
            )
            record = session.scalars(stmt).unique().first()
            return _to_available(record) if record else None

    def remove_available(self, url: str) -> bool:
        with self._session_scope() as session:
            result = session.execute(delete(AvailableRecord).where(AvailableRecord.url == url))
            session.commit()
            return result.rowcount > 0

    def add_available(self, item: AvailableItem) -> bool:
        with self._session_scope() as session:
            if self._url_taken(session, item.url):
                return False
            if session.get(FeedRecord, item.feed.url) is None:
                raise StoreError(f"Unknown feed: {item.feed.url}")

            session.add(
                AvailableRecord(
                    url=item.url,
                    title=item.title,
                    publication=item.publication,
                    duration_secs=item.duration_secs,
                    feed_url=item.feed.url,
                )
            )
            try:
                session.commit()
            except IntegrityError:
                # Lost an insert race against another writer of the same url
                session.rollback()
                if self._url_taken(session, item.url):
                    return False
                raise
            logger.debug(f"Added available item: {item.title} ({item.url})")
            return True

    # --- Active Operations ---

    def list_active(self) -> List[ActiveItem]:
        with self._session_scope() as session:
            stmt = select(ActiveRecord).order_by(ActiveRecord.url)
            return [_to_active(record) for record in session.scalars(stmt).all()]

    def find_active(self, url: str) -> Optional[ActiveItem]:
        with self._session_scope() as session:
            record = session.get(ActiveRecord, url)
            return _to_active(record) if record else None

    def add_active(self, item: ActiveItem) -> bool:
        with self._session_scope() as session:
            if session.get(ActiveRecord, item.url) is not None:
                return False
            session.add(
                ActiveRecord(
                    url=item.url,
                    title=item.title,
                    position_secs=item.position_secs,
                    duration_secs=item.duration_secs,
                    feed_title=item.feed_title,
                )
            )
            # Keep the two sets disjoint
            session.execute(delete(AvailableRecord).where(AvailableRecord.url == item.url))
            try:
                session.commit()
            except IntegrityError:
                session.rollback()
                if session.get(ActiveRecord, item.url) is not None:
                    return False
                raise
            logger.debug(f"Added active item: {item.url}")
            return True

    def promote(self, url: str) -> ActiveItem:
        with self._session_scope() as session:
            existing = session.get(ActiveRecord, url)
            if existing is not None:
                return _to_active(existing)

            available = session.get(AvailableRecord, url)
            if available is not None:
                record = ActiveRecord(
                    url=url,
                    title=available.title,
                    position_secs=0.0,
                    duration_secs=available.duration_secs,
                    feed_title=available.feed.title,
                )
                session.delete(available)
            else:
                record = ActiveRecord(url=url, position_secs=0.0)

            session.add(record)
            try:
                session.commit()
            except IntegrityError:
                session.rollback()
                existing = session.get(ActiveRecord, url)
                if existing is not None:
                    return _to_active(existing)
                raise
            logger.info(f"Promoted to active: {record.title or url}")
            return _to_active(record)

    def set_position(self, url: str, position_secs: float) -> None:
        self._update_active(url, position_secs=position_secs)

    def set_duration(self, url: str, duration_secs: float) -> None:
        self._update_active(url, duration_secs=duration_secs)

    def set_title(self, url: str, title: str) -> None:
        self._update_active(url, title=title)

    def _update_active(self, url: str, **kwargs) -> None:
        with self._session_scope() as session:
            record = session.get(ActiveRecord, url)
            if record is None:
                return
            for key, value in kwargs.items():
                setattr(record, key, value)
            session.commit()

    def remove_active(self, url: str) -> bool:
        with self._session_scope() as session:
            result = session.execute(delete(ActiveRecord).where(ActiveRecord.url == url))
            session.commit()
            return result.rowcount > 0

    # --- Connection Management ---

    def close(self) -> None:
        """
        Dispose the SQLAlchemy engine and release database connections and resources.
        """
        self.engine.dispose()
