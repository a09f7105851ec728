"""Factory for creating catalog store instances.

Picks the backend from the configured location: an ``http(s)://`` URL
selects the remote client, anything else is treated as a SQLAlchemy
database URL for the embedded store.
"""

import logging
import os
from typing import Optional

from .remote import HttpCatalogStore
from .repository import CatalogStoreInterface, SQLAlchemyCatalogStore

logger = logging.getLogger(__name__)

# Default database URL for local use
DEFAULT_DATABASE_URL = "sqlite:///./uvp.db"


def is_remote_url(url: str) -> bool:
    return url.lower().startswith(("http://", "https://"))


def create_store(
    database_url: Optional[str] = None,
    store_url: Optional[str] = None,
    echo: bool = False,
    fetch_timeout: Optional[float] = None,
) -> CatalogStoreInterface:
    """
    Create a catalog store for either a remote server or a local database.

    If `store_url` is given, a remote store talking to that server is returned and
    `database_url` is ignored. Otherwise `database_url` (or the `UVP_DATABASE_URL`
    environment variable, or a local SQLite default) backs an embedded store.

    Parameters:
        database_url (Optional[str]): SQLAlchemy database URL for the embedded backend.
        store_url (Optional[str]): Base URL of a uvp server.
        echo (bool): If true, enable SQL statement logging.
        fetch_timeout (Optional[float]): Per-feed fetch timeout for refreshes run by the embedded backend; None uses the fetcher default.

    Returns:
        CatalogStoreInterface: The configured store.
    """
    if store_url:
        if not is_remote_url(store_url):
            raise ValueError(f"Store URL must start with http:// or https://, got: {store_url}")
        logger.info(f"Creating remote store: {store_url}")
        return HttpCatalogStore(store_url)

    if database_url is None:
        database_url = os.getenv("UVP_DATABASE_URL", DEFAULT_DATABASE_URL)

    # Log database type (without credentials)
    db_type = database_url.split("://")[0] if "://" in database_url else "unknown"
    db_location = database_url.split("@")[-1]
    logger.info(f"Creating {db_type} store: {db_location}")

    return SQLAlchemyCatalogStore(
        database_url=database_url,
        echo=echo,
        fetch_timeout=fetch_timeout,
    )


def create_store_from_config(config) -> CatalogStoreInterface:
    """Create the store described by a `Config` instance."""
    return create_store(
        database_url=config.DATABASE_URL,
        store_url=config.STORE_URL or None,
        echo=config.DB_ECHO,
        fetch_timeout=config.FETCH_TIMEOUT,
    )
