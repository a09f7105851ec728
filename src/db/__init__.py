"""Database module for catalog persistence.

Provides:
- SQLAlchemy ORM models (feed, available, active)
- Catalog store interface with embedded and remote implementations
- Factory functions for creating stores
"""

from .factory import create_store, create_store_from_config
from .models import ActiveRecord, AvailableRecord, Base, FeedRecord
from .remote import HttpCatalogStore
from .repository import CatalogStoreInterface, SQLAlchemyCatalogStore, StoreError

__all__ = [
    "Base",
    "FeedRecord",
    "AvailableRecord",
    "ActiveRecord",
    "CatalogStoreInterface",
    "SQLAlchemyCatalogStore",
    "HttpCatalogStore",
    "StoreError",
    "create_store",
    "create_store_from_config",
]
