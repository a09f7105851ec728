"""
FastAPI application sharing one catalog over HTTP.

Remote clients (``HttpCatalogStore``) call the store operations exposed by
``store_routes``; the server owns the database and runs refreshes itself.
"""

import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI

from src.config import Config
from src.db.factory import create_store
from src.db.repository import CatalogStoreInterface
from src.web.store_routes import router as store_router

logger = logging.getLogger(__name__)


def create_app(store: CatalogStoreInterface, close_store: bool = False) -> FastAPI:
    """
    Build the web application around a catalog store.

    Parameters:
        store (CatalogStoreInterface): Backend every request operates on; it must serialize its own operations.
        close_store (bool): If true, close the store when the application shuts down.

    Returns:
        FastAPI: The configured application.
    """

    @asynccontextmanager
    async def lifespan(_app: FastAPI):
        logger.info("uvp server starting")
        yield
        if close_store:
            store.close()
            logger.info("Catalog store closed")

    app = FastAPI(
        title="uvp",
        description="Shared feed catalog and playback state",
        lifespan=lifespan,
    )
    app.state.store = store

    @app.get("/health")
    async def health():
        """Health check endpoint."""
        return {"status": "healthy", "service": "uvp"}

    app.include_router(store_router)
    return app


def serve(config: Config, host: Optional[str] = None, port: Optional[int] = None) -> None:
    """Run the server on the configured embedded database until interrupted."""
    import uvicorn

    # The server always owns a local database, even if a remote store URL is configured
    store = create_store(
        database_url=config.DATABASE_URL,
        echo=config.DB_ECHO,
        fetch_timeout=config.FETCH_TIMEOUT,
    )
    app = create_app(store, close_store=True)
    uvicorn.run(app, host=host or config.SERVER_HOST, port=port or config.SERVER_PORT)


if __name__ == "__main__":
    log_level = os.environ.get("LOG_LEVEL", "INFO").upper()
    logging.basicConfig(
        level=getattr(logging, log_level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    serve(Config())
