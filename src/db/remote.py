"""HTTP client implementation of the catalog store.

Forwards every catalog operation to a uvp server as one request. The client
keeps no state of its own: the server's database is the single source of
truth and every call is an independent round trip.
"""

import logging
from datetime import datetime
from typing import Any, List, Optional

import httpx
from pydantic import TypeAdapter

from ..schemas import ActiveItem, AvailableItem, Feed, RefreshResult
from .repository import CatalogStoreInterface, StoreError

logger = logging.getLogger(__name__)

_FEEDS = TypeAdapter(List[Feed])
_AVAILABLE_LIST = TypeAdapter(List[AvailableItem])
_AVAILABLE = TypeAdapter(Optional[AvailableItem])
_ACTIVE_LIST = TypeAdapter(List[ActiveItem])
_ACTIVE = TypeAdapter(Optional[ActiveItem])
_FLAG = TypeAdapter(bool)


class HttpCatalogStore(CatalogStoreInterface):
    """Catalog store backed by a remote uvp server.

    Example:
        store = HttpCatalogStore("http://localhost:3000")
        for feed in store.list_feeds():
            print(feed.title)
    """

    DEFAULT_TIMEOUT = 30.0

    def __init__(
        self,
        base_url: str,
        timeout: float = DEFAULT_TIMEOUT,
        client: Optional[httpx.Client] = None,
    ):
        """Initialize the remote store.

        Args:
            base_url: Root URL of the uvp server
            timeout: Request timeout in seconds; refresh calls can take as long
                as the server's slowest feed fetch
            client: Optional preconfigured httpx client (for example a test client
                bound to an in-process app); `timeout` is ignored when given
        """
        self.base_url = base_url.rstrip("/")
        self._client = client or httpx.Client(base_url=self.base_url, timeout=timeout)
        logger.info(f"Using remote catalog store: {self.base_url}")

    def _call(self, operation: str, *args: Any) -> Any:
        """Invoke one remote operation with positional arguments and return the decoded JSON result.

        Raises:
            StoreError: If the request fails or the server reports an error
        """
        try:
            response = self._client.post(f"/{operation}", json=list(args))
        except httpx.HTTPError as e:
            raise StoreError(f"Request to {self.base_url}/{operation} failed: {e}") from e

        if response.is_error:
            try:
                detail = response.json().get("detail", response.text)
            except ValueError:
                detail = response.text
            raise StoreError(f"{operation} failed with HTTP {response.status_code}: {detail}")

        return response.json()

    # --- Feed Operations ---

    def list_feeds(self) -> List[Feed]:
        return _FEEDS.validate_python(self._call("list_feeds"))

    def add_feed(self, feed: Feed) -> bool:
        return _FLAG.validate_python(self._call("add_feed", feed.model_dump(mode="json")))

    def remove_feed(self, url: str) -> bool:
        return _FLAG.validate_python(self._call("remove_feed", url))

    def set_last_update(self, url: str, when: datetime) -> None:
        self._call("set_last_update", url, when.isoformat())

    def set_feed_title(self, url: str, title: str) -> None:
        self._call("set_feed_title", url, title)

    # --- Available Operations ---

    def list_available(self) -> List[AvailableItem]:
        return _AVAILABLE_LIST.validate_python(self._call("list_available"))

    def find_available(self, url: str) -> Optional[AvailableItem]:
        return _AVAILABLE.validate_python(self._call("find_available", url))

    def remove_available(self, url: str) -> bool:
        return _FLAG.validate_python(self._call("remove_available", url))

    def add_available(self, item: AvailableItem) -> bool:
        return _FLAG.validate_python(self._call("add_available", item.model_dump(mode="json")))

    # --- Active Operations ---

    def list_active(self) -> List[ActiveItem]:
        return _ACTIVE_LIST.validate_python(self._call("list_active"))

    def find_active(self, url: str) -> Optional[ActiveItem]:
        return _ACTIVE.validate_python(self._call("find_active", url))

    def add_active(self, item: ActiveItem) -> bool:
        return _FLAG.validate_python(self._call("add_active", item.model_dump(mode="json")))

    def promote(self, url: str) -> ActiveItem:
        return ActiveItem.model_validate(self._call("promote", url))

    def set_position(self, url: str, position_secs: float) -> None:
        self._call("set_position", url, position_secs)

    def set_duration(self, url: str, duration_secs: float) -> None:
        self._call("set_duration", url, duration_secs)

    def set_title(self, url: str, title: str) -> None:
        self._call("set_title", url, title)

    def remove_active(self, url: str) -> bool:
        return _FLAG.validate_python(self._call("remove_active", url))

    # --- Orchestration ---

    def refresh(self) -> RefreshResult:
        """Run a refresh pass on the server, which fetches the feeds itself."""
        return RefreshResult.model_validate(self._call("refresh"))

    def close(self) -> None:
        self._client.close()
