"""API routes exposing every catalog store operation.

Each operation is one ``POST /<operation>`` endpoint. The request body is
the JSON array of the operation's positional arguments (empty or omitted for
operations without arguments) and the response body is its JSON result.
"""

import logging
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Tuple

from fastapi import APIRouter, Body, HTTPException, Request
from fastapi.encoders import jsonable_encoder
from pydantic import TypeAdapter, ValidationError

from src.db.repository import CatalogStoreInterface, StoreError
from src.schemas import ActiveItem, AvailableItem, Feed

logger = logging.getLogger(__name__)

router = APIRouter(tags=["store"])

# Operation name -> validator for its positional arguments
OPERATIONS: Dict[str, TypeAdapter] = {
    "list_feeds": TypeAdapter(Tuple[()]),
    "add_feed": TypeAdapter(Tuple[Feed]),
    "remove_feed": TypeAdapter(Tuple[str]),
    "set_last_update": TypeAdapter(Tuple[str, datetime]),
    "set_feed_title": TypeAdapter(Tuple[str, str]),
    "list_available": TypeAdapter(Tuple[()]),
    "find_available": TypeAdapter(Tuple[str]),
    "remove_available": TypeAdapter(Tuple[str]),
    "add_available": TypeAdapter(Tuple[AvailableItem]),
    "list_active": TypeAdapter(Tuple[()]),
    "find_active": TypeAdapter(Tuple[str]),
    "add_active": TypeAdapter(Tuple[ActiveItem]),
    "promote": TypeAdapter(Tuple[str]),
    "set_position": TypeAdapter(Tuple[str, float]),
    "set_duration": TypeAdapter(Tuple[str, float]),
    "set_title": TypeAdapter(Tuple[str, str]),
    "remove_active": TypeAdapter(Tuple[str]),
    "refresh": TypeAdapter(Tuple[()]),
}


def _make_endpoint(operation: str, arguments: TypeAdapter) -> Callable[..., Any]:
    # Plain def: FastAPI runs it in its threadpool, and refresh starts its own event loop
    def endpoint(request: Request, args: Optional[List[Any]] = Body(default=None)) -> Any:
        store: CatalogStoreInterface = request.app.state.store

        try:
            values = arguments.validate_python(args or [])
        except ValidationError as e:
            raise HTTPException(status_code=422, detail=f"Invalid arguments for {operation}: {e}")

        try:
            result = getattr(store, operation)(*values)
        except StoreError as e:
            logger.error(f"{operation} failed: {e}")
            raise HTTPException(status_code=500, detail=str(e))

        return jsonable_encoder(result)

    endpoint.__name__ = operation
    return endpoint


for _operation, _arguments in OPERATIONS.items():
    router.add_api_route(
        f"/{_operation}",
        _make_endpoint(_operation, _arguments),
        methods=["POST"],
        name=_operation,
    )
