"""Earmarks search core: request states, stores, and the search controller."""

from earmarks.controller import SearchController
from earmarks.state import (
    GENERIC_ERROR_MESSAGE,
    Failed,
    Idle,
    InFlight,
    RequestState,
    SearchResult,
    Succeeded,
    error_message,
)
from earmarks.store import (
    PostgrestStore,
    QueryResult,
    SQLiteStore,
    StoreError,
    make_store,
)

__all__ = [
    "SearchController",
    "GENERIC_ERROR_MESSAGE",
    "Failed",
    "Idle",
    "InFlight",
    "RequestState",
    "SearchResult",
    "Succeeded",
    "error_message",
    "PostgrestStore",
    "QueryResult",
    "SQLiteStore",
    "StoreError",
    "make_store",
]
