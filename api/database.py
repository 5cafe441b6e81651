"""
Store wiring for the API.

Provides FastAPI dependencies that hand routes the configured earmark store,
the search settings, and a fresh SearchController per request.  The store is
built once from AppConfig (REST when APP_STORE_URL is set, otherwise the
SQLite file at APP_DB_PATH) and can be swapped with set_store() in tests.
"""

import threading

from earmarks.controller import SearchController
from earmarks.store import PostgrestStore, SQLiteStore, make_store
from utils.config import AppConfig, SearchConfig

_store: PostgrestStore | SQLiteStore | None = None
_search_config: SearchConfig | None = None
_lock = threading.Lock()


def set_store(store, search_config: SearchConfig | None = None) -> None:
    """Replace the process-wide store (and optionally the search config)."""
    global _store, _search_config
    with _lock:
        _store = store
        if search_config is not None:
            _search_config = search_config.validate()


def get_store():
    """FastAPI dependency: return the configured store, creating it lazily."""
    global _store
    if _store is None:
        with _lock:
            if _store is None:
                _store = make_store(AppConfig.from_env())
    return _store


def get_search_config() -> SearchConfig:
    """FastAPI dependency: return the search settings."""
    global _search_config
    if _search_config is None:
        with _lock:
            if _search_config is None:
                _search_config = SearchConfig.from_env()
    return _search_config


def get_controller() -> SearchController:
    """FastAPI dependency: a SearchController bound to the shared store.

    Usage in a route::

        @router.get("/example")
        async def example(controller=Depends(get_controller)):
            state = await controller.search("acme")
    """
    return SearchController(get_store(), get_search_config())


def close_store() -> None:
    """Release the store's resources (call on shutdown)."""
    global _store
    with _lock:
        if _store is not None:
            _store.close()
            _store = None
