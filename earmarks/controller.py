"""
Search controller: one request lifecycle at a time over an earmark store.

    controller = SearchController(store, SearchConfig())
    state = await controller.search("acme")
    if state.status == "succeeded":
        rows = state.result.rows

Each search() call publishes InFlight synchronously, suspends only around the
store call, then publishes exactly one of Succeeded/Failed.  Calls are never
cancelled.  Each dispatch gets an increasing token; with
``discard_stale_results`` on, a resolution whose token is no longer the latest
is dropped so the published state always matches the most recent query.
With it off, whichever call resolves last overwrites the state.
"""

from __future__ import annotations

import asyncio
import inspect
import logging
from collections.abc import Mapping
from typing import Any, Callable

from earmarks.state import (
    Failed,
    Idle,
    InFlight,
    RequestState,
    SearchResult,
    Succeeded,
    error_message,
)
from earmarks.store import StoreError
from utils.config import SearchConfig
from utils.query import build_predicate

logger = logging.getLogger(__name__)

Listener = Callable[[RequestState], None]


async def run_query(store: Any, table: str, predicate, limit: int) -> Any:
    """Call ``store.query``; coroutine stores are awaited, others run in a thread."""
    query = store.query
    if inspect.iscoroutinefunction(query):
        return await query(table, predicate, limit)
    return await asyncio.to_thread(query, table, predicate, limit)


def to_search_result(raw: Any) -> SearchResult:
    """Normalize a store result; missing rows or count become empty and 0.

    Raises:
        StoreError: If a row is not a mapping or the count is not an int.
    """
    rows = getattr(raw, "rows", None) or []
    count = getattr(raw, "count", None) or 0
    if isinstance(rows, (str, bytes, Mapping)):
        raise StoreError("Malformed response: expected a list of rows")
    try:
        rows = list(rows)
    except TypeError as exc:
        raise StoreError("Malformed response: expected a list of rows") from exc
    if not all(isinstance(r, Mapping) for r in rows):
        raise StoreError("Malformed response: expected a list of rows")
    if isinstance(count, bool) or not isinstance(count, int):
        raise StoreError(f"Malformed response: invalid count {count!r}")
    return SearchResult(rows=tuple(dict(r) for r in rows), count=count)


class SearchController:
    """Owns the current RequestState and latest SearchResult for one view."""

    def __init__(self, store: Any, config: SearchConfig | None = None) -> None:
        self._store = store
        self._config = (config or SearchConfig()).validate()
        self._state: RequestState = Idle()
        self._result: SearchResult | None = None
        self._issued = 0
        self._listeners: list[Listener] = []

    # ── read side ────────────────────────────────────────────────────────────

    @property
    def config(self) -> SearchConfig:
        return self._config

    @property
    def state(self) -> RequestState:
        return self._state

    @property
    def result(self) -> SearchResult | None:
        """Latest successful result; kept when a later search fails."""
        return self._result

    @property
    def error(self) -> str | None:
        return self._state.message if isinstance(self._state, Failed) else None

    @property
    def loading(self) -> bool:
        return isinstance(self._state, InFlight)

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Register a state-change callback; returns an unsubscribe function."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # ── write side ───────────────────────────────────────────────────────────

    def _publish(self, state: RequestState) -> None:
        self._state = state
        if isinstance(state, Succeeded):
            self._result = state.result
        for listener in list(self._listeners):
            try:
                listener(state)
            except Exception:
                logger.exception("Search state listener %r failed", listener)

    async def _dispatch(self, predicate) -> Any:
        return await run_query(self._store, self._config.table, predicate,
                               self._config.page_size)

    async def search(self, query_text: str | None) -> RequestState:
        """Run one search and publish its outcome.

        Args:
            query_text: Raw text from the search box; may be empty.

        Returns:
            The controller state after this call resolved.  When this call
            was superseded and its outcome discarded, that is the state
            published by the newer call (possibly still InFlight).
        """
        query_text = query_text or ""
        self._issued += 1
        token = self._issued
        self._publish(InFlight(query=query_text, token=token))

        predicate = build_predicate(query_text, self._config.columns)
        logger.debug("search token=%d q=%r table=%s limit=%d",
                     token, query_text, self._config.table, self._config.page_size)

        outcome: RequestState
        try:
            result = to_search_result(await self._dispatch(predicate))
        except Exception as exc:
            logger.warning("Search failed for q=%r: %s", query_text, exc, exc_info=True)
            outcome = Failed(query=query_text, message=error_message(exc))
        else:
            outcome = Succeeded(query=query_text, result=result)

        if self._config.discard_stale_results and token != self._issued:
            logger.debug("Discarding stale result token=%d latest=%d q=%r",
                         token, self._issued, query_text)
            return self._state

        self._publish(outcome)
        return outcome
