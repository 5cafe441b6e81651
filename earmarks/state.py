"""Request state for the search controller.

Exactly one state is active at a time:

    Idle       — no search has been issued yet
    InFlight   — a search was dispatched and has not resolved
    Succeeded  — carries the SearchResult
    Failed     — carries a display message

Each class exposes a ``status`` string used by the API and templates.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Union

GENERIC_ERROR_MESSAGE = "An error occurred"


@dataclass(frozen=True)
class SearchResult:
    """One page of matching records and the total match count."""

    rows: tuple[dict[str, Any], ...] = field(default_factory=tuple)
    count: int = 0


@dataclass(frozen=True)
class Idle:
    status = "idle"


@dataclass(frozen=True)
class InFlight:
    query: str
    token: int
    status = "in_flight"


@dataclass(frozen=True)
class Succeeded:
    query: str
    result: SearchResult
    status = "succeeded"


@dataclass(frozen=True)
class Failed:
    query: str
    message: str
    status = "failed"


RequestState = Union[Idle, InFlight, Succeeded, Failed]


def error_message(exc: BaseException | None) -> str:
    """Return the exception's message, or the generic fallback.

    Exceptions without a usable message (no args, blank text) never leak a
    repr like ``TimeoutError()`` to the user.
    """
    if exc is None:
        return GENERIC_ERROR_MESSAGE
    message = str(exc).strip()
    return message or GENERIC_ERROR_MESSAGE
