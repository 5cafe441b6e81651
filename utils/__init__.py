"""Shared utilities for the earmarks search tools."""

# Configuration
from utils.config import (
    Config,
    SearchConfig,
    AppConfig,
    DEFAULT_SEARCH_COLUMNS,
    DEFAULT_PAGE_SIZE,
    DEFAULT_TABLE,
)

# Predicate building
from utils.query import (
    Condition,
    Predicate,
    build_predicate,
    escape_like,
    predicate_to_sql,
    predicate_to_postgrest,
)

# HTTP utilities
from utils.http import RetryStrategy, SessionManager

# Output formatting
from utils.formatting import (
    format_currency,
    format_count,
    project_record,
    truncate_text,
    TableFormatter,
)

__all__ = [
    # Config
    "Config",
    "SearchConfig",
    "AppConfig",
    "DEFAULT_SEARCH_COLUMNS",
    "DEFAULT_PAGE_SIZE",
    "DEFAULT_TABLE",
    # Query
    "Condition",
    "Predicate",
    "build_predicate",
    "escape_like",
    "predicate_to_sql",
    "predicate_to_postgrest",
    # HTTP
    "RetryStrategy",
    "SessionManager",
    # Formatting
    "format_currency",
    "format_count",
    "project_record",
    "truncate_text",
    "TableFormatter",
]
