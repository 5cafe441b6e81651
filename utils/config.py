"""Configuration management utilities for the earmarks search tools.

Provides:
- A small ``Config`` base class with dict/JSON round-tripping
- ``SearchConfig``: table, searchable columns, page size, request sequencing
- ``AppConfig``: store backend and API server settings from the environment
"""

import json
import os as _os
from pathlib import Path
from typing import Dict, Any, Optional


DEFAULT_TABLE = "earmarks"
DEFAULT_SEARCH_COLUMNS = ("recipient", "budget_function", "agency")
DEFAULT_PAGE_SIZE = 10

_TRUTHY = {"1", "true", "yes", "on"}


class Config:
    """Base configuration class for organizing application settings."""

    def __init__(self):
        """Initialize configuration with default values."""
        pass

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary.

        Returns:
            Dictionary of all config attributes
        """
        return {k: v for k, v in self.__dict__.items() if not k.startswith("_")}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Config":
        """Create config from dictionary.

        Args:
            data: Configuration dictionary

        Returns:
            Config instance with values from dictionary
        """
        config = cls()
        for key, value in data.items():
            setattr(config, key, value)
        return config

    def save_json(self, path: Path) -> None:
        """Save configuration to JSON file.

        Args:
            path: Path to save configuration file
        """
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(self.to_dict(), f, indent=2, default=str)

    @classmethod
    def load_json(cls, path: Path) -> "Config":
        """Load configuration from JSON file.

        Args:
            path: Path to configuration file

        Returns:
            Config instance loaded from file

        Raises:
            FileNotFoundError: If file doesn't exist
            json.JSONDecodeError: If file is not valid JSON
        """
        with open(path, "r") as f:
            data = json.load(f)
        return cls.from_dict(data)


class SearchConfig(Config):
    """Settings for one search controller.

    Environment variables (see ``from_env``):
        EARMARKS_TABLE: Table/collection to query (default: earmarks)
        EARMARKS_SEARCH_COLUMNS: Comma-separated text columns to match
            (default: recipient,budget_function,agency)
        EARMARKS_PAGE_SIZE: Max rows per search (default: 10)
        EARMARKS_DISCARD_STALE: Drop results of superseded searches (default: 1)
    """

    def __init__(self, table: str = DEFAULT_TABLE,
                 columns: Optional[tuple] = None,
                 page_size: int = DEFAULT_PAGE_SIZE,
                 discard_stale_results: bool = True):
        super().__init__()
        self.table = table
        self.columns = tuple(columns) if columns is not None else DEFAULT_SEARCH_COLUMNS
        self.page_size = page_size
        self.discard_stale_results = discard_stale_results

    def validate(self) -> "SearchConfig":
        """Check settings and return self.

        Raises:
            ValueError: If page_size is not a positive integer, the column
                set is empty, or the table name is blank.
        """
        if isinstance(self.page_size, bool) or not isinstance(self.page_size, int) \
                or self.page_size < 1:
            raise ValueError(
                f"page_size must be a positive integer, got {self.page_size!r}"
            )
        if not self.columns:
            raise ValueError("At least one search column is required")
        if not self.table or not str(self.table).strip():
            raise ValueError("table must be a non-empty name")
        return self

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SearchConfig":
        config = super().from_dict(data)
        config.columns = tuple(config.columns)
        return config

    @classmethod
    def from_env(cls) -> "SearchConfig":
        """Create a SearchConfig populated from environment variables."""
        raw_columns = _os.getenv("EARMARKS_SEARCH_COLUMNS", "")
        columns = tuple(c.strip() for c in raw_columns.split(",") if c.strip())
        return cls(
            table=_os.getenv("EARMARKS_TABLE", DEFAULT_TABLE),
            columns=columns or None,
            page_size=int(_os.getenv("EARMARKS_PAGE_SIZE", str(DEFAULT_PAGE_SIZE))),
            discard_stale_results=(
                _os.getenv("EARMARKS_DISCARD_STALE", "1").strip().lower() in _TRUTHY
            ),
        ).validate()


class AppConfig(Config):
    """Application-level configuration loaded from environment variables.

    All env vars have sensible defaults so the application works out of the
    box against a local SQLite file.

    Environment variables:
        APP_DB_PATH: Path to the SQLite database file (default: earmarks.sqlite)
        APP_STORE_URL: Base URL of a PostgREST/Supabase project; when set the
            REST store is used instead of SQLite
        APP_STORE_KEY: API key sent as ``apikey`` and bearer token
        APP_STORE_TIMEOUT: Request timeout in seconds (default: none)
        APP_STORE_RETRIES: Transport-level retries for the REST store (default: 0)
        APP_PORT: API server port (default: 8000)
        APP_HOST: API server bind address (default: 127.0.0.1)
        APP_LOG_FORMAT: Logging format — "text" or "json" (default: text)
        APP_CORS_ORIGINS: Comma-separated allowed origins (default: *)
    """

    def __init__(self) -> None:
        super().__init__()
        self.db_path = Path(_os.getenv("APP_DB_PATH", "earmarks.sqlite"))
        self.store_url = _os.getenv("APP_STORE_URL", "").strip() or None
        self.store_key = _os.getenv("APP_STORE_KEY", "")
        raw_timeout = _os.getenv("APP_STORE_TIMEOUT", "").strip()
        self.store_timeout: float | None = float(raw_timeout) if raw_timeout else None
        self.store_retries = int(_os.getenv("APP_STORE_RETRIES", "0"))
        self.api_port = int(_os.getenv("APP_PORT", "8000"))
        self.api_host = _os.getenv("APP_HOST", "127.0.0.1")
        self.log_format = _os.getenv("APP_LOG_FORMAT", "text")
        raw_origins = _os.getenv("APP_CORS_ORIGINS", "*")
        self.cors_origins: list[str] = (
            ["*"] if raw_origins == "*"
            else [o.strip() for o in raw_origins.split(",") if o.strip()]
        )

    @property
    def backend(self) -> str:
        """Return "postgrest" when a store URL is configured, else "sqlite"."""
        return "postgrest" if self.store_url else "sqlite"

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Create an AppConfig instance populated from environment variables."""
        return cls()
