"""HTTP session utilities for the REST earmark store.

Provides:
- RetryStrategy: urllib3 retry settings for idempotent GETs
- SessionManager: a lazily created requests.Session with pooling, retries
  and default headers (API key, auth, content negotiation)
"""

from typing import Optional, Dict, List
import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry as URLRetry


class RetryStrategy:
    """Defines retry behavior for HTTP requests."""

    def __init__(self, max_retries: int = 0, backoff_factor: float = 0.5,
                 status_forcelist: Optional[List[int]] = None):
        """Initialize retry strategy.

        Args:
            max_retries: Maximum number of retry attempts (default: 0, a
                failed request is surfaced immediately)
            backoff_factor: Exponential backoff multiplier between attempts
            status_forcelist: HTTP status codes to retry on
                (default: [429, 502, 503, 504])
        """
        self.max_retries = max_retries
        self.backoff_factor = backoff_factor
        self.status_forcelist = status_forcelist or [429, 502, 503, 504]

    def get_retry_object(self) -> URLRetry:
        """Get urllib3 Retry object configured with this strategy.

        ``raise_on_status`` is off so the final error response reaches the
        caller, whose body carries the server's error message.
        """
        return URLRetry(
            total=self.max_retries,
            backoff_factor=self.backoff_factor,
            status_forcelist=self.status_forcelist,
            allowed_methods=["GET", "HEAD"],
            raise_on_status=False,
        )


class SessionManager:
    """Manages an HTTP session with connection pooling, retries and headers."""

    def __init__(self, retry_strategy: Optional[RetryStrategy] = None,
                 headers: Optional[Dict[str, str]] = None,
                 pool_connections: int = 10, pool_maxsize: int = 20):
        """Initialize session manager.

        Args:
            retry_strategy: RetryStrategy to use (default: no retries)
            headers: Headers sent with every request
            pool_connections: Number of connection pools to cache
            pool_maxsize: Maximum number of connections per pool
        """
        self.retry_strategy = retry_strategy or RetryStrategy()
        self.headers = dict(headers or {})
        self.pool_connections = pool_connections
        self.pool_maxsize = pool_maxsize
        self._session: Optional[requests.Session] = None

    @property
    def session(self) -> requests.Session:
        """Get or create the HTTP session."""
        if self._session is None:
            self._session = requests.Session()
            self._session.headers.update(self.headers)

            adapter = HTTPAdapter(
                max_retries=self.retry_strategy.get_retry_object(),
                pool_connections=self.pool_connections,
                pool_maxsize=self.pool_maxsize,
            )
            self._session.mount("http://", adapter)
            self._session.mount("https://", adapter)

        return self._session

    def close(self) -> None:
        """Close the session and release resources."""
        if self._session:
            self._session.close()
            self._session = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
