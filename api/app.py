"""
FastAPI application factory for the earmarks search service.

Usage:
    python -m api.app                              # Dev server on port 8000
    APP_DB_PATH=/data/earmarks.sqlite python -m api.app
    APP_STORE_URL=https://xyz.supabase.co APP_STORE_KEY=... python -m api.app

OpenAPI docs available at http://localhost:8000/docs after starting.

Logging is plain text by default; set APP_LOG_FORMAT=json for
newline-delimited JSON records.  Every response carries an X-Request-ID.
"""

import json
import logging
import time
import uuid
import warnings
from contextlib import asynccontextmanager
from pathlib import Path

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.templating import Jinja2Templates

from api.database import close_store, get_search_config, get_store, set_store
from api.routes import search
from api.routes import frontend as frontend_routes
from earmarks.controller import run_query
from earmarks.store import SQLiteStore, StoreError
from utils.config import AppConfig
from utils.query import build_predicate

# ── Configuration ─────────────────────────────────────────────────────────────
_cfg = AppConfig.from_env()

# ── Structured JSON logging ───────────────────────────────────────────────────


class _JsonFormatter(logging.Formatter):
    """Emit log records as newline-delimited JSON."""

    def format(self, record: logging.LogRecord) -> str:
        data: dict = {
            "timestamp": self.formatTime(record, "%Y-%m-%dT%H:%M:%S"),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
        }
        # Merge extra fields added via logger.info("...", extra={...})
        for key in ("method", "path", "status", "duration_ms", "request_id"):
            if hasattr(record, key):
                data[key] = getattr(record, key)
        if record.exc_info:
            data["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(data)


_logger = logging.getLogger("earmarks_api")
_handler = logging.StreamHandler()
if _cfg.log_format == "json":
    _handler.setFormatter(_JsonFormatter())
else:
    _handler.setFormatter(
        logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s")
    )
logging.basicConfig(handlers=[_handler], level=logging.INFO, force=True)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Warn about a missing SQLite file on startup; release the store on shutdown."""
    store = get_store()
    if isinstance(store, SQLiteStore) and not store.db_path.exists():
        warnings.warn(
            f"Database not found at {store.db_path}. "
            "Run 'python load_earmarks.py <file>' first.",
            stacklevel=2,
        )
    yield
    close_store()


def create_app(db_path: Path | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        db_path: Use a SQLite store at this path (useful for testing).

    Returns:
        Configured FastAPI application instance.
    """
    if db_path is not None:
        set_store(SQLiteStore(db_path))

    app = FastAPI(
        title="Earmarks Search API",
        summary="Search government budget earmark records.",
        description=(
            "## Earmarks Search API\n\n"
            "Free-text search over earmark records.  The query is matched "
            "case-insensitively as a substring of the recipient, budget "
            "function and agency columns.\n\n"
            "- Each search returns at most `page_size` rows (default 10) and "
            "the exact total number of matches.\n"
            "- A failed store call is reported in the body as "
            "`status: \"failed\"` with an error message."
        ),
        version="1.0.0",
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_tags=[
            {"name": "search", "description": "Free-text earmark search."},
            {"name": "meta", "description": "Health check and API metadata."},
        ],
    )

    # ── CORS middleware ───────────────────────────────────────────────────────
    app.add_middleware(
        CORSMiddleware,
        allow_origins=_cfg.cors_origins,
        allow_credentials=False,
        allow_methods=["GET", "HEAD", "OPTIONS"],
        allow_headers=["*"],
    )

    # ── Request logging middleware ────────────────────────────────────────────

    @app.middleware("http")
    async def log_requests(request: Request, call_next):
        """Log each request and tag the response with a request id."""
        request_id = str(uuid.uuid4())[:8]
        start = time.monotonic()
        path = request.url.path

        response = await call_next(request)
        duration_ms = (time.monotonic() - start) * 1000
        response.headers["X-Request-ID"] = request_id

        if _cfg.log_format == "json":
            _logger.info(
                "request",
                extra={
                    "method": request.method,
                    "path": path,
                    "status": response.status_code,
                    "duration_ms": round(duration_ms, 1),
                    "request_id": request_id,
                },
            )
        else:
            _logger.info(
                "method=%s path=%s status=%d duration_ms=%.1f rid=%s",
                request.method, path, response.status_code, duration_ms,
                request_id,
            )
        if duration_ms > 500:
            _logger.warning(
                "slow_request method=%s path=%s duration_ms=%.1f",
                request.method, path, duration_ms,
            )
        return response

    # ── Security headers ──────────────────────────────────────────────────────

    @app.middleware("http")
    async def security_headers(request: Request, call_next):
        """Add Content-Security-Policy, X-Content-Type-Options, and X-Frame-Options."""
        response = await call_next(request)
        # HTMX is loaded from unpkg; the page uses an inline <style> block.
        response.headers["Content-Security-Policy"] = (
            "default-src 'self'; "
            "script-src 'self' unpkg.com; "
            "style-src 'self' 'unsafe-inline'; "
            "connect-src 'self';"
        )
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        return response

    # ── Error handling ────────────────────────────────────────────────────────

    @app.exception_handler(Exception)
    async def generic_exception_handler(request: Request, exc: Exception):
        """Catch unhandled exceptions and return JSON instead of HTML traceback."""
        _logger.error("unhandled error on %s", request.url.path, exc_info=exc)
        return JSONResponse(
            status_code=500,
            content={
                "error": "Internal server error",
                "detail": str(exc),
                "status_code": 500,
            },
        )

    @app.exception_handler(ValueError)
    async def value_error_handler(request: Request, exc: ValueError):
        return JSONResponse(
            status_code=400,
            content={"error": "Bad request", "detail": str(exc), "status_code": 400},
        )

    # ── Health check ──────────────────────────────────────────────────────────

    @app.get("/health", tags=["meta"], summary="Health check")
    async def health():
        """Return 200 OK if the store answers a count query."""
        store = get_store()
        cfg = get_search_config()
        predicate = build_predicate("", cfg.columns)
        try:
            result = await run_query(store, cfg.table, predicate, 1)
        except StoreError as exc:
            return JSONResponse(
                status_code=503,
                content={"status": "degraded", "backend": store.backend_name,
                         "error": str(exc)},
            )
        return {"status": "ok", "backend": store.backend_name,
                "table": cfg.table, "records": result.count}

    # ── Register routers ──────────────────────────────────────────────────────

    app.include_router(search.router, prefix="/api/v1")

    # ── Jinja2 templates ──────────────────────────────────────────────────────
    templates_dir = Path(__file__).parent.parent / "templates"

    if templates_dir.exists():
        templates = Jinja2Templates(directory=str(templates_dir))
        frontend_routes.set_templates(templates)
        app.include_router(frontend_routes.router)

    return app


# Singleton instance for uvicorn
app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "api.app:app",
        host=_cfg.api_host,
        port=_cfg.api_port,
        reload=True,
        log_level="info",
    )
