"""
Frontend HTML routes.

Serves the Jinja2 templates for the search page and the results partial.

Routes:
    GET /                   → index.html (search box + results when ?q= given)
    GET /partials/results   → partials/results.html (HTMX swap target)

The search box submits on Enter or via the button; HTMX swaps the partial
into the page and marks the button busy while the request is in flight.
"""

from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import HTMLResponse
from fastapi.templating import Jinja2Templates

from api.database import get_controller
from api.models import SearchStateOut
from earmarks.controller import SearchController
from earmarks.state import Idle

router = APIRouter(tags=["frontend"])

# Templates instance is set by create_app() after mounting.
_templates: Jinja2Templates | None = None


def set_templates(t: Jinja2Templates) -> None:
    global _templates
    _templates = t


def _tmpl() -> Jinja2Templates:
    if _templates is None:
        raise RuntimeError("Templates not initialised — call set_templates() first")
    return _templates


async def _run_search(request: Request, controller: SearchController) -> dict[str, Any]:
    """Search when ?q= is present and return template context vars."""
    q = request.query_params.get("q")
    state = Idle() if q is None else await controller.search(q)
    return {
        "query": q or "",
        "state": SearchStateOut.from_state(state),
    }


# ── Routes ────────────────────────────────────────────────────────────────────

@router.get("/", response_class=HTMLResponse, include_in_schema=False)
async def index(
    request: Request,
    controller: SearchController = Depends(get_controller),
) -> HTMLResponse:
    """Main search page."""
    context = await _run_search(request, controller)
    return _tmpl().TemplateResponse(request, "index.html", context)


@router.get("/partials/results", response_class=HTMLResponse, include_in_schema=False)
async def results_partial(
    request: Request,
    controller: SearchController = Depends(get_controller),
) -> HTMLResponse:
    """HTMX partial: results table, count line, or error line."""
    context = await _run_search(request, controller)
    return _tmpl().TemplateResponse(request, "partials/results.html", context)
