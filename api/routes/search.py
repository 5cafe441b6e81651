"""
GET /api/v1/search endpoint.

Runs one search through a SearchController and returns the resulting state.
A failed store call is reported as ``status="failed"`` with the error
message, not as an HTTP error: the failure is part of the search state.
"""

import logging

from fastapi import APIRouter, Depends, Query

from api.database import get_controller
from api.models import SearchStateOut
from earmarks.controller import SearchController

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/search", tags=["search"])


@router.get(
    "",
    response_model=SearchStateOut,
    summary="Search earmarks",
    responses={
        200: {
            "description": "Search state after the store call resolved",
            "content": {"application/json": {"example": {
                "status": "succeeded", "query": "acme", "count": 1, "error": None,
                "rows": [{"year": 2020, "recipient": "Acme Corp", "amount": 500000.0,
                          "amount_display": "$500,000", "agency": "DOT", "data": {}}],
            }}},
        },
    },
)
async def search(
    q: str = Query("", description="Text matched case-insensitively against "
                                    "recipient, budget function and agency"),
    controller: SearchController = Depends(get_controller),
) -> SearchStateOut:
    """Search recipient, budget_function and agency for ``q``.

    Returns at most ``page_size`` rows plus the exact total match count.
    An empty ``q`` matches every record.
    """
    state = await controller.search(q)
    if state.status == "failed":
        logger.info("search q=%r failed: %s", q, controller.error)
    return SearchStateOut.from_state(state)
