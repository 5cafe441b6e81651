"""
Pydantic response models for the API.

Optional fields default to None so that partial responses are valid when
records have NULL or missing columns.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from earmarks.state import Failed, RequestState, Succeeded
from utils.formatting import project_record


class EarmarkOut(BaseModel):
    """One earmark record projected for display."""
    year: int | None = Field(None, description="Fiscal year of the earmark", examples=[2020])
    recipient: str | None = Field(None, description="Recipient organization", examples=["Acme Corp"])
    amount: float | None = Field(None, description="Amount in dollars", examples=[500000.0])
    amount_display: str = Field("-", description="Amount as a currency string", examples=["$500,000"])
    agency: str | None = Field(None, description="Funding agency", examples=["DOT"])
    data: dict[str, Any] = Field(default_factory=dict, description="Full record as key-value pairs")

    @classmethod
    def from_record(cls, record: dict[str, Any]) -> "EarmarkOut":
        projected = project_record(record)
        amount = projected["amount"]
        try:
            amount = float(amount) if amount is not None else None
        except (TypeError, ValueError):
            amount = None
        year = projected["year"]
        return cls(
            year=year if isinstance(year, int) else None,
            recipient=None if projected["recipient"] is None else str(projected["recipient"]),
            amount=amount,
            amount_display=projected["amount_display"],
            agency=None if projected["agency"] is None else str(projected["agency"]),
            data=dict(record),
        )


class SearchStateOut(BaseModel):
    """Response body for GET /api/v1/search."""
    status: str = Field(..., description="idle | in_flight | succeeded | failed", examples=["succeeded"])
    query: str = Field("", description="The search text this state belongs to", examples=["acme"])
    count: int = Field(0, description="Total number of matching records (ignores the page size)", examples=[42])
    rows: list[EarmarkOut] = Field(default_factory=list, description="At most page_size matching records")
    error: str | None = Field(None, description="Error message when status is failed")

    @classmethod
    def from_state(cls, state: RequestState) -> "SearchStateOut":
        query = getattr(state, "query", "")
        if isinstance(state, Succeeded):
            return cls(
                status=state.status,
                query=query,
                count=state.result.count,
                rows=[EarmarkOut.from_record(r) for r in state.result.rows],
            )
        if isinstance(state, Failed):
            return cls(status=state.status, query=query, error=state.message)
        return cls(status=state.status, query=query)


class ErrorResponse(BaseModel):
    """Standard error response body."""
    error: str = Field(..., description="Short error category", examples=["Bad request"])
    detail: str | None = Field(None, description="Extended error detail")
    status_code: int = Field(..., ge=400, le=599, description="HTTP status code", examples=[400])
