"""Pydantic models for records, API requests and responses.

Field names are snake_case in Python and camelCase on the wire.
"""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

ASSIGNEES: tuple[str, ...] = ("吉川さん", "伊藤さん", "望月さん", "折出さん")
"""Employees that can be assigned to a record."""

Assignee = Literal["吉川さん", "伊藤さん", "望月さん", "折出さん", ""]
"""An employee from ASSIGNEES, or "" when the record is unassigned."""


class CamelModel(BaseModel):
    """Base model serialized with camelCase aliases."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
    )


class ItemFields(CamelModel):
    """Fields persisted in a spreadsheet row."""

    product_url: str = Field(..., description="Product page URL (column A)")
    brand_name: str = Field(default="", description="Brand / category label (D)")
    check: bool = Field(default=False, description="Entry complete (E)")
    bid_target: bool = Field(default=False, description="Bid target (F)")
    assignee: Assignee = Field(default="", description="Assigned employee (G)")
    market_price: float | None = Field(default=None, description="Market price (H)")
    bid_price: float | None = Field(default=None, description="Bid price (K)")
    wholesale_price: float | None = Field(
        default=None, description="Wholesale price (L)"
    )
    reference_url1: str = ""
    reference_url2: str = ""
    reference_url3: str = ""
    reference_url4: str = ""
    reference_url5: str = ""
    notes: str = Field(default="", description="Free-text note (R)")
    representative_check: bool = Field(
        default=False, description="Reviewed by the representative (S)"
    )
    judgment_result: bool = Field(default=False, description="Pass / fail (T)")
    feedback: str = Field(default="", description="Representative feedback (U)")
    feedback_confirmed: bool = Field(
        default=False, description="Feedback acknowledged (V)"
    )


class AuctionItem(ItemFields):
    """A record loaded from one spreadsheet data row.

    ``id`` is the 1-based row number of the record in the worksheet. It is
    only stable while rows are never inserted, deleted or reordered.
    """

    id: str = Field(..., description="Spreadsheet row number (1-based)")
    created_at: datetime = Field(..., description="Synthesized at read time")
    updated_at: datetime = Field(..., description="Synthesized at read time")


class CreateItemRequest(ItemFields):
    """Body of POST /items."""

    @field_validator("product_url")
    @classmethod
    def validate_product_url(cls, v: str) -> str:
        """A record without a product URL would be read back as a gap row."""
        if not v.strip():
            raise ValueError("productUrl must not be empty")
        return v


class UpdatePayload(CamelModel):
    """Body of PATCH /items/{row_id}.

    Only keys present in the request are written. A key sent with ``null``
    clears the stored cell; an absent key leaves it untouched.
    """

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )

    check: bool | None = None
    bid_target: bool | None = None
    assignee: Assignee | None = None
    market_price: float | None = None
    reference_url1: str | None = None
    reference_url2: str | None = None
    reference_url3: str | None = None
    reference_url4: str | None = None
    reference_url5: str | None = None
    notes: str | None = None
    representative_check: bool | None = None
    judgment_result: bool | None = None
    feedback: str | None = None
    feedback_confirmed: bool | None = None

    def changes(self) -> dict[str, Any]:
        """Return only the fields that were explicitly provided."""
        return self.model_dump(exclude_unset=True)


class SuccessResponse(BaseModel):
    """Response body of successful mutations."""

    success: bool = True


class HealthResponse(CamelModel):
    """Response model for health check endpoint."""

    status: str
    timestamp: str
    version: str
    sheets_configured: bool


class ErrorResponse(CamelModel):
    """Error body for API error responses.

    ``error`` is the machine-readable kind (e.g. ``not_configured``) and
    ``message`` the human-readable description.
    """

    error: str = Field(..., description="Machine-readable error kind")
    message: str = Field(..., description="Human-readable error message")
    details: dict[str, Any] | None = Field(
        default=None,
        description="Additional error details for debugging",
    )
    request_id: str | None = Field(
        default=None,
        description="Request ID for error correlation",
    )
