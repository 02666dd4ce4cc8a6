"""
Pydantic schemas for Toolkit request/response validation.

Request bodies are explicit allow-lists: keys that are not declared here are
dropped before they reach the service layer.
"""
from datetime import datetime
from typing import Any, Optional

from pydantic import Field, field_validator

from toolkit_backend.models.stock_history import StockAction
from toolkit_backend.models.variant import StockStatus
from toolkit_backend.schemas.envelope import CamelModel


def _strip_required(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    value = value.strip()
    if not value:
        raise ValueError("must not be blank")
    return value


# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------

class ToolkitCreate(CamelModel):
    """Payload for inserting stock (creates the toolkit or merges into it)."""

    name: str = Field(..., min_length=1, max_length=200)
    type: str = Field(..., min_length=1, max_length=100)
    size: Optional[str] = Field(None, max_length=50)
    color: Optional[str] = Field(None, max_length=50)
    stock_count: int = Field(0, ge=0)
    min_stock_level: Optional[int] = Field(None, ge=1)
    reason: Optional[str] = Field(None, max_length=500)
    updated_by: Optional[str] = Field(None, max_length=100)

    @field_validator("name", "type")
    @classmethod
    def not_blank(cls, v):
        """Reject names and types that are only whitespace."""
        return _strip_required(v)


class VariantUpdate(CamelModel):
    """Payload for updating one variant."""

    size: Optional[str] = Field(None, max_length=50)
    color: Optional[str] = Field(None, max_length=50)
    stock_count: Optional[int] = Field(None, ge=0)
    min_stock_level: Optional[int] = Field(None, ge=1)
    inuse: Optional[bool] = None
    reason: Optional[str] = Field(None, max_length=500)
    updated_by: Optional[str] = Field(None, max_length=100)

    def changes(self) -> dict[str, Any]:
        """Fields the caller actually supplied, minus the ledger metadata."""
        return self.model_dump(
            exclude={"reason", "updated_by"},
            exclude_unset=True,
            exclude_none=True,
        )


class ReduceStockRequest(CamelModel):
    """Payload for debiting stock from a variant."""

    quantity: int = Field(..., gt=0, description="Number of items to hand over")
    reason: Optional[str] = Field(None, max_length=500)
    updated_by: Optional[str] = Field(None, max_length=100)
    person: Optional[str] = Field(None, max_length=200, description="Recipient of the items")


class VariantSpec(CamelModel):
    """One entry of the variant list supplied to a toolkit update."""

    id: Optional[str] = None
    size: Optional[str] = Field(None, max_length=50)
    color: Optional[str] = Field(None, max_length=50)
    stock_count: Optional[int] = Field(None, ge=0)
    min_stock_level: Optional[int] = Field(None, ge=1)
    inuse: Optional[bool] = None


class ToolkitUpdate(CamelModel):
    """Payload for updating toolkit details and, optionally, its variant set."""

    name: Optional[str] = Field(None, min_length=1, max_length=200)
    type: Optional[str] = Field(None, min_length=1, max_length=100)
    variants: Optional[list[VariantSpec]] = Field(None, min_length=1)
    reason: Optional[str] = Field(None, max_length=500)
    updated_by: Optional[str] = Field(None, max_length=100)

    @field_validator("name", "type")
    @classmethod
    def not_blank(cls, v):
        return _strip_required(v)

    def variant_specs(self) -> Optional[list[dict[str, Any]]]:
        if self.variants is None:
            return None
        return [spec.model_dump(exclude_none=True) for spec in self.variants]


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------

class StockHistoryEntryResponse(CamelModel):
    id: str
    action: StockAction
    previous_stock: int
    new_stock: int
    change_amount: int
    reason: str
    updated_by: str
    person: Optional[str] = None
    timestamp: datetime


class VariantResponse(CamelModel):
    id: str
    size: str
    color: str
    stock_count: int
    min_stock_level: int
    status: StockStatus
    inuse: bool
    first_added_date: datetime
    last_updated_date: datetime
    stock_history: list[StockHistoryEntryResponse]


class ToolkitResponse(CamelModel):
    id: str
    name: str
    type: str
    variants: list[VariantResponse]
    total_stock: int
    overall_status: StockStatus
    created_at: datetime
    updated_at: datetime
    version: int


class ToolkitSummary(CamelModel):
    """Toolkit header used by the stock-history projections."""

    id: str
    name: str
    type: str
    created_at: datetime


class VariantSummary(CamelModel):
    id: str
    size: str
    color: str
    current_stock: int
    first_added_date: datetime
    last_updated_date: datetime


class VariantHistory(VariantSummary):
    stock_history: list[StockHistoryEntryResponse]


class VariantStockHistoryResponse(CamelModel):
    """History of a single variant, newest entry first."""

    toolkit: ToolkitSummary
    variant: VariantSummary
    stock_history: list[StockHistoryEntryResponse]


class ToolkitStockHistoryResponse(CamelModel):
    """Histories of every variant of a toolkit, each newest entry first."""

    toolkit: ToolkitSummary
    variants: list[VariantHistory]
