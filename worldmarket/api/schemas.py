"""Pydantic schemas for market API request bodies."""

from typing import Any, Literal, Optional
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from worldmarket.pricing import PricingOptions


def _reject_bool(value: Any) -> Any:
    # JSON true/false would otherwise coerce to 1.0/0.0
    if isinstance(value, bool):
        raise ValueError("qty must be a number")
    return value


class QuoteRequest(BaseModel):
    """Body of POST /quote."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    item_id: str = Field(alias="itemId", min_length=1)
    qty: float = Field(default=1, gt=0, allow_inf_nan=False)
    country_id: Optional[str] = Field(default=None, alias="countryId")
    opts: Optional[PricingOptions] = None

    @field_validator("qty", mode="before")
    @classmethod
    def qty_not_bool(cls, value: Any) -> Any:
        return _reject_bool(value)


class TradeRequest(BaseModel):
    """Body of POST /trade."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    actor: Optional[str] = None
    item_id: str = Field(alias="itemId", min_length=1)
    qty: float = Field(gt=0, allow_inf_nan=False)
    country_id: Optional[str] = Field(default=None, alias="countryId")
    side: Literal["buy", "sell"]
    opts: Optional[PricingOptions] = None

    @field_validator("qty", mode="before")
    @classmethod
    def qty_not_bool(cls, value: Any) -> Any:
        return _reject_bool(value)


def describe_validation_error(error: ValidationError) -> str:
    """Short client-facing message for the first failing field, e.g. 'missing itemId'."""
    errors = error.errors()
    if not errors:
        return "invalid request"
    first = errors[0]
    field = ".".join(str(part) for part in first.get("loc", ())) or "body"
    if first.get("type") == "missing":
        return f"missing {field}"
    return f"invalid {field}"
