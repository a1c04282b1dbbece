from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Dict, Optional

from pydantic import BaseModel, Field, field_validator


class RateRecord(BaseModel):
    """One ``(currency, rate)`` entry of a rate feed document."""

    currency: str = Field(..., min_length=1)
    rate: Decimal = Field(..., gt=0, allow_inf_nan=False)

    @field_validator("currency", mode="before")
    @classmethod
    def strip_code(cls, v: object) -> object:
        if isinstance(v, str):
            return v.strip()
        return v

    @field_validator("currency")
    @classmethod
    def single_token(cls, v: str) -> str:
        if any(ch.isspace() for ch in v):
            raise ValueError("currency code cannot contain whitespace")
        return v


class RateTableOut(BaseModel):
    default_currency: str
    source: Optional[str] = None
    loaded_at: Optional[datetime] = None
    stale: bool
    rates: Dict[str, str]


class RefreshOut(BaseModel):
    status: str
    refreshed: bool
    count: int
    loaded_at: Optional[datetime] = None
