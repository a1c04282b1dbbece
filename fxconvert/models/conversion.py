from __future__ import annotations

from typing import List, Literal, Optional

from pydantic import BaseModel, Field


class ConvertPayload(BaseModel):
    transaction: str = Field(..., description='Transaction text, e.g. "CHF 123.45"')


class BatchConvertPayload(BaseModel):
    transactions: List[str] = Field(default_factory=list)


class ConversionOut(BaseModel):
    status: Literal["ok", "unknown_currency", "parse_error"]
    source: str
    result: Optional[str] = None
    currency: Optional[str] = None
    amount: Optional[str] = None
    rate: Optional[str] = None
    detail: Optional[str] = None


class BatchConversionOut(BaseModel):
    results: List[ConversionOut]
