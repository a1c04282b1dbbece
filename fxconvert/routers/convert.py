from __future__ import annotations

from fastapi import APIRouter, Depends

from fxconvert.models.conversion import (
    BatchConversionOut,
    BatchConvertPayload,
    ConversionOut,
    ConvertPayload,
)
from fxconvert.services.rates.conversion import (
    BatchOutcome,
    ConversionResult,
    Converter,
    UnknownCurrency,
)
from .deps import fresh_converter

"""Conversion router.

Endpoints:
    - POST /convert        -> one transaction, 400 on malformed text
    - POST /convert/batch  -> many transactions, one result per input in order
"""

router = APIRouter(prefix="/convert", tags=["convert"])


def to_out(outcome: BatchOutcome, text: str) -> ConversionOut:
    if isinstance(outcome, ConversionResult):
        return ConversionOut(
            status="ok",
            source=text,
            result=str(outcome),
            currency=outcome.currency,
            amount=f"{outcome.amount:.2f}",
            rate=str(outcome.rate),
        )
    if isinstance(outcome, UnknownCurrency):
        return ConversionOut(
            status="unknown_currency",
            source=text,
            currency=outcome.code,
            detail=str(outcome),
        )
    return ConversionOut(status="parse_error", source=text, detail=outcome.reason)


@router.post("", summary="Convert one transaction to the default currency")
async def convert_one(
    payload: ConvertPayload,
    converter: Converter = Depends(fresh_converter),
) -> ConversionOut:
    return to_out(converter.convert_one(payload.transaction), payload.transaction)


@router.post("/batch", summary="Convert a batch of transactions")
async def convert_many(
    payload: BatchConvertPayload,
    converter: Converter = Depends(fresh_converter),
) -> BatchConversionOut:
    outcomes = converter.convert_many(payload.transactions)
    return BatchConversionOut(
        results=[to_out(o, t) for o, t in zip(outcomes, payload.transactions)]
    )
