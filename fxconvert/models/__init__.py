"""Pydantic models for rate feed records and the HTTP surface."""

from .conversion import (
    BatchConversionOut,
    BatchConvertPayload,
    ConversionOut,
    ConvertPayload,
)
from .rates import RateRecord, RateTableOut, RefreshOut

__all__ = [
    "BatchConversionOut",
    "BatchConvertPayload",
    "ConversionOut",
    "ConvertPayload",
    "RateRecord",
    "RateTableOut",
    "RefreshOut",
]
