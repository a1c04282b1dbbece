"""Convert foreign-currency amounts into a single default currency."""

from .core.errors import ConverterError, FetchError, InitializationError, ParseError
from .services.rates.conversion import (
    ConversionResult,
    Converter,
    ParseFailure,
    Transaction,
    UnknownCurrency,
)

__version__ = "0.1.0"

__all__ = [
    "ConversionResult",
    "Converter",
    "ConverterError",
    "FetchError",
    "InitializationError",
    "ParseError",
    "ParseFailure",
    "Transaction",
    "UnknownCurrency",
]
