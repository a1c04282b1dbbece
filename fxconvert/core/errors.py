"""Converter exception taxonomy and the FastAPI handlers that render it.

Unknown currencies are a conversion outcome, not an exception (see ``fxconvert.services.rates.conversion.UnknownCurrency``).
"""

import logging

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette import status
from starlette.exceptions import HTTPException as StarletteHTTPException

logger = logging.getLogger("fxconvert.errors")


class ConverterError(Exception):
    """Base class for every error raised by the converter core."""


class FetchError(ConverterError):
    """The rate source was unreachable, timed out or returned an unusable document."""


class InitializationError(ConverterError):
    """A Converter could not load its first rate snapshot."""


class ParseError(ConverterError, ValueError):
    """Transaction text is not of the form ``"<CODE> <amount>"``."""

    def __init__(self, text: str, reason: str):
        super().__init__(f"cannot parse transaction {text!r}: {reason}")
        self.text = text
        self.reason = reason


def http_error_handler(request: Request, exc: StarletteHTTPException):  # type: ignore
    if exc.status_code == status.HTTP_404_NOT_FOUND and exc.detail == "Not Found":
        return JSONResponse(
            status_code=exc.status_code,
            content={
                "error": "not_found",
                "detail": f"No route for {request.method} {request.url.path}",
            },
        )
    return JSONResponse(
        status_code=exc.status_code,
        content={"error": "http_error", "detail": exc.detail},
    )


def validation_error_handler(request: Request, exc: RequestValidationError):  # type: ignore
    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error": "validation_error",
            "detail": exc.errors(),
        },
    )


def parse_error_handler(request: Request, exc: ParseError):  # type: ignore
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"error": "parse_error", "detail": str(exc)},
    )


def fetch_error_handler(request: Request, exc: FetchError):  # type: ignore
    logger.warning("rate fetch failed: %s", exc)
    return JSONResponse(
        status_code=status.HTTP_502_BAD_GATEWAY,
        content={"error": "fetch_error", "detail": str(exc)},
    )


def server_error_handler(request: Request, exc: Exception):  # type: ignore
    logger.exception("unhandled exception")
    return JSONResponse(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        content={
            "error": "internal_error",
            "detail": "An unexpected error occurred.",
        },
    )
