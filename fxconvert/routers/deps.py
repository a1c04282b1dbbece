from __future__ import annotations

import logging

from fastapi import Request

from fxconvert.core.errors import FetchError
from fxconvert.services.rates.conversion import Converter

logger = logging.getLogger("fxconvert.routers")


def get_converter(request: Request) -> Converter:
    return request.app.state.converter


def fresh_converter(request: Request) -> Converter:
    """Converter dependency that first tops up stale rates.

    A failed top-up is logged and the request is served from the cached table.
    """
    converter = get_converter(request)
    try:
        converter.refresh_if_stale()
    except FetchError as e:
        logger.warning("serving stale rates loaded at %s: %s", converter.loaded_at, e)
    return converter
