from __future__ import annotations

from fastapi import APIRouter, Depends

from fxconvert.models.rates import RateTableOut, RefreshOut
from fxconvert.services.rates.conversion import Converter
from .deps import get_converter

"""Rates router.

Endpoints:
    - GET /rates          -> current table (rates as decimal strings)
    - POST /rates/refresh -> force a refetch; 502 if the feed fails, table untouched
"""

router = APIRouter(prefix="/rates", tags=["rates"])


@router.get("", summary="Show the loaded rate table")
async def list_rates(converter: Converter = Depends(get_converter)) -> RateTableOut:
    snapshot = converter.snapshot
    return RateTableOut(
        default_currency=converter.default_currency,
        source=snapshot.source,
        loaded_at=snapshot.fetched_at,
        stale=converter.is_stale(),
        rates={code: str(rate) for code, rate in sorted(snapshot.rates.items())},
    )


@router.post("/refresh", summary="Refetch the rate feed now")
def refresh_rates(converter: Converter = Depends(get_converter)) -> RefreshOut:
    # Runs in the threadpool; fetch() blocks.
    snapshot = converter.refresh()
    return RefreshOut(
        status="ok",
        refreshed=True,
        count=len(snapshot.rates),
        loaded_at=snapshot.fetched_at,
    )
