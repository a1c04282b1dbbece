from fastapi import APIRouter, Depends

from fxconvert.services.rates.conversion import Converter
from .deps import get_converter

router = APIRouter(tags=["health"])


@router.get("/health")
async def health(converter: Converter = Depends(get_converter)):
    return {
        "status": "ok",
        "rates": len(converter.snapshot.rates),
        "loaded_at": converter.loaded_at.isoformat() if converter.loaded_at else None,
        "stale": converter.is_stale(),
    }
