# vitrine/modules/pricing/routers.py

import math
from datetime import datetime, timezone
from typing import List

from fastapi import APIRouter, Depends, Path, Query
from loguru import logger

from vitrine.core.cache import CacheManager, get_cache
from vitrine.core.errors import InvalidInputError, NotFoundError
from .marketplaces import (
    BRAZILIAN_MARKETPLACES,
    FinalPrice,
    Marketplace,
    calculate_final_price,
    compare_marketplace_fees,
    get_marketplace,
)

pricing_router = APIRouter()

COMPARISON_CACHE_TTL = 10 * 60


def _validate_price(price: float) -> float:
    if not math.isfinite(price) or price <= 0:
        raise InvalidInputError("Invalid price")
    return price


@pricing_router.get("/marketplaces", response_model=List[Marketplace], summary="List known marketplaces", tags=["Market"])
async def list_marketplaces_endpoint():
    return BRAZILIAN_MARKETPLACES


@pricing_router.get("/fees", summary="Compare marketplace fees for a price", tags=["Market"])
async def compare_fees_endpoint(
    price: float = Query(100.0, description="Preço base do produto"),
    cache: CacheManager = Depends(get_cache),
):
    price = _validate_price(price)
    log = logger.bind(price=price)

    async def build():
        log.debug("Computing marketplace fee comparison.")
        return [item.model_dump() for item in compare_marketplace_fees(price)]

    comparison = await cache.get_or_set(f"market:fees:{price}", build, ttl=COMPARISON_CACHE_TTL)
    best, worst = comparison[0], comparison[-1]
    return {
        "success": True,
        "price": price,
        "comparison": comparison,
        "insights": {
            "best_marketplace": {
                "name": best["marketplace"],
                "net_profit": best["net_profit"],
                "profit_margin": f"{best['profit_margin']:.2f}",
            },
            "worst_marketplace": {
                "name": worst["marketplace"],
                "net_profit": worst["net_profit"],
                "profit_margin": f"{worst['profit_margin']:.2f}",
            },
            "difference": best["net_profit"] - worst["net_profit"],
        },
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


@pricing_router.get("/fees/{marketplace_id}", response_model=FinalPrice, summary="Fees for one marketplace", tags=["Market"])
async def marketplace_fees_endpoint(
    marketplace_id: str = Path(...),
    price: float = Query(100.0),
):
    price = _validate_price(price)
    if get_marketplace(marketplace_id) is None:
        raise NotFoundError(f"Marketplace '{marketplace_id}' not found")
    return calculate_final_price(price, marketplace_id)
