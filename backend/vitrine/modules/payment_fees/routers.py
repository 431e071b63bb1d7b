# vitrine/modules/payment_fees/routers.py

from typing import Any, Dict, Optional

from fastapi import APIRouter, Body, Depends, Query, status
from fastapi.responses import JSONResponse
from loguru import logger
from pydantic import ValidationError

from vitrine.core.errors import AppError
from .models import CardBrand, FeeCalculation, PaymentFeeConfig, PaymentMethod
from .services import PaymentFeeManager, get_payment_fee_manager

payment_fees_router = APIRouter()


def _failure(message: str) -> JSONResponse:
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content={"success": False, "error": message})


@payment_fees_router.post("/calculate", summary="Calculate the fee for a payment", tags=["Payment Fees"])
async def calculate_fee_endpoint(
    payload: Dict[str, Any] = Body(...),
    fee_manager: PaymentFeeManager = Depends(get_payment_fee_manager),
):
    try:
        calculation = FeeCalculation.model_validate(payload)
    except ValidationError as e:
        return _failure("; ".join(f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors()))
    try:
        result = fee_manager.calculate_fee(calculation)
    except AppError as e:
        logger.warning(f"Fee calculation rejected: {e.message}")
        return _failure(e.message)
    return {"success": True, "calculation": result.model_dump()}


@payment_fees_router.get("/config", summary="List fee configurations", tags=["Payment Fees"])
async def list_configs_endpoint(fee_manager: PaymentFeeManager = Depends(get_payment_fee_manager)):
    return {"success": True, "configs": [c.model_dump() for c in fee_manager.get_all_configs()]}


@payment_fees_router.post("/config", summary="Add or replace a fee configuration", tags=["Payment Fees"])
async def upsert_config_endpoint(
    config: PaymentFeeConfig,
    fee_manager: PaymentFeeManager = Depends(get_payment_fee_manager),
):
    saved = fee_manager.add_config(config)
    return {"success": True, "config": saved.model_dump()}


@payment_fees_router.delete("/config", summary="Remove a fee configuration", tags=["Payment Fees"])
async def remove_config_endpoint(
    payment_method: PaymentMethod = Query(...),
    card_brand: Optional[CardBrand] = Query(None),
    fee_manager: PaymentFeeManager = Depends(get_payment_fee_manager),
):
    removed = fee_manager.remove_config(payment_method, card_brand)
    return {"success": True, "removed": removed}
