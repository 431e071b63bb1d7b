# vitrine/modules/cash_register/routers.py

from typing import Optional

from fastapi import APIRouter, Depends, Path, Query

from vitrine.core.errors import InvalidInputError
from .models import ActivateStorePayload, AddEntryPayload, CloseRegisterPayload, OpenRegisterPayload
from .services import CashRegisterService, get_cash_register_service

cash_register_router = APIRouter()


@cash_register_router.post("/activate-store", summary="Activate a store and notify the admin", tags=["Cash Register"])
async def activate_store_endpoint(payload: ActivateStorePayload, service: CashRegisterService = Depends(get_cash_register_service)):
    register = await service.activate_store(payload.store_id, payload.store_name)
    return {"success": True, "register": register}


@cash_register_router.post("/open", summary="Open a register", tags=["Cash Register"])
async def open_register_endpoint(payload: OpenRegisterPayload, service: CashRegisterService = Depends(get_cash_register_service)):
    register = await service.open_register(payload.store_id, payload.cashier_id, payload.initial_balance, payload.commission_rate)
    return {"success": True, "register": register}


@cash_register_router.post("/entry", summary="Add an item to an open register", tags=["Cash Register"])
async def add_entry_endpoint(payload: AddEntryPayload, service: CashRegisterService = Depends(get_cash_register_service)):
    entry = await service.add_item(
        payload.register_id,
        unit_price=payload.unit_price,
        quantity=payload.quantity,
        product_id=payload.product_id,
        description=payload.description,
    )
    return {"success": True, "entry": entry}


@cash_register_router.post("/close", summary="Close a register", tags=["Cash Register"])
async def close_register_endpoint(payload: CloseRegisterPayload, service: CashRegisterService = Depends(get_cash_register_service)):
    register = await service.close_register(payload.register_id, payload.final_balance, payload.pix_received, payload.bank_account)
    return {"success": True, "register": register}


@cash_register_router.get("/history", summary="Register detail or store register list", tags=["Cash Register"])
async def history_endpoint(
    register_id: Optional[str] = Query(None),
    store_id: Optional[str] = Query(None),
    service: CashRegisterService = Depends(get_cash_register_service),
):
    if register_id:
        history = await service.get_history(register_id)
        return {"success": True, **history.model_dump()}
    if store_id:
        return {"success": True, "registers": await service.list_store_registers(store_id)}
    raise InvalidInputError("register_id or store_id is required")


@cash_register_router.get("/{register_id}/commission", summary="Commission of a register", tags=["Cash Register"])
async def commission_endpoint(register_id: str = Path(...), service: CashRegisterService = Depends(get_cash_register_service)):
    return {"register_id": register_id, "commission": await service.calculate_commission(register_id)}
