# vitrine/modules/cash_register/services.py

from datetime import datetime
from typing import List, Optional

import httpx
from fastapi import Depends
from motor.motor_asyncio import AsyncIOMotorDatabase
from loguru import logger

from vitrine.core.config import settings
from vitrine.core.database import get_database
from vitrine.core.errors import AppError, ConflictError, NotFoundError
from vitrine.services.evolution_client import EvolutionClient, format_phone_number, get_evolution_client
from .models import CashRegisterEntryInDB, CashRegisterInDB, RegisterHistory
from .repository import CashRegisterEntryRepository, CashRegisterRepository, StoreRepository


class CashRegisterService:
    """Operações de caixa do PDV: ativar loja, abrir, lançar itens, fechar e comissão."""

    def __init__(
        self,
        registers: CashRegisterRepository,
        entries: CashRegisterEntryRepository,
        stores: StoreRepository,
        evolution: Optional[EvolutionClient] = None,
        admin_phone: Optional[str] = None,
    ):
        self.registers = registers
        self.entries = entries
        self.stores = stores
        self.evolution = evolution
        self.admin_phone = admin_phone

    async def activate_store(self, store_id: str, store_name: str) -> CashRegisterInDB:
        log = logger.bind(service="CashRegisterService", store_id=store_id)
        now = datetime.utcnow()
        await self.stores.mark_active(store_id, store_name)
        register = await self.registers.create({
            "store_id": store_id,
            "cashier_id": None,
            "opened_at": now,
            "closed_at": now,
            "initial_balance": 0,
            "status": "closed",
        })
        log.info(f"Store '{store_name}' activated.")

        if self.admin_phone and self.evolution is not None:
            message = f"Loja {store_name} ativada. Seu caixa está pronto para uso."
            try:
                await self.evolution.send_message(format_phone_number(self.admin_phone), message)
            except (AppError, httpx.HTTPError) as e:
                log.warning(f"Failed to send WhatsApp activation notice: {e}")
        return register

    async def open_register(self, store_id: str, cashier_id: str, initial_balance: float,
                            commission_rate: Optional[float] = None) -> CashRegisterInDB:
        if await self.registers.find_open(store_id, cashier_id):
            raise ConflictError(f"Cashier '{cashier_id}' already has an open register in store '{store_id}'")
        try:
            register = await self.registers.create({
                "store_id": store_id,
                "cashier_id": cashier_id,
                "opened_at": datetime.utcnow(),
                "initial_balance": initial_balance,
                "total_sales": 0,
                "commission_rate": commission_rate,
                "status": "open",
            })
        except ValueError as e:
            # Outra abertura concorrente venceu (índice one_open_register_per_cashier)
            raise ConflictError(f"Cashier '{cashier_id}' already has an open register in store '{store_id}'") from e
        logger.info(f"Register {register.id} opened by cashier {cashier_id} (store {store_id}).")
        return register

    async def _get_register(self, register_id: str) -> CashRegisterInDB:
        register = await self.registers.get_by_id(register_id)
        if register is None:
            raise NotFoundError(f"Cash register '{register_id}' not found")
        return register

    async def add_item(self, register_id: str, unit_price: float, quantity: int = 1,
                       product_id: Optional[str] = None, description: Optional[str] = None) -> CashRegisterEntryInDB:
        register = await self._get_register(register_id)
        if register.status != "open":
            raise ConflictError("Cannot add items to a closed register")
        total = unit_price * quantity
        if await self.registers.add_sale(register_id, total) is None:
            raise ConflictError("Cannot add items to a closed register")
        return await self.entries.create({
            "cash_register_id": register_id,
            "product_id": product_id,
            "description": description,
            "quantity": quantity,
            "unit_price": unit_price,
            "total": total,
        })

    async def close_register(self, register_id: str, final_balance: float, pix_received: bool = False,
                             bank_account: Optional[str] = None) -> CashRegisterInDB:
        await self._get_register(register_id)
        closed = await self.registers.close(register_id, {
            "closed_at": datetime.utcnow(),
            "final_balance": final_balance,
            "pix_received": pix_received,
            "bank_account": bank_account,
        })
        if closed is None:
            raise ConflictError("Register is already closed")
        # Fechado, total_sales não muda mais: a comissão sai do documento final
        commission = self._commission_for(closed)
        closed = await self.registers.update(register_id, {"total_commission": commission})
        logger.info(f"Register {register_id} closed. Sales: {closed.total_sales:.2f}, Commission: {commission:.2f}")
        return closed

    @staticmethod
    def _commission_for(register: CashRegisterInDB) -> float:
        if not register.commission_rate:
            return 0.0
        return register.total_sales * register.commission_rate / 100

    async def calculate_commission(self, register_id: str) -> float:
        return self._commission_for(await self._get_register(register_id))

    async def get_history(self, register_id: str) -> RegisterHistory:
        register = await self._get_register(register_id)
        entries = await self.entries.list_for_register(register_id)
        return RegisterHistory(
            register=register,
            entries=entries,
            total_entries=len(entries),
            total_sales=register.total_sales,
            commission=self._commission_for(register),
        )

    async def list_store_registers(self, store_id: str) -> List[CashRegisterInDB]:
        return await self.registers.list_for_store(store_id)


def get_cash_register_service(
    db: AsyncIOMotorDatabase = Depends(get_database),
    evolution: EvolutionClient = Depends(get_evolution_client),
) -> CashRegisterService:
    return CashRegisterService(
        CashRegisterRepository(db),
        CashRegisterEntryRepository(db),
        StoreRepository(db),
        evolution=evolution,
        admin_phone=settings.EVOLUTION_ADMIN_PHONE,
    )
