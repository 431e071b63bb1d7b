# vitrine/modules/cash_register/repository.py

from datetime import datetime
from typing import Any, Dict, List, Optional

from fastapi import Depends
from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING, ReturnDocument
from loguru import logger

from vitrine.core.database import get_database
from vitrine.core.repository import BaseRepository
from .models import CashRegisterEntryInDB, CashRegisterInDB, StoreInDB


class CashRegisterRepository(BaseRepository[CashRegisterInDB]):
    model = CashRegisterInDB
    collection_name = "cash_registers"

    async def create_indexes(self):
        try:
            await self.collection.create_index([("store_id", ASCENDING), ("status", ASCENDING)])
            # Um caixa aberto por operador e loja
            await self.collection.create_index(
                [("store_id", ASCENDING), ("cashier_id", ASCENDING)],
                unique=True,
                partialFilterExpression={"status": "open"},
                name="one_open_register_per_cashier",
            )
            await self.collection.create_index([("store_id", ASCENDING), ("opened_at", DESCENDING)])
            logger.info(f"Índices criados/verificados para a coleção: {self.collection_name}")
        except Exception as e:
            logger.exception(f"Erro ao criar índices para {self.collection_name}: {e}")

    async def find_open(self, store_id: str, cashier_id: str) -> Optional[CashRegisterInDB]:
        return await self.get_by({"store_id": store_id, "cashier_id": cashier_id, "status": "open"})

    async def add_sale(self, register_id: str, amount: float) -> Optional[CashRegisterInDB]:
        """Soma `amount` em total_sales, só se o caixa ainda estiver aberto."""
        obj_id = self._to_objectid(register_id)
        if not obj_id:
            return None
        query = {"_id": obj_id, "status": "open"}
        try:
            document = await self.collection.find_one_and_update(
                query,
                {"$inc": {"total_sales": amount}, "$set": {"updated_at": datetime.utcnow()}},
                return_document=ReturnDocument.AFTER,
            )
        except Exception as e:
            self._handle_db_exception(e, "add_sale", obj_id)
        return self._validate(document)

    async def close(self, register_id: str, fields: Dict[str, Any]) -> Optional[CashRegisterInDB]:
        """Fecha o caixa só se ainda estiver aberto; None se já fechado ou inexistente."""
        obj_id = self._to_objectid(register_id)
        if not obj_id:
            return None
        query = {"_id": obj_id, "status": "open"}
        try:
            document = await self.collection.find_one_and_update(
                query,
                {"$set": {**fields, "status": "closed", "updated_at": datetime.utcnow()}},
                return_document=ReturnDocument.AFTER,
            )
        except Exception as e:
            self._handle_db_exception(e, "close", obj_id)
        return self._validate(document)

    async def list_for_store(self, store_id: str, limit: int = 50) -> List[CashRegisterInDB]:
        return await self.list_by({"store_id": store_id}, limit=limit, sort=[("opened_at", DESCENDING)])


class CashRegisterEntryRepository(BaseRepository[CashRegisterEntryInDB]):
    model = CashRegisterEntryInDB
    collection_name = "cash_register_entries"

    async def list_for_register(self, register_id: str) -> List[CashRegisterEntryInDB]:
        return await self.list_by({"cash_register_id": register_id}, limit=0, sort=[("created_at", DESCENDING)])


class StoreRepository(BaseRepository[StoreInDB]):
    model = StoreInDB
    collection_name = "stores"

    async def mark_active(self, store_id: str, name: str) -> StoreInDB:
        now = datetime.utcnow()
        try:
            document = await self.collection.find_one_and_update(
                {"store_id": store_id},
                {
                    "$set": {"name": name, "active": True, "activated_at": now, "updated_at": now},
                    "$setOnInsert": {"created_at": now},
                },
                upsert=True,
                return_document=ReturnDocument.AFTER,
            )
        except Exception as e:
            self._handle_db_exception(e, "mark_active", query={"store_id": store_id})
        return self._validate(document)


def get_cash_register_repository(db: AsyncIOMotorDatabase = Depends(get_database)) -> CashRegisterRepository:
    return CashRegisterRepository(db)
