# vitrine/modules/stock_alerts/services.py

import math
from datetime import datetime
from typing import List, Optional, Tuple

from fastapi import Depends
from motor.motor_asyncio import AsyncIOMotorDatabase
from loguru import logger

from vitrine.core.database import get_database
from vitrine.core.errors import NotFoundError
from .models import AlertSeverity, StockAlertInDB, StockAlertStats, StockCheck
from .repository import StockAlertRepository


def classify_stock(current_stock: int, min_stock: int) -> Optional[AlertSeverity]:
    """Severidade do alerta para o nível atual; None quando o estoque está ok."""
    if current_stock == 0:
        return "out"
    if current_stock <= math.floor(min_stock * 0.5):
        return "critical"
    if current_stock <= min_stock:
        return "low"
    return None


def alert_message(severity: AlertSeverity, check: StockCheck) -> str:
    if severity == "out":
        return f"PRODUTO ESGOTADO: {check.product_name} na {check.store_name}"
    if severity == "critical":
        return f"ESTOQUE CRÍTICO: {check.product_name} na {check.store_name} - Apenas {check.current_stock} unidades"
    return f"Estoque baixo: {check.product_name} na {check.store_name} - {check.current_stock} unidades"


class StockAlertService:
    def __init__(self, repo: StockAlertRepository):
        self.repo = repo

    async def check_stock_level(self, check: StockCheck) -> Optional[StockAlertInDB]:
        severity = classify_stock(check.current_stock, check.min_stock)
        if severity is None:
            return None
        alert = await self.repo.create({
            **check.model_dump(),
            "severity": severity,
            "message": alert_message(severity, check),
            "resolved": False,
            "resolved_at": None,
        })
        logger.warning(f"Stock alert ({severity}) for product {check.product_id} in store {check.store_id}")
        return alert

    async def list_alerts(self, store_id: Optional[str] = None, resolved: Optional[bool] = None) -> List[StockAlertInDB]:
        return await self.repo.list_alerts(store_id, resolved)

    async def resolve_alert(self, alert_id: str) -> StockAlertInDB:
        alert = await self.repo.get_by_id(alert_id)
        if alert is None:
            raise NotFoundError("Alerta não encontrado")
        if alert.resolved:
            return alert
        return await self.repo.update(alert_id, {"resolved": True, "resolved_at": datetime.utcnow()})

    async def get_alert_stats(self, store_id: Optional[str] = None, now: Optional[datetime] = None) -> StockAlertStats:
        now = now or datetime.utcnow()
        start_of_day = now.replace(hour=0, minute=0, second=0, microsecond=0)
        return StockAlertStats(
            total_alerts=await self.repo.count_active(store_id),
            critical_alerts=await self.repo.count_active(store_id, "critical"),
            low_alerts=await self.repo.count_active(store_id, "low"),
            out_of_stock=await self.repo.count_active(store_id, "out"),
            resolved_today=await self.repo.count_resolved_since(start_of_day, store_id),
        )


def get_stock_alert_service(db: AsyncIOMotorDatabase = Depends(get_database)) -> StockAlertService:
    return StockAlertService(StockAlertRepository(db))
