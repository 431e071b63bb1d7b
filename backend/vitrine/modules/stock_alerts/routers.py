# vitrine/modules/stock_alerts/routers.py

from typing import Optional

from fastapi import APIRouter, Depends, Path, Query

from .models import StockAlertStats, StockCheck
from .services import StockAlertService, get_stock_alert_service

stock_alerts_router = APIRouter()


@stock_alerts_router.post("/check", summary="Check a stock level and raise an alert if needed", tags=["Stock Alerts"])
async def check_stock_endpoint(payload: StockCheck, service: StockAlertService = Depends(get_stock_alert_service)):
    alert = await service.check_stock_level(payload)
    return {"success": True, "alert": alert}


@stock_alerts_router.get("/stats", response_model=StockAlertStats, summary="Alert counters", tags=["Stock Alerts"])
async def alert_stats_endpoint(
    store_id: Optional[str] = Query(None),
    service: StockAlertService = Depends(get_stock_alert_service),
):
    return await service.get_alert_stats(store_id)


@stock_alerts_router.get("", summary="List stock alerts (newest first)", tags=["Stock Alerts"])
async def list_alerts_endpoint(
    store_id: Optional[str] = Query(None),
    resolved: Optional[bool] = Query(None),
    service: StockAlertService = Depends(get_stock_alert_service),
):
    return {"success": True, "alerts": await service.list_alerts(store_id, resolved)}


@stock_alerts_router.post("/{alert_id}/resolve", summary="Resolve an alert", tags=["Stock Alerts"])
async def resolve_alert_endpoint(alert_id: str = Path(...), service: StockAlertService = Depends(get_stock_alert_service)):
    alert = await service.resolve_alert(alert_id)
    return {"success": True, "message": "Alerta resolvido!", "alert": alert}
