# vitrine/api/v1.py

from fastapi import APIRouter, Depends

from vitrine.api.endpoints import status
from vitrine.core.security import require_api_key
from vitrine.modules.agents.routers import agents_router
from vitrine.modules.campaigns.routers import campaigns_router, cron_router
from vitrine.modules.cash_register.routers import cash_register_router
from vitrine.modules.customers.routers import customers_router
from vitrine.modules.payment_fees.routers import payment_fees_router
from vitrine.modules.pricing.routers import pricing_router
from vitrine.modules.stock_alerts.routers import stock_alerts_router
from vitrine.modules.tasks.routers import tasks_router
from vitrine.modules.webhooks.routers import webhooks_router

api_router = APIRouter()

# Rotas administrativas exigem X-API-Key quando API_KEY está configurada
admin = [Depends(require_api_key)]

api_router.include_router(status.router)
api_router.include_router(pricing_router, prefix="/market")
api_router.include_router(payment_fees_router, prefix="/payment-fees", dependencies=admin)
api_router.include_router(customers_router, prefix="/customers", dependencies=admin)
api_router.include_router(campaigns_router, prefix="/campaigns", dependencies=admin)
api_router.include_router(agents_router, prefix="/agents", dependencies=admin)
api_router.include_router(cash_register_router, prefix="/cash-register", dependencies=admin)
api_router.include_router(stock_alerts_router, prefix="/stock-alerts", dependencies=admin)
api_router.include_router(tasks_router, prefix="/tasks", dependencies=admin)
# Cron e webhooks têm autenticação própria (bearer / verify token)
api_router.include_router(cron_router, prefix="/cron")
api_router.include_router(webhooks_router, prefix="/webhooks")
