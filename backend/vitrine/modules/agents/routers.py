# vitrine/modules/agents/routers.py

from fastapi import APIRouter, Depends

from .models import (
    AgentResult,
    AnalyzeAudiencePayload,
    AnalyzeCreativePayload,
    AnalyzeLogPayload,
    AnalyzePerformancePayload,
    AuditPayload,
    BIReportPayload,
    CreateCampaignPayload,
    MonitorCompetitorPayload,
    SalesPatternsPayload,
    SendMessagePayload,
    SocialMetricsPayload,
    SuggestPricingPayload,
    SyncStockPayload,
    WholesalePricePayload,
)
from .services import AgentRegistry, get_agent_registry

agents_router = APIRouter()


# --- Marketing ---

@agents_router.post("/marketing/create-campaign", summary="Create a draft campaign", tags=["Agents"])
async def marketing_create_campaign_endpoint(payload: CreateCampaignPayload, agents: AgentRegistry = Depends(get_agent_registry)):
    return await agents.marketing.create_campaign(payload.name, payload.segment, payload.message)


@agents_router.post("/marketing/analyze-performance", response_model=AgentResult, summary="Recommend campaign improvements", tags=["Agents"])
async def marketing_analyze_endpoint(payload: AnalyzePerformancePayload, agents: AgentRegistry = Depends(get_agent_registry)):
    return await agents.marketing.analyze_performance(payload.campaign_id, payload.metrics)


# --- Security ---

@agents_router.post("/security/audit", response_model=AgentResult, summary="Audit an action", tags=["Agents"])
async def security_audit_endpoint(payload: AuditPayload, agents: AgentRegistry = Depends(get_agent_registry)):
    return await agents.security.audit(payload.actor, payload.action, payload.resource)


@agents_router.post("/security/analyze-log", response_model=AgentResult, summary="Classify a log entry", tags=["Agents"])
async def security_analyze_log_endpoint(payload: AnalyzeLogPayload, agents: AgentRegistry = Depends(get_agent_registry)):
    return await agents.security.analyze_log(payload.entry)


# --- BI / Content / Social / Trending / Competitive ---

@agents_router.post("/bi/report", response_model=AgentResult, summary="Business report", tags=["Agents"])
async def bi_report_endpoint(payload: BIReportPayload, agents: AgentRegistry = Depends(get_agent_registry)):
    return await agents.bi.generate_report(payload.revenue_history, payload.active_clients, payload.churn)


@agents_router.post("/content/analyze-creative", response_model=AgentResult, summary="Creative direction", tags=["Agents"])
async def content_analyze_endpoint(payload: AnalyzeCreativePayload, agents: AgentRegistry = Depends(get_agent_registry)):
    return await agents.content.analyze_creative(payload.media_url, payload.platform)


@agents_router.post("/social/analyze-audience", response_model=AgentResult, summary="Audience segmentation", tags=["Agents"])
async def social_analyze_endpoint(payload: AnalyzeAudiencePayload, agents: AgentRegistry = Depends(get_agent_registry)):
    return await agents.social.analyze_audience(payload.platform, payload.recent_posts)


@agents_router.post("/trending/analyze-sales", response_model=AgentResult, summary="Sales trend analysis", tags=["Agents"])
async def trending_analyze_endpoint(payload: SalesPatternsPayload, agents: AgentRegistry = Depends(get_agent_registry)):
    return await agents.trending.analyze_sales_patterns(payload.products)


@agents_router.post("/competitive/monitor", response_model=AgentResult, summary="Competitor report", tags=["Agents"])
async def competitive_monitor_endpoint(payload: MonitorCompetitorPayload, agents: AgentRegistry = Depends(get_agent_registry)):
    return await agents.competitive.monitor_competitor(payload.name, payload.product_url)


# --- Marketplaces ---

@agents_router.post("/marketplaces/sync-stock", summary="Broadcast a stock level to marketplaces", tags=["Agents"])
async def marketplaces_sync_stock_endpoint(payload: SyncStockPayload, agents: AgentRegistry = Depends(get_agent_registry)):
    return await agents.marketplaces.sync_stock(payload.sku, payload.qty)


@agents_router.post("/marketplaces/wholesale-price", summary="Volume price for wholesale orders", tags=["Agents"])
async def marketplaces_wholesale_endpoint(payload: WholesalePricePayload, agents: AgentRegistry = Depends(get_agent_registry)):
    price = agents.marketplaces.calculate_wholesale_price(payload.base_price, payload.qty)
    return {"base_price": payload.base_price, "qty": payload.qty, "wholesale_price": price}


@agents_router.post("/marketplaces/suggest-pricing", response_model=AgentResult, summary="Price suggestion", tags=["Agents"])
async def marketplaces_suggest_endpoint(payload: SuggestPricingPayload, agents: AgentRegistry = Depends(get_agent_registry)):
    return await agents.marketplaces.suggest_pricing(payload.sku, payload.current_price, payload.competitor_price, payload.type)


# --- Integrations ---

@agents_router.post("/integrations/send-message", summary="Send a WhatsApp message", tags=["Agents"])
async def integrations_send_endpoint(payload: SendMessagePayload, agents: AgentRegistry = Depends(get_agent_registry)):
    result = await agents.integrations.send_message(payload.to, payload.message)
    return {"success": True, "result": result}


@agents_router.post("/integrations/social-metrics", summary="Social metrics for a campaign", tags=["Agents"])
async def integrations_metrics_endpoint(payload: SocialMetricsPayload, agents: AgentRegistry = Depends(get_agent_registry)):
    return await agents.integrations.get_social_metrics(payload.campaign_id)
