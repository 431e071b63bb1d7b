# vitrine/modules/agents/services.py

import json
import math
import random
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

import httpx
import redis.asyncio as redis
from fastapi import Depends
from motor.motor_asyncio import AsyncIOMotorDatabase

from vitrine.core.database import get_database, get_optional_redis
from vitrine.core.errors import AppError, ServiceUnavailableError, UpstreamServiceError
from vitrine.modules.campaigns.repository import CampaignRepository
from vitrine.modules.pricing.marketplaces import calculate_wholesale_price
from vitrine.services.evolution_client import EvolutionClient, format_phone_number, get_evolution_client
from vitrine.services.llm_client import BaseLLMClient, get_llm_client
from .base import BaseAgent
from .bus import EventBus
from .models import AgentResult, CampaignMetrics
from .repository import AgentReportRepository

JSON_ONLY = "Return only valid JSON. No markdown."


class IntegrationsAgent(BaseAgent):
    """Fachada para os colaboradores externos (WhatsApp, métricas sociais)."""

    name = "integrations"

    def __init__(self, llm, bus, reports=None, evolution: Optional[EvolutionClient] = None):
        super().__init__(llm, bus, reports)
        self.evolution = evolution

    async def send_message(self, to: str, message: str) -> Dict[str, Any]:
        number = format_phone_number(to)
        self.log.info(f"Sending message to {number}")
        try:
            if self.evolution is None:
                raise ServiceUnavailableError("Evolution client not available")
            result = await self.evolution.send_message(number, message)
        except AppError as e:
            await self.publish_event("message_failed", {"to": number, "error": str(e)})
            raise
        except httpx.HTTPError as e:
            await self.publish_event("message_failed", {"to": number, "error": str(e) or type(e).__name__})
            raise UpstreamServiceError(f"WhatsApp send failed: {e}") from e
        await self.publish_event("message_sent", {"to": number, "success": True})
        return result

    async def get_social_metrics(self, campaign_id: str) -> Dict[str, int]:
        # TODO: trocar a simulação pela Graph API quando a integração Meta entrar no backend
        self.log.info(f"Fetching social metrics for campaign {campaign_id} (simulated)")
        return {
            "reach": random.randint(1000, 5999),
            "impressions": random.randint(2000, 9999),
            "clicks": random.randint(50, 549),
            "conversions": random.randint(5, 54),
        }


def engagement_rate(metrics: Dict[str, Any]) -> float:
    """clicks / (impressions ou reach ou 1) * 100"""
    base = metrics.get("impressions") or metrics.get("reach") or 1
    return (metrics.get("clicks") or 0) / base * 100


class MarketingAgent(BaseAgent):
    name = "marketing"

    def __init__(self, llm, bus, reports=None, campaigns: Optional[CampaignRepository] = None,
                 integrations: Optional[IntegrationsAgent] = None):
        super().__init__(llm, bus, reports)
        self.campaigns = campaigns
        self.integrations = integrations

    async def create_campaign(self, name: str, segment: str, message: str) -> Dict[str, Any]:
        """Cria a campanha como rascunho e avisa os outros agentes."""
        self.log.info(f"Creating campaign: {name}")
        campaign_id = None
        if self.campaigns is not None:
            created = await self.campaigns.create(
                {"name": name, "message_template": message, "segment": {"tag": segment}, "status": "draft"}
            )
            campaign_id = created.id
        await self.publish_event("campaign_created", {"id": campaign_id, "name": name, "segment": segment, "message": message})
        return {"status": "success", "id": campaign_id}

    async def analyze_performance(self, campaign_id: str, metrics: Optional[CampaignMetrics] = None) -> AgentResult:
        if metrics is not None:
            metrics_data = metrics.model_dump(exclude_none=True)
        elif self.integrations is not None:
            metrics_data = await self.integrations.get_social_metrics(campaign_id)
        else:
            metrics_data = {}

        rate = engagement_rate(metrics_data)
        self.log.info(f"Engagement Rate: {rate:.2f}% for campaign {campaign_id}")

        if self.campaigns is not None:
            try:
                await self.campaigns.update(campaign_id, {"metrics": metrics_data})
            except RuntimeError as e:
                self.log.warning(f"Failed to save metrics on campaign {campaign_id}: {e}")

        prompt = (
            "Act as a Senior Marketing Analyst.\n"
            "Analyze this campaign performance:\n"
            f"- Reach/Impressions: {metrics_data.get('reach') or metrics_data.get('impressions')}\n"
            f"- Clicks: {metrics_data.get('clicks')}\n"
            f"- Conversions: {metrics_data.get('conversions')}\n"
            f"- Engagement Rate: {rate:.2f}%\n"
            "Generate 1 concise, actionable recommendation to improve results.\n"
            'Return JSON: { "type": "optimization|scaling|content", "suggestion": "string", "priority": "high|medium|low" }\n'
            f"{JSON_ONLY}"
        )
        fallback = {
            "type": "optimization",
            "suggestion": "[FALLBACK] Increase visual contrast in ad creatives to boost CTR above 2%.",
            "priority": "high",
        }
        result = await self.ask("recommendation", prompt, fallback, {"campaign_id": campaign_id, "metrics": metrics_data})
        event = {"source": result.source, "campaign_id": campaign_id}
        if isinstance(result.result, dict):
            result.result = {**result.result, "engagement_rate": round(rate, 2)}
            event.update(result.result)
        await self.publish_event("recommendations_generated", event)
        return result


class SecurityAgent(BaseAgent):
    name = "security"

    SUSPICIOUS_KEYWORDS = ("fail", "unauthorized")

    async def audit(self, actor: str, action: str, resource: str) -> AgentResult:
        self.log.info(f"AUDIT: User {actor} performed {action} on {resource}")
        return await self.analyze_log({"actor": actor, "action": action, "resource": resource})

    async def analyze_log(self, entry: Dict[str, Any]) -> AgentResult:
        serialized = json.dumps(entry, default=str)
        prompt = (
            "Act as a Security Analyst.\n"
            f"Log Entry: {serialized}\n"
            "Is this suspicious? (e.g. mass deletion, unauthorized access attempts).\n"
            'Return JSON: { "suspicious": boolean, "risk_level": "low|medium|high", "reason": "string" }\n'
            f"{JSON_ONLY}"
        )
        is_suspicious = any(keyword in serialized for keyword in self.SUSPICIOUS_KEYWORDS)
        fallback = {
            "suspicious": is_suspicious,
            "risk_level": "high" if is_suspicious else "low",
            "reason": "[FALLBACK] Keyword scan for 'fail' or 'unauthorized' (AI Unavailable)",
        }
        result = await self.ask("log_analysis", prompt, fallback, {"entry": entry})
        if isinstance(result.result, dict) and result.result.get("suspicious"):
            self.log.warning(f"SECURITY ALERT: {result.result.get('reason')}")
            await self.publish_event("security_alert", result.result)
        return result


class BIAgent(BaseAgent):
    name = "bi"

    async def generate_report(self, revenue_history: List[float], active_clients: int, churn: float) -> AgentResult:
        prompt = (
            "Act as a Business Intelligence Analyst.\n"
            f"- Revenue History (last months): {', '.join(str(v) for v in revenue_history)}\n"
            f"- Active Clients: {active_clients}\n"
            f"- Churn (Last Month): {churn}\n"
            "1. Predict revenue for next month. 2. Analyze churn risk (High/Medium/Low). 3. Provide 1 strategic insight.\n"
            'Return JSON: { "revenue_prediction": number, "churn_risk": "string", "insight": "string" }\n'
            f"{JSON_ONLY}"
        )
        last_month = revenue_history[-1] if revenue_history else 0
        fallback = {
            "revenue_prediction": round(last_month * 1.1),
            "churn_risk": "High" if churn > 50 else "Low",
            "insight": "[FALLBACK] Simple 10% growth projection (AI Unavailable)",
        }
        return await self.ask(
            "bi_report",
            prompt,
            fallback,
            {"revenue_history": revenue_history, "active_clients": active_clients, "churn": churn},
        )


class ContentAgent(BaseAgent):
    name = "content"

    async def analyze_creative(self, media_url: str, platform: str) -> AgentResult:
        prompt = (
            "Act as a Creative Director.\n"
            f"Media: {media_url}\nPlatform: {platform}\n"
            "1. Suggest Creative Theme. 2. Recommend Media Type (Image/Video). 3. Provide 1 Hook for the caption.\n"
            'Return JSON: { "theme": "string", "media_type": "string", "hook": "string" }\n'
            f"{JSON_ONLY}"
        )
        fallback = {
            "theme": "UGC (User Generated Content)",
            "media_type": "Reels",
            "hook": "[FALLBACK] 'You won't believe this hack...'",
        }
        return await self.ask("content_analysis", prompt, fallback, {"media_url": media_url, "platform": platform})


class SocialMediaAgent(BaseAgent):
    name = "social-media"

    async def analyze_audience(self, platform: str, recent_posts: List[Dict[str, Any]]) -> AgentResult:
        prompt = (
            "Act as a Social Media Manager.\n"
            f"Platform: {platform}\n"
            f"Recent Posts Data: {json.dumps(recent_posts, default=str)}\n"
            "1. Segment the audience (Age, Interests, Location). 2. Calculate Engagement Rate. 3. Suggest 2 content improvements.\n"
            'Return JSON: { "segmentation": {}, "engagement_rate": number, "suggestions": [] }\n'
            f"{JSON_ONLY}"
        )
        fallback = {
            "segmentation": {"age": "18-35", "interests": ["Tech", "Lifestyle"]},
            "engagement_rate": 0.04,
            "suggestions": ["[FALLBACK] Use more video reels", "Post at 18:00"],
        }
        return await self.ask("audience_analysis", prompt, fallback, {"platform": platform, "recent_posts": recent_posts})


class TrendingAgent(BaseAgent):
    name = "trending"

    async def analyze_sales_patterns(self, products: List[Dict[str, Any]]) -> AgentResult:
        self.log.info(f"Analyzing sales trends for {len(products)} products...")
        prompt = (
            "Act as a Market Trend Analyst.\n"
            f"Sales Data: {json.dumps(products, default=str)}\n"
            '1. Rank products by "Trending Score" (0-100). 2. Identify 1 Pattern. 3. Predict next month\'s sales volume.\n'
            'Return JSON: { "top_product": "string", "trend_score": number, "pattern": "string", "prediction": number }\n'
            f"{JSON_ONLY}"
        )
        fallback = {
            "top_product": (products[0].get("name") if products else None) or "Unknown",
            "trend_score": 85,
            "pattern": "[FALLBACK] Seasonal peak detected (AI Unavailable)",
            "prediction": 1200,
        }
        return await self.ask("sales_patterns", prompt, fallback, {"products": products})


class CompetitiveAgent(BaseAgent):
    name = "competitive"

    async def monitor_competitor(self, name: str, product_url: str) -> AgentResult:
        self.log.info(f"Monitoring competitor: {name}")
        prompt = (
            "Act as a Competitive Intelligence Specialist.\n"
            f"Competitor: {name}\nProduct URL: {product_url}\n"
            "1. Estimate Price and Product Features. 2. Identify 1 Sales Strategy (e.g., Discount, Bundle). "
            '3. Compare with the "Standard" market offering.\n'
            'Return JSON: { "price": number, "features": [], "strategy": "string", "comparison": "string" }\n'
            f"{JSON_ONLY}"
        )
        fallback = {
            "price": 99.99,
            "features": ["Free Shipping"],
            "strategy": "[FALLBACK] Aggressive Discount",
            "comparison": "Undercutting by 10% (AI Unavailable)",
        }
        return await self.ask("competitor_report", prompt, fallback, {"name": name, "product_url": product_url})


class MarketplacesAgent(BaseAgent):
    name = "marketplaces"

    SYNC_TARGETS = ("mercadolivre", "shopee", "shein")

    async def sync_stock(self, sku: str, qty: int) -> Dict[str, Any]:
        self.log.info(f"Syncing stock for {sku} to {qty} across {', '.join(self.SYNC_TARGETS)}")
        payload = {"sku": sku, "qty": qty, "marketplaces": list(self.SYNC_TARGETS)}
        await self.publish_event("stock_synced", payload)
        return payload

    def calculate_wholesale_price(self, base_price: float, qty: int) -> int:
        return calculate_wholesale_price(base_price, qty)

    async def suggest_pricing(self, sku: str, current_price: float, competitor_price: float, type: str = "retail") -> AgentResult:
        prompt = (
            "Act as a Fashion Pricing Specialist.\n"
            f"Product: {sku}\nMy Base Price: R$ {current_price}\nCompetitor Price: R$ {competitor_price}\n"
            f"Channel: {type.upper()} (B2C vs B2B)\n"
            "- If RETAIL: use psychological pricing (e.g., 99.90) and value perception.\n"
            "- If WHOLESALE: focus on volume and reseller margin.\n"
            'Return JSON: { "suggested_price": number, "reason": "string", "strategy": "aggressive|conservative" }\n'
            f"{JSON_ONLY}"
        )
        discount = 0.70 if type == "wholesale" else 0.98
        fallback = {
            "suggested_price": math.floor(competitor_price * discount),
            "reason": f"[FALLBACK] Standard {type} margin (AI Unavailable)",
            "strategy": "competitive",
        }
        return await self.ask(
            "pricing_suggestion",
            prompt,
            fallback,
            {"sku": sku, "current_price": current_price, "competitor_price": competitor_price, "type": type},
        )


@dataclass
class AgentRegistry:
    marketing: MarketingAgent
    security: SecurityAgent
    bi: BIAgent
    content: ContentAgent
    social: SocialMediaAgent
    trending: TrendingAgent
    competitive: CompetitiveAgent
    marketplaces: MarketplacesAgent
    integrations: IntegrationsAgent


def build_agent_registry(
    db: Optional[AsyncIOMotorDatabase],
    llm: Optional[BaseLLMClient],
    redis_client: Optional[redis.Redis] = None,
    evolution: Optional[EvolutionClient] = None,
) -> AgentRegistry:
    bus = EventBus(redis_client)
    reports = AgentReportRepository(db) if db is not None else None
    campaigns = CampaignRepository(db) if db is not None else None
    integrations = IntegrationsAgent(llm, bus, reports, evolution=evolution)
    return AgentRegistry(
        marketing=MarketingAgent(llm, bus, reports, campaigns=campaigns, integrations=integrations),
        security=SecurityAgent(llm, bus, reports),
        bi=BIAgent(llm, bus, reports),
        content=ContentAgent(llm, bus, reports),
        social=SocialMediaAgent(llm, bus, reports),
        trending=TrendingAgent(llm, bus, reports),
        competitive=CompetitiveAgent(llm, bus, reports),
        marketplaces=MarketplacesAgent(llm, bus, reports),
        integrations=integrations,
    )


def get_agent_registry(
    db: AsyncIOMotorDatabase = Depends(get_database),
    llm: BaseLLMClient = Depends(get_llm_client),
    redis_client: Optional[redis.Redis] = Depends(get_optional_redis),
    evolution: EvolutionClient = Depends(get_evolution_client),
) -> AgentRegistry:
    return build_agent_registry(db, llm, redis_client, evolution)
