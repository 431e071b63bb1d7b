# vitrine/modules/agents/bus.py

import json
from typing import Any, Optional

import redis.asyncio as redis
from loguru import logger


def channel_for(agent: str, event: str) -> str:
    return f"agent:{agent}:{event}"


class EventBus:
    """Pub/sub dos agentes sobre Redis. Sem Redis, eventos só são logados."""

    def __init__(self, client: Optional[redis.Redis]):
        self.client = client

    async def publish(self, channel: str, payload: Any) -> bool:
        message = json.dumps(payload, default=str)
        if self.client is None:
            logger.debug(f"[EventBus] Redis unavailable; dropping event on {channel}")
            return False
        try:
            await self.client.publish(channel, message)
        except redis.RedisError as e:
            logger.warning(f"[EventBus] Failed to publish on {channel}: {e}")
            return False
        logger.debug(f"[EventBus] Published to {channel}")
        return True
