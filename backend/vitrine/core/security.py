# vitrine/core/security.py

import hmac
from typing import Optional

from fastapi import Header
from loguru import logger

from vitrine.core.config import settings
from vitrine.core.errors import UnauthorizedError


def _matches(provided: Optional[str], expected: Optional[str]) -> bool:
    if not provided or not expected:
        return False
    return hmac.compare_digest(provided.encode("utf-8"), expected.encode("utf-8"))


async def verify_cron_secret(authorization: Optional[str] = Header(None)) -> None:
    """Exige `Authorization: Bearer <CRON_SECRET>`. Sem segredo configurado, rejeita tudo."""
    expected = f"Bearer {settings.CRON_SECRET}" if settings.CRON_SECRET else None
    if not _matches(authorization, expected):
        logger.warning("Rejected cron call with missing or invalid bearer token.")
        raise UnauthorizedError("Unauthorized")


async def require_api_key(x_api_key: Optional[str] = Header(None)) -> None:
    """Protege rotas administrativas com `X-API-Key` quando `API_KEY` está configurada."""
    if not settings.API_KEY:
        return
    if not _matches(x_api_key, settings.API_KEY):
        raise UnauthorizedError("Invalid or missing API key")
