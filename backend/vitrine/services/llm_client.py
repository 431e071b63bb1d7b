# vitrine/services/llm_client.py

import json
import re
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Optional, Tuple, TypeVar

import httpx
from loguru import logger

from vitrine.core.config import settings
from vitrine.core.errors import ServiceUnavailableError, UpstreamServiceError
from vitrine.core.logging_config import trace_id_var

GEMINI_API_BASE_URL = "https://generativelanguage.googleapis.com/v1beta"

T = TypeVar("T")


class BaseLLMClient(ABC):
    provider_name: str

    @abstractmethod
    async def generate_content(self, prompt: str) -> str:
        """Returns the raw text produced for `prompt`."""


class GeminiClient(BaseLLMClient):
    provider_name = "gemini"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = "gemini-1.5-flash",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self._transport = transport
        if not api_key:
            logger.warning("Gemini API key not configured. Agents will use fallbacks.")

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def generate_content(self, prompt: str) -> str:
        """Chama `models/{model}:generateContent` e devolve o texto do primeiro candidato."""
        if not self.api_key:
            raise ServiceUnavailableError("Gemini API key not configured.")

        log = logger.bind(trace_id=trace_id_var.get(), service="LLMClient", provider=self.provider_name, model=self.model)
        log.info("Sending generateContent request to Gemini...")
        log.debug(f"Prompt start: '{prompt[:80]}...'")

        url = f"{GEMINI_API_BASE_URL}/models/{self.model}:generateContent"
        payload = {"contents": [{"parts": [{"text": prompt}]}]}
        request_time = datetime.utcnow()
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
                response = await client.post(url, params={"key": self.api_key}, json=payload)
            duration = (datetime.utcnow() - request_time).total_seconds()
            log.debug(f"Gemini Response Status: {response.status_code}, Duration: {duration:.3f}s")
            response.raise_for_status()
            data = response.json()
        except httpx.HTTPStatusError as http_err:
            log.error(f"HTTP Error {http_err.response.status_code} from Gemini: {http_err.response.text[:500]}")
            raise UpstreamServiceError(f"Gemini returned HTTP {http_err.response.status_code}") from http_err
        except httpx.RequestError as req_err:
            log.error(f"Network error calling Gemini: {req_err}")
            raise UpstreamServiceError(f"Could not reach Gemini: {req_err}") from req_err

        try:
            parts = data["candidates"][0]["content"]["parts"]
        except (KeyError, IndexError, TypeError) as e:
            log.warning(f"Gemini response without candidates: {str(data)[:300]}")
            raise UpstreamServiceError("Gemini returned no candidates.") from e
        return "".join(part.get("text", "") for part in parts)


_FENCE_RE = re.compile(r"```(?:json)?", re.IGNORECASE)


def extract_json(text: str) -> Any:
    """
    Extrai o primeiro objeto/array JSON de uma resposta de LLM.
    Remove cercas markdown; levanta ValueError se nada for parseável.
    """
    cleaned = _FENCE_RE.sub("", text or "").strip()
    try:
        return json.loads(cleaned)
    except json.JSONDecodeError:
        pass

    decoder = json.JSONDecoder()
    for index, char in enumerate(cleaned):
        if char in "{[":
            try:
                value, _ = decoder.raw_decode(cleaned[index:])
                return value
            except json.JSONDecodeError:
                continue
    raise ValueError("No JSON object found in LLM response.")


async def call_llm_with_fallback(llm: Optional[BaseLLMClient], prompt: str, fallback: T) -> Tuple[Any, str]:
    """
    Gera e parseia JSON. Qualquer falha do LLM (sem chave, HTTP, parse)
    devolve `(fallback, "fallback")`; sucesso devolve `(data, provider)`.
    """
    if llm is None:
        return fallback, "fallback"
    try:
        text = await llm.generate_content(prompt)
        return extract_json(text), llm.provider_name
    except (ServiceUnavailableError, UpstreamServiceError, ValueError) as e:
        logger.warning(f"LLM call failed, using fallback: {e}")
        return fallback, "fallback"


_gemini_client: Optional[GeminiClient] = None


def get_llm_client() -> GeminiClient:
    global _gemini_client
    if _gemini_client is None:
        _gemini_client = GeminiClient(
            api_key=settings.GEMINI_API_KEY,
            model=settings.GEMINI_MODEL,
            timeout=settings.GEMINI_TIMEOUT_SECONDS,
        )
    return _gemini_client
