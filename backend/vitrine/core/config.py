# vitrine/core/config.py

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
from functools import lru_cache
from loguru import logger
from pathlib import Path
from typing import Optional


def find_dotenv_path(filename: str = ".env", usecwd: bool = False) -> Optional[str]:
    """Walks up from this file (or the CWD) looking for `filename`."""
    start_dir = Path.cwd() if usecwd else Path(__file__).resolve().parent
    current_dir = start_dir
    for _ in range(10):
        env_path = current_dir / filename
        if env_path.is_file():
            logger.debug(f"Found {filename} at: {env_path}")
            return str(env_path)
        parent_dir = current_dir.parent
        if parent_dir == current_dir:
            break
        current_dir = parent_dir
    if not usecwd:
        env_path_cwd = Path.cwd() / filename
        if env_path_cwd.is_file():
            return str(env_path_cwd)
    return None


def existing_env_files() -> Optional[tuple[str, ...]]:
    """`.env` e `.env.local` encontrados, nesta ordem; None quando não há nenhum."""
    found = tuple(p for p in (find_dotenv_path(".env"), find_dotenv_path(".env.local")) if p)
    return found or None


class Settings(BaseSettings):
    PROJECT_NAME: str = "Vitrine CRM"
    API_V1_STR: str = "/api/v1"
    LOG_LEVEL: str = "INFO"

    # Database & Cache
    MONGODB_URI: str = "mongodb://localhost:27017/vitrine_crm"
    REDIS_URL: str = "redis://localhost:6379/0"
    CELERY_BROKER_URL: str = "redis://localhost:6379/1"
    CELERY_RESULT_BACKEND: str = "redis://localhost:6379/2"

    # Security
    API_KEY: Optional[str] = None
    CRON_SECRET: Optional[str] = None
    CORS_ORIGINS: str = "http://localhost:3000"
    RATE_LIMIT_DEFAULT: str = "60/minute"

    # Generative AI
    GEMINI_API_KEY: Optional[str] = None
    GEMINI_MODEL: str = "gemini-1.5-flash"
    GEMINI_TIMEOUT_SECONDS: float = 30.0

    # WhatsApp (Evolution API)
    EVOLUTION_API_URL: Optional[str] = None
    EVOLUTION_API_KEY: Optional[str] = None
    EVOLUTION_INSTANCE: str = "default"
    EVOLUTION_ADMIN_PHONE: Optional[str] = None
    EVOLUTION_TIMEOUT_SECONDS: float = 25.0

    # Meta webhooks
    META_VERIFY_TOKEN: Optional[str] = None

    # In-process cache
    CACHE_DEFAULT_TTL_SECONDS: int = Field(default=30 * 60, ge=1)
    CACHE_CLEANUP_INTERVAL_SECONDS: int = Field(default=5 * 60, ge=1)

    # Campaign worker
    CAMPAIGN_BATCH_SIZE: int = Field(default=5, ge=1)
    CAMPAIGN_SEND_MAX_RETRIES: int = Field(default=3, ge=1)
    CAMPAIGN_SEND_INITIAL_DELAY: float = Field(default=1.0, ge=0)
    CAMPAIGN_SEND_MAX_DELAY: float = Field(default=10.0, ge=0)
    CAMPAIGN_BREAKER_THRESHOLD: int = Field(default=5, ge=1)
    CAMPAIGN_BREAKER_TIMEOUT_SECONDS: float = Field(default=60.0, ge=0)
    CAMPAIGN_STALE_PROCESSING_MINUTES: int = Field(default=30, ge=1)

    model_config = SettingsConfigDict(
        # .env.local wins over .env
        env_file=existing_env_files(),
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    @property
    def cors_origins_list(self) -> list[str]:
        if self.CORS_ORIGINS.strip() == "*":
            return ["*"]
        return [origin.strip() for origin in self.CORS_ORIGINS.split(",") if origin.strip()]

    @property
    def evolution_configured(self) -> bool:
        return bool(self.EVOLUTION_API_URL and self.EVOLUTION_API_KEY)


@lru_cache()
def get_settings() -> Settings:
    """Carrega e valida as configurações da aplicação."""
    logger.info("Loading application settings...")
    env_files_found = existing_env_files()
    if env_files_found:
        logger.info(f"Loading environment variables from: {', '.join(env_files_found)}")
    else:
        logger.debug("No .env file found. Loading settings from system environment variables only.")

    settings_instance = Settings()

    if not settings_instance.evolution_configured:
        logger.warning("Evolution API credentials missing (EVOLUTION_API_URL, EVOLUTION_API_KEY). WhatsApp sending is disabled.")
    if not settings_instance.GEMINI_API_KEY:
        logger.warning("GEMINI_API_KEY missing. Agents will answer with their fallback results.")
    if not settings_instance.CRON_SECRET:
        logger.warning("CRON_SECRET missing. The campaign cron endpoint will reject every call.")
    if not settings_instance.META_VERIFY_TOKEN:
        logger.warning("META_VERIFY_TOKEN missing. Meta webhook verification will always fail.")

    logger.info("Settings loaded successfully.")
    return settings_instance


settings = get_settings()
