# vitrine/core/database.py

from contextlib import AbstractAsyncContextManager
from typing import Optional, cast

import motor.motor_asyncio
from motor.motor_asyncio import AsyncIOMotorDatabase
import redis.asyncio as redis
from loguru import logger

from vitrine.core.config import settings
from vitrine.core.errors import ServiceUnavailableError

DEFAULT_DB_NAME = "vitrine_crm"


def parse_db_name(uri: str) -> str:
    """Extrai o nome do DB da URI, com fallback para o default."""
    tail = uri.rsplit("/", 1)[-1] if uri.count("/") >= 3 else ""
    db_name = tail.split("?")[0]
    if not db_name or "@" in db_name or len(db_name) > 63:
        logger.warning(f"Could not parse DB name from URI, using default: {DEFAULT_DB_NAME}")
        return DEFAULT_DB_NAME
    return db_name


# --- MongoDB ---
class MongoDbContext(AbstractAsyncContextManager):
    client: Optional[motor.motor_asyncio.AsyncIOMotorClient] = None
    db: Optional[AsyncIOMotorDatabase] = None

    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.disconnect()

    async def connect(self):
        """Establishes and verifies connection to MongoDB."""
        if self.client is not None and self.db is not None:
            logger.info("MongoDB connection already established.")
            return

        logger.info("Connecting to MongoDB...")
        try:
            self.client = motor.motor_asyncio.AsyncIOMotorClient(
                settings.MONGODB_URI,
                uuidRepresentation="standard",
                serverSelectionTimeoutMS=5000,
            )
            await self.client.admin.command("ping")
            db_name = parse_db_name(settings.MONGODB_URI)
            self.db = self.client[db_name]
            logger.success(f"MongoDB connection successful to database '{db_name}'.")
        except Exception as e:
            logger.critical(f"FATAL: Failed to connect to MongoDB: {e}")
            self.client = None
            self.db = None
            raise ConnectionError(f"MongoDB connection failed: {e}") from e

    async def disconnect(self):
        """Closes the MongoDB connection."""
        if self.client is not None:
            logger.info("Closing MongoDB connection...")
            try:
                self.client.close()
                logger.info("MongoDB connection closed.")
            finally:
                self.client = None
                self.db = None

    def get_db(self) -> AsyncIOMotorDatabase:
        """Returns the database instance, raising error if not connected."""
        if self.db is None:
            raise RuntimeError("MongoDB database is not connected or initialized.")
        return cast(AsyncIOMotorDatabase, self.db)


mongo_manager = MongoDbContext()


# --- Redis ---
class RedisContext(AbstractAsyncContextManager):
    client: Optional[redis.Redis] = None

    async def __aenter__(self):
        await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.disconnect()

    async def connect(self):
        """Connects to Redis. A failure leaves the client unset (event bus degrades to logging)."""
        if self.client is not None:
            logger.info("Redis connection already established.")
            return
        logger.info("Connecting to Redis...")
        try:
            pool = redis.ConnectionPool.from_url(
                settings.REDIS_URL,
                decode_responses=True,
                socket_connect_timeout=5,
                socket_keepalive=True,
                max_connections=20,
            )
            self.client = redis.Redis(connection_pool=pool)
            await self.client.ping()
            logger.success("Redis connection successful.")
        except Exception as e:
            logger.error(f"Could not connect to Redis: {e}")
            self.client = None

    async def disconnect(self):
        """Closes the Redis connection pool."""
        if self.client is not None:
            logger.info("Closing Redis connection pool...")
            try:
                await self.client.aclose()
                logger.info("Redis connection pool closed.")
            except Exception as e:
                logger.error(f"Error closing Redis connection pool: {e}")
            finally:
                self.client = None

    def get_client(self) -> redis.Redis:
        if self.client is None:
            raise RuntimeError("Redis client is not connected or initialized.")
        return cast(redis.Redis, self.client)


redis_manager = RedisContext()


# --- Funções de Dependência FastAPI ---

def get_database() -> AsyncIOMotorDatabase:
    """FastAPI dependency to get a MongoDB database instance."""
    try:
        return mongo_manager.get_db()
    except RuntimeError as e:
        raise ServiceUnavailableError(f"Database connection not available: {e}") from e


def get_optional_redis() -> Optional[redis.Redis]:
    """Redis client or None; callers that can run without Redis use this one."""
    return redis_manager.client


def get_optional_database() -> Optional[AsyncIOMotorDatabase]:
    """Database or None, for endpoints that must answer even with MongoDB down."""
    return mongo_manager.db
