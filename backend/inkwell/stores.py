"""
Inkwell Backend: Backing Store Handles
=======================================

What:  Owns the relational engine, the document-store client and the Redis
       client for one application instance.
How:   `connect()` opens each store with tenacity retries and verifies it
       with a round trip. The relational store and Redis are mandatory: if
       they cannot be reached, startup fails. The document store is optional:
       a failure is logged and its handle stays None.
Who:   Built by AppContainer; the accessors below are the only way services
       reach a store.
When:  Connected in the lifespan startup, closed in the lifespan shutdown.

Accessors raise ServiceUnavailableError when the handle was never
initialized, so a request touching a disabled store gets the
SERVICE_UNAVAILABLE envelope rather than a crash.
"""

import logging
from typing import Optional

import redis.asyncio as redis
from pymongo import AsyncMongoClient
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    stop_after_attempt,
    wait_exponential_jitter,
)

from inkwell.cache import RedisCache, create_client
from inkwell.config import Settings
from inkwell.database import Base, create_engine, create_session_factory
from inkwell.exceptions import ServiceUnavailableError
from inkwell.repositories.article_repository import MongoArticleRepository
from inkwell.repositories.base import ArticleRepository, UserRepository
from inkwell.repositories.user_repository import SqlUserRepository

logger = logging.getLogger(__name__)


class Stores:
    """Optional handles to the three backing stores."""

    def __init__(self, settings: Settings):
        self.settings = settings
        self.engine: Optional[AsyncEngine] = None
        self.session_factory: Optional[async_sessionmaker[AsyncSession]] = None
        self.mongo_client: Optional[AsyncMongoClient] = None
        self.mongo_db = None
        self.redis: Optional[redis.Redis] = None

    def _retrying(self) -> AsyncRetrying:
        return AsyncRetrying(
            stop=stop_after_attempt(self.settings.connect_retry_attempts),
            wait=wait_exponential_jitter(
                initial=0.5,
                max=self.settings.connect_retry_max_wait,
                jitter=0.5,
            ),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )

    # ── Lifecycle ─────────────────────────────────────────────────────────

    async def connect(self) -> None:
        try:
            await self._connect_database()
            await self._connect_redis()
        except Exception:
            # release whatever opened before the failing store
            await self.close()
            raise
        if self.settings.mongo_enabled:
            try:
                await self._connect_mongo()
            except Exception as e:
                logger.warning(
                    "Document store unavailable, article endpoints disabled: %s", e
                )
                await self._close_mongo()
        else:
            logger.info("Document store disabled by configuration")

    async def _connect_database(self) -> None:
        engine = create_engine(self.settings)
        self.engine = engine
        async for attempt in self._retrying():
            with attempt:
                async with engine.connect() as conn:
                    await conn.execute(text("SELECT 1"))
        if self.settings.db_auto_create:
            async with engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        self.session_factory = create_session_factory(engine)
        logger.info("Relational store connected")

    async def _connect_redis(self) -> None:
        client = create_client(self.settings.redis_url, self.settings.redis_pool_size)
        self.redis = client
        async for attempt in self._retrying():
            with attempt:
                await client.ping()
        logger.info("Redis connected")

    async def _connect_mongo(self) -> None:
        client = AsyncMongoClient(
            self.settings.mongo_url,
            maxPoolSize=self.settings.mongo_max_pool_size,
            minPoolSize=self.settings.mongo_min_pool_size,
            serverSelectionTimeoutMS=int(self.settings.health_probe_timeout * 1000),
        )
        self.mongo_client = client
        async for attempt in self._retrying():
            with attempt:
                await client.admin.command("ping")
        self.mongo_db = client[self.settings.mongo_database]
        logger.info("Document store connected")

    async def _close_mongo(self) -> None:
        if self.mongo_client is not None:
            await self.mongo_client.close()
        self.mongo_client = None
        self.mongo_db = None

    async def close(self) -> None:
        """Release every open handle; safe to call on a partially connected instance."""
        await self._close_mongo()
        if self.redis is not None:
            await self.redis.aclose()
            self.redis = None
        if self.engine is not None:
            await self.engine.dispose()
            self.engine = None
            self.session_factory = None
        logger.info("Backing stores closed")

    # ── Accessors ─────────────────────────────────────────────────────────

    def user_repository(self) -> UserRepository:
        if self.session_factory is None:
            raise ServiceUnavailableError("database")
        return SqlUserRepository(self.session_factory)

    def article_repository(self) -> ArticleRepository:
        if self.mongo_db is None:
            raise ServiceUnavailableError("mongodb")
        return MongoArticleRepository(self.mongo_db)

    def cache(self) -> RedisCache:
        if self.redis is None:
            raise ServiceUnavailableError("redis")
        return RedisCache(self.redis)
