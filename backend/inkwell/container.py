"""
Inkwell Backend: Application Container
=======================================

What:  Every per-application collaborator in one place.
How:   `AppContainer.build(settings)` wires stores, authenticator, rate
       limiter, health aggregator and services. The container is stored on
       `app.state.container`; nothing lives in module globals, so several
       applications (one per test, for example) can coexist in a process.
"""

import logging
from dataclasses import dataclass

from inkwell.auth.tokens import TokenAuthenticator
from inkwell.config import Settings
from inkwell.middleware.rate_limit import RateLimiter
from inkwell.services.article_service import ArticleService
from inkwell.services.health_service import HealthAggregator
from inkwell.services.user_service import UserService
from inkwell.stores import Stores

logger = logging.getLogger(__name__)


@dataclass
class AppContainer:
    settings: Settings
    stores: Stores
    authenticator: TokenAuthenticator
    rate_limiter: RateLimiter
    health: HealthAggregator
    user_service: UserService
    article_service: ArticleService

    @classmethod
    def build(cls, settings: Settings) -> "AppContainer":
        stores = Stores(settings)
        authenticator = TokenAuthenticator(
            secret=settings.jwt_secret,
            issuer=settings.jwt_issuer,
            ttl_seconds=settings.jwt_ttl_seconds,
            refresh_window=settings.jwt_refresh_window_seconds,
        )
        rate_limiter = RateLimiter(
            rate=settings.rate_limit_per_second,
            window=settings.rate_limit_window_seconds,
            stale_after=settings.rate_limit_stale_seconds,
            sweep_interval=settings.rate_limit_sweep_interval,
        )
        return cls(
            settings=settings,
            stores=stores,
            authenticator=authenticator,
            rate_limiter=rate_limiter,
            health=HealthAggregator.for_stores(stores, settings.health_probe_timeout),
            user_service=UserService(
                repository_provider=stores.user_repository,
                authenticator=authenticator,
                bcrypt_rounds=settings.bcrypt_rounds,
                cache_provider=stores.cache,
                cache_ttl=settings.user_cache_ttl,
            ),
            article_service=ArticleService(repository_provider=stores.article_repository),
        )

    async def startup(self, connect_stores: bool = True) -> None:
        """Open the stores (unless they were attached up front) and start the sweep."""
        if connect_stores:
            await self.stores.connect()
        self.rate_limiter.start()

    async def shutdown(self, close_stores: bool = True) -> None:
        await self.rate_limiter.stop()
        if close_stores:
            await self.stores.close()
