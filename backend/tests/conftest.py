"""
Inkwell Backend: Test Configuration (conftest.py)
==================================================

What:  Shared pytest fixtures for the whole suite.
How:   The relational store is a private in-memory SQLite database (aiosqlite)
       per test; the document store is replaced by an in-memory repository;
       health probes are fakes with a fixed outcome. No external service is
       needed to run the suite.

Fixture Hierarchy (all function-scoped):
    settings
    └── engine → session_factory → user_repository
    └── stores (engine attached, Mongo and Redis absent)
        └── container (fake article repository, fake probes)
            └── app → test_client
"""

import os
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

import pytest
import pytest_asyncio
from bson import ObjectId
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine
from sqlalchemy.pool import StaticPool

# Set before any Settings() is built so a stray .env cannot leak in
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ["MONGO_ENABLED"] = "false"
os.environ["LOG_LEVEL"] = "WARNING"

from inkwell.auth.tokens import TokenAuthenticator  # noqa: E402
from inkwell.config import Settings  # noqa: E402
from inkwell.container import AppContainer  # noqa: E402
from inkwell.database import Base, create_session_factory  # noqa: E402
from inkwell.main import create_app  # noqa: E402
from inkwell.middleware.rate_limit import RateLimiter  # noqa: E402
from inkwell.models.article import Article, ArticleFilter  # noqa: E402
from inkwell.repositories.base import ArticleRepository  # noqa: E402
from inkwell.repositories.user_repository import SqlUserRepository  # noqa: E402
from inkwell.services.article_service import ArticleService  # noqa: E402
from inkwell.services.health_service import (  # noqa: E402
    HealthAggregator,
    Probe,
    ProbeStatus,
)
from inkwell.services.user_service import UserService  # noqa: E402
from inkwell.stores import Stores  # noqa: E402

TEST_JWT_SECRET = "test-secret-that-is-long-enough-for-hs256-0123456789"


# ══════════════════════════════════════════════════════════════════════════
# Fakes
# ══════════════════════════════════════════════════════════════════════════


class InMemoryArticleRepository(ArticleRepository):
    """Dict-backed ArticleRepository with the same ownership semantics."""

    def __init__(self):
        self.docs: Dict[str, Article] = {}

    async def insert(self, article: Article) -> str:
        article_id = str(ObjectId())
        article.id = article_id
        self.docs[article_id] = article
        return article_id

    async def find_by_id(self, article_id: str) -> Optional[Article]:
        return self.docs.get(article_id)

    async def exists(self, article_id: str) -> bool:
        return article_id in self.docs

    async def list(
        self, filters: ArticleFilter, page: int, page_size: int
    ) -> Tuple[List[Article], int]:
        def matches(a: Article) -> bool:
            if filters.author and a.author != filters.author:
                return False
            if filters.status is not None and a.status != filters.status:
                return False
            if filters.tags and not set(filters.tags) & set(a.tags):
                return False
            if filters.keyword:
                kw = filters.keyword.lower()
                if kw not in a.title.lower() and kw not in a.content.lower():
                    return False
            return True

        found = sorted(
            (a for a in self.docs.values() if matches(a)),
            key=lambda a: a.created_at,
            reverse=True,
        )
        start = (page - 1) * page_size
        return found[start:start + page_size], len(found)

    async def update_owned(self, article_id: str, user_id: int, fields: Dict[str, Any]) -> bool:
        article = self.docs.get(article_id)
        if article is None or article.user_id != user_id:
            return False
        for key, value in fields.items():
            setattr(article, key, value)
        article.updated_at = datetime.now(timezone.utc)
        return True

    async def delete_owned(self, article_id: str, user_id: int) -> bool:
        article = self.docs.get(article_id)
        if article is None or article.user_id != user_id:
            return False
        del self.docs[article_id]
        return True

    async def increment(self, article_id: str, field: str, amount: int = 1) -> bool:
        article = self.docs.get(article_id)
        if article is None:
            return False
        setattr(article, field, getattr(article, field) + amount)
        return True


class FakeProbe(Probe):
    """Probe with a scripted outcome; `status=None` means not configured."""

    def __init__(self, name: str, mandatory: bool, status: Optional[ProbeStatus] = ProbeStatus.HEALTHY):
        super().__init__(mandatory=mandatory, timeout=0.2)
        self.name = name
        self.status = status
        self.calls = 0

    def configured(self) -> bool:
        return self.status is not None

    async def ping(self) -> None:
        self.calls += 1
        if self.status == ProbeStatus.UNHEALTHY:
            raise ConnectionError(f"{self.name} refused connection")


def make_probes(database=ProbeStatus.HEALTHY, mongodb=ProbeStatus.HEALTHY, redis=ProbeStatus.HEALTHY):
    return [
        FakeProbe("database", mandatory=True, status=database),
        FakeProbe("mongodb", mandatory=False, status=mongodb),
        FakeProbe("redis", mandatory=True, status=redis),
    ]


# ══════════════════════════════════════════════════════════════════════════
# Function-Scoped Fixtures
# ══════════════════════════════════════════════════════════════════════════


@pytest.fixture
def settings():
    return Settings(
        database_url="sqlite+aiosqlite://",
        mongo_enabled=False,
        jwt_secret=TEST_JWT_SECRET,
        bcrypt_rounds=4,
        rate_limit_per_second=1000,
        log_level="WARNING",
    )


@pytest.fixture
def authenticator(settings):
    return TokenAuthenticator(
        secret=settings.jwt_secret,
        issuer=settings.jwt_issuer,
        ttl_seconds=settings.jwt_ttl_seconds,
        refresh_window=settings.jwt_refresh_window_seconds,
    )


@pytest_asyncio.fixture
async def engine():
    """
    One in-memory SQLite database per test. StaticPool keeps the single
    connection alive, otherwise each session would see an empty database.
    """
    eng = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest.fixture
def session_factory(engine):
    return create_session_factory(engine)


@pytest.fixture
def user_repository(session_factory):
    return SqlUserRepository(session_factory)


@pytest.fixture
def article_repository():
    return InMemoryArticleRepository()


@pytest.fixture
def stores(settings, engine, session_factory):
    s = Stores(settings)
    s.engine = engine
    s.session_factory = session_factory
    return s


@pytest.fixture
def user_service(stores, authenticator, settings):
    return UserService(
        repository_provider=stores.user_repository,
        authenticator=authenticator,
        bcrypt_rounds=settings.bcrypt_rounds,
        cache_provider=stores.cache,
        cache_ttl=settings.user_cache_ttl,
    )


@pytest.fixture
def article_service(article_repository):
    return ArticleService(repository_provider=lambda: article_repository)


@pytest.fixture
def probe_factory():
    """make_probes(database=..., mongodb=..., redis=...); None means not configured."""
    return make_probes


@pytest.fixture
def probes():
    return make_probes()


@pytest.fixture
def container(settings, stores, authenticator, user_service, article_service, probes):
    return AppContainer(
        settings=settings,
        stores=stores,
        authenticator=authenticator,
        rate_limiter=RateLimiter(rate=settings.rate_limit_per_second),
        health=HealthAggregator(probes),
        user_service=user_service,
        article_service=article_service,
    )


@pytest.fixture
def app(container):
    return create_app(container=container)


@pytest_asyncio.fixture
async def test_client(app):
    """
    HTTPX AsyncClient routed straight into the ASGI app.

    Usage:
        async def test_ping(test_client):
            response = await test_client.get("/ping")
            assert response.json()["message"] == "pong"
    """
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client


@pytest.fixture
def login_as(test_client):
    """
    Registers (if needed) and logs in a user, returning request headers.

    Usage:
        headers = await login_as("alice")
    """

    async def _login(username: str = "alice", password: str = "secret123") -> Dict[str, str]:
        await test_client.post(
            "/api/v1/auth/register",
            json={"username": username, "password": password, "email": f"{username}@example.com"},
        )
        response = await test_client.post(
            "/api/v1/auth/login", json={"username": username, "password": password}
        )
        return {"X-Token": response.json()["data"]["token"]}

    return _login
