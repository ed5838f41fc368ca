"""
Inkwell Backend: Persistence Ports
===================================

What:  Abstract contracts for the two persistence adapters the services use.
How:   Concrete implementations inherit and implement every method:
       - SqlUserRepository     (async SQLAlchemy, relational store)
       - MongoArticleRepository (pymongo async client, document store)
Who:   UserService and ArticleService depend on these, never on a driver.

Error contract:
    Implementations let driver exceptions (SQLAlchemyError, PyMongoError)
    propagate. The service layer wraps them into PersistenceError with the
    matching code, so raw driver errors never reach the transport layer.
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional, Tuple

from inkwell.models.article import Article, ArticleFilter
from inkwell.models.user import User


class UserRepository(ABC):
    """
    CRUD, count and paginated listing over `User`, keyed by integer id.

    Soft-deleted users are excluded from every read.
    """

    @abstractmethod
    async def create(self, username: str, password_hash: str, email: str) -> User:
        """Insert a user and return it with its generated id."""
        ...

    @abstractmethod
    async def find_by_id(self, user_id: int) -> Optional[User]:
        ...

    @abstractmethod
    async def find_by_username(self, username: str) -> Optional[User]:
        ...

    @abstractmethod
    async def exists_by_username(self, username: str) -> bool:
        ...

    @abstractmethod
    async def exists_by_email(self, email: str, exclude_id: Optional[int] = None) -> bool:
        ...

    @abstractmethod
    async def update_fields(self, user_id: int, fields: Dict[str, Any]) -> bool:
        """Apply column updates; returns False when no live row matched."""
        ...

    @abstractmethod
    async def soft_delete(self, user_id: int) -> bool:
        ...

    @abstractmethod
    async def list(self, page: int, page_size: int) -> Tuple[List[User], int]:
        """One page ordered by id, plus the total number of live users."""
        ...

    @abstractmethod
    async def count(self) -> int:
        ...


class ArticleRepository(ABC):
    """
    CRUD, filtered pagination and atomic counters over `Article`, keyed by
    the hex string of a document id.
    """

    @abstractmethod
    async def insert(self, article: Article) -> str:
        """Insert and return the new document id."""
        ...

    @abstractmethod
    async def find_by_id(self, article_id: str) -> Optional[Article]:
        ...

    @abstractmethod
    async def exists(self, article_id: str) -> bool:
        ...

    @abstractmethod
    async def list(
        self, filters: ArticleFilter, page: int, page_size: int
    ) -> Tuple[List[Article], int]:
        """One page sorted newest first, plus the total matching count."""
        ...

    @abstractmethod
    async def update_owned(self, article_id: str, user_id: int, fields: Dict[str, Any]) -> bool:
        """Update only if `user_id` owns the article; False when nothing matched."""
        ...

    @abstractmethod
    async def delete_owned(self, article_id: str, user_id: int) -> bool:
        ...

    @abstractmethod
    async def increment(self, article_id: str, field: str, amount: int = 1) -> bool:
        """Atomically add `amount` to a counter field; False when no match."""
        ...
