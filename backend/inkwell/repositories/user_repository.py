"""
Inkwell Backend: Relational User Repository
============================================

What:  UserRepository backed by async SQLAlchemy.
How:   Borrows one AsyncSession per operation from the session factory, so
       the repository itself holds no connection and is safe to share
       across concurrent requests.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from inkwell.models.user import User
from inkwell.repositories.base import UserRepository

logger = logging.getLogger(__name__)

# Columns callers may change through update_fields
UPDATABLE_FIELDS = frozenset({"email", "phone", "avatar"})


class SqlUserRepository(UserRepository):
    def __init__(self, session_factory: async_sessionmaker[AsyncSession]):
        self._session_factory = session_factory

    @staticmethod
    def _live():
        return User.deleted_at.is_(None)

    async def create(self, username: str, password_hash: str, email: str) -> User:
        user = User(username=username, password=password_hash, email=email)
        async with self._session_factory() as session:
            session.add(user)
            await session.commit()
            await session.refresh(user)
        logger.info("User row created", extra={"user_id": user.id})
        return user

    async def find_by_id(self, user_id: int) -> Optional[User]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(User).where(User.id == user_id, self._live())
            )
            return result.scalar_one_or_none()

    async def find_by_username(self, username: str) -> Optional[User]:
        async with self._session_factory() as session:
            result = await session.execute(
                select(User).where(User.username == username, self._live())
            )
            return result.scalar_one_or_none()

    async def exists_by_username(self, username: str) -> bool:
        async with self._session_factory() as session:
            result = await session.execute(
                select(func.count(User.id)).where(User.username == username)
            )
            return (result.scalar() or 0) > 0

    async def exists_by_email(self, email: str, exclude_id: Optional[int] = None) -> bool:
        stmt = select(func.count(User.id)).where(User.email == email)
        if exclude_id is not None:
            stmt = stmt.where(User.id != exclude_id)
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return (result.scalar() or 0) > 0

    async def update_fields(self, user_id: int, fields: Dict[str, Any]) -> bool:
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValueError(f"Cannot update user fields: {sorted(unknown)}")
        values = dict(fields)
        values["updated_at"] = datetime.now(timezone.utc)
        async with self._session_factory() as session:
            result = await session.execute(
                update(User).where(User.id == user_id, self._live()).values(**values)
            )
            await session.commit()
            return result.rowcount > 0

    async def soft_delete(self, user_id: int) -> bool:
        now = datetime.now(timezone.utc)
        async with self._session_factory() as session:
            result = await session.execute(
                update(User)
                .where(User.id == user_id, self._live())
                .values(deleted_at=now, updated_at=now)
            )
            await session.commit()
            return result.rowcount > 0

    async def list(self, page: int, page_size: int) -> Tuple[List[User], int]:
        offset = (page - 1) * page_size
        async with self._session_factory() as session:
            total = (
                await session.execute(select(func.count(User.id)).where(self._live()))
            ).scalar() or 0
            result = await session.execute(
                select(User)
                .where(self._live())
                .order_by(User.id.asc())
                .offset(offset)
                .limit(page_size)
            )
            return list(result.scalars().all()), total

    async def count(self) -> int:
        async with self._session_factory() as session:
            result = await session.execute(select(func.count(User.id)).where(self._live()))
            return result.scalar() or 0
