"""
Inkwell Backend: User Service (Business Logic)
===============================================

What:  Registration, login, profile reads/updates, listing and deletion.
How:   Composes the user repository, the password hasher, the token
       authenticator and (optionally) the Redis cache.
Who:   Called by the auth and user route handlers.

Error Handling Strategy:
    Domain outcomes are raised as ResourceError with their taxonomy code.
    Driver exceptions from the repository or cache are wrapped into
    PersistenceError here, so the transport layer only ever sees AppError.
    The cache is best effort: a failed cache read or write is logged and
    the request falls through to the relational store.
"""

import json
import logging
from typing import Callable, List, Optional, Tuple

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from inkwell.auth.passwords import hash_password, verify_password
from inkwell.auth.tokens import TokenAuthenticator
from inkwell.cache import RedisCache
from inkwell.exceptions import (
    AppError,
    ErrorCode,
    ParamInvalidError,
    PersistenceError,
    ResourceError,
)
from inkwell.models.user import User
from inkwell.repositories.base import UserRepository
from inkwell.schemas.user import LoginResponse, UserOut

logger = logging.getLogger(__name__)

USER_CACHE_PREFIX = "user:info:"

# Fields a user may change about themselves
EDITABLE_FIELDS = ("email", "phone", "avatar")


def user_cache_key(user_id: int) -> str:
    return f"{USER_CACHE_PREFIX}{user_id}"


class UserService:
    """
    Stateless apart from its collaborators; every call resolves the
    repository afresh so a store that is down yields SERVICE_UNAVAILABLE
    instead of a stale handle.
    """

    def __init__(
        self,
        repository_provider: Callable[[], UserRepository],
        authenticator: TokenAuthenticator,
        bcrypt_rounds: int = 12,
        cache_provider: Optional[Callable[[], RedisCache]] = None,
        cache_ttl: int = 300,
    ):
        self._repository = repository_provider
        self._authenticator = authenticator
        self._bcrypt_rounds = bcrypt_rounds
        self._cache = cache_provider
        self._cache_ttl = cache_ttl
        self._dummy_hash: Optional[str] = None

    # ── Registration & login ──────────────────────────────────────────────

    async def register(self, username: str, password: str, email: str) -> UserOut:
        """
        Raises:
            ResourceError(USERNAME_EXISTS | EMAIL_EXISTS)
            PersistenceError(DB_INSERT_FAILED)
        """
        repo = self._repository()
        try:
            if await repo.exists_by_username(username):
                raise ResourceError(ErrorCode.USERNAME_EXISTS)
            if await repo.exists_by_email(email):
                raise ResourceError(ErrorCode.EMAIL_EXISTS)
        except SQLAlchemyError as e:
            raise self._persistence(ErrorCode.DB_QUERY_FAILED, "register lookup", e)

        password_hash = await hash_password(password, self._bcrypt_rounds)
        try:
            user = await repo.create(username, password_hash, email)
        except IntegrityError:
            # lost a race with a concurrent registration of the same name
            logger.info("Concurrent registration conflict for %s", username)
            raise ResourceError(ErrorCode.USERNAME_EXISTS)
        except SQLAlchemyError as e:
            raise self._persistence(ErrorCode.DB_INSERT_FAILED, "register insert", e)

        logger.info("User registered: id=%s username=%s", user.id, user.username)
        return UserOut.model_validate(user)

    async def login(self, username: str, password: str) -> LoginResponse:
        """
        Unknown user and wrong password are indistinguishable to the caller
        (both INVALID_PASSWORD). A disabled account is only reported after
        the password has been verified.
        """
        try:
            user = await self._repository().find_by_username(username)
        except SQLAlchemyError as e:
            raise self._persistence(ErrorCode.DB_QUERY_FAILED, "login lookup", e)

        if user is None:
            # same bcrypt cost as a real check, so timing does not reveal the name
            await verify_password(password, await self._unknown_user_hash())
        if user is None or not await verify_password(password, user.password):
            logger.info("Failed login for username=%s", username)
            raise ResourceError(ErrorCode.INVALID_PASSWORD)
        if not user.is_active:
            raise ResourceError(ErrorCode.USER_DISABLED)

        token = self._authenticator.issue(user.id, user.username)
        logger.info("User logged in: id=%s", user.id)
        return LoginResponse(token=token, user_info=UserOut.model_validate(user))

    async def _unknown_user_hash(self) -> str:
        if self._dummy_hash is None:
            self._dummy_hash = await hash_password("inkwell-unknown-user", self._bcrypt_rounds)
        return self._dummy_hash

    # ── Reads ─────────────────────────────────────────────────────────────

    async def get_user_info(self, user_id: int) -> UserOut:
        """Profile of the calling user, served from cache when possible."""
        cached = await self._cache_get(user_id)
        if cached is not None:
            return cached
        user_out = await self.get_user_by_id(user_id)
        await self._cache_set(user_out)
        return user_out

    async def get_user_by_id(self, user_id: int) -> UserOut:
        try:
            user = await self._repository().find_by_id(user_id)
        except SQLAlchemyError as e:
            raise self._persistence(ErrorCode.DB_QUERY_FAILED, "get user", e)
        if user is None:
            raise ResourceError(ErrorCode.USER_NOT_FOUND)
        return UserOut.model_validate(user)

    async def list_users(self, page: int, page_size: int) -> Tuple[List[UserOut], int]:
        try:
            users, total = await self._repository().list(page, page_size)
        except SQLAlchemyError as e:
            raise self._persistence(ErrorCode.DB_QUERY_FAILED, "list users", e)
        return [UserOut.model_validate(u) for u in users], total

    # ── Writes ────────────────────────────────────────────────────────────

    async def update_user(self, user_id: int, changes: dict) -> UserOut:
        """
        Raises:
            ParamInvalidError: nothing to update
            ResourceError(EMAIL_EXISTS | USER_NOT_FOUND)
        """
        fields = {k: v for k, v in changes.items() if k in EDITABLE_FIELDS and v is not None}
        if not fields:
            raise ParamInvalidError("no fields to update")

        repo = self._repository()
        try:
            if "email" in fields and await repo.exists_by_email(fields["email"], exclude_id=user_id):
                raise ResourceError(ErrorCode.EMAIL_EXISTS)
            updated = await repo.update_fields(user_id, fields)
        except IntegrityError:
            raise ResourceError(ErrorCode.EMAIL_EXISTS)
        except SQLAlchemyError as e:
            raise self._persistence(ErrorCode.DB_UPDATE_FAILED, "update user", e)
        if not updated:
            raise ResourceError(ErrorCode.USER_NOT_FOUND)

        await self._cache_evict(user_id)
        return await self.get_user_by_id(user_id)

    async def delete_user(self, caller_id: int, target_id: int) -> None:
        """Soft delete; a user can never delete their own account."""
        if caller_id == target_id:
            raise ResourceError(ErrorCode.CANNOT_DELETE_SELF)
        try:
            deleted = await self._repository().soft_delete(target_id)
        except SQLAlchemyError as e:
            raise self._persistence(ErrorCode.DB_DELETE_FAILED, "delete user", e)
        if not deleted:
            raise ResourceError(ErrorCode.USER_NOT_FOUND)
        await self._cache_evict(target_id)
        logger.info("User %s deleted by %s", target_id, caller_id)

    # ── Helpers ───────────────────────────────────────────────────────────

    @staticmethod
    def _persistence(code: ErrorCode, operation: str, exc: Exception) -> PersistenceError:
        logger.error("%s failed: %s", operation, exc, exc_info=True)
        return PersistenceError(code, context={"operation": operation, "error": str(exc)})

    def _cache_client(self) -> Optional[RedisCache]:
        if self._cache is None or self._cache_ttl <= 0:
            return None
        try:
            return self._cache()
        except AppError:
            return None

    async def _cache_get(self, user_id: int) -> Optional[UserOut]:
        cache = self._cache_client()
        if cache is None:
            return None
        try:
            raw = await cache.get(user_cache_key(user_id))
        except Exception as e:
            logger.warning("User cache read failed for %s: %s", user_id, e)
            return None
        if raw is None:
            return None
        try:
            return UserOut.model_validate(json.loads(raw))
        except ValueError:
            logger.warning("Discarding malformed cache entry for user %s", user_id)
            return None

    async def _cache_set(self, user_out: UserOut) -> None:
        cache = self._cache_client()
        if cache is None:
            return
        try:
            await cache.set(user_cache_key(user_out.id), user_out.model_dump_json(), self._cache_ttl)
        except Exception as e:
            logger.warning("User cache write failed for %s: %s", user_out.id, e)

    async def _cache_evict(self, user_id: int) -> None:
        cache = self._cache_client()
        if cache is None:
            return
        try:
            await cache.delete(user_cache_key(user_id))
        except Exception as e:
            logger.warning("User cache evict failed for %s: %s", user_id, e)
