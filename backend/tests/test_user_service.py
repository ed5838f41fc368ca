"""
Inkwell Backend: User Service Unit Tests
=========================================

What:  UserService against the real SQL repository on in-memory SQLite.

What we test:
    ✅ Registering the same username twice: USERNAME_EXISTS, one row stored
    ✅ Duplicate email: EMAIL_EXISTS
    ✅ Passwords are stored as bcrypt hashes
    ✅ Unknown user and wrong password both yield INVALID_PASSWORD, no writes
    ✅ Disabled account: USER_DISABLED
    ✅ Deleting yourself: CANNOT_DELETE_SELF
    ✅ Update validation and cache eviction
    ✅ Driver failures are wrapped into PersistenceError
"""

from unittest.mock import AsyncMock, MagicMock

import pytest
from sqlalchemy import update
from sqlalchemy.exc import OperationalError

from inkwell.exceptions import (
    ErrorCode,
    ParamInvalidError,
    PersistenceError,
    ResourceError,
    ServiceUnavailableError,
)
from inkwell.models.user import USER_STATUS_DISABLED, User
from inkwell.services.user_service import UserService, user_cache_key


async def disable_user(session_factory, user_id: int) -> None:
    """Accounts are disabled by an operator, not through the API."""
    async with session_factory() as session:
        await session.execute(
            update(User).where(User.id == user_id).values(status=USER_STATUS_DISABLED)
        )
        await session.commit()


class TestRegister:
    @pytest.mark.asyncio
    async def test_register_returns_profile_without_password(self, user_service):
        user = await user_service.register("alice", "secret123", "alice@example.com")
        assert user.id > 0
        assert user.username == "alice"
        assert "password" not in user.model_dump()

    @pytest.mark.asyncio
    async def test_duplicate_username(self, user_service, user_repository):
        await user_service.register("alice", "secret123", "alice@example.com")
        with pytest.raises(ResourceError) as exc_info:
            await user_service.register("alice", "other-pass", "alice2@example.com")
        assert exc_info.value.code == ErrorCode.USERNAME_EXISTS
        assert await user_repository.count() == 1

    @pytest.mark.asyncio
    async def test_duplicate_email(self, user_service):
        await user_service.register("alice", "secret123", "shared@example.com")
        with pytest.raises(ResourceError) as exc_info:
            await user_service.register("bob", "secret123", "shared@example.com")
        assert exc_info.value.code == ErrorCode.EMAIL_EXISTS

    @pytest.mark.asyncio
    async def test_password_is_hashed(self, user_service, user_repository):
        await user_service.register("alice", "secret123", "alice@example.com")
        stored = await user_repository.find_by_username("alice")
        assert stored.password != "secret123"
        assert stored.password.startswith("$2")


class TestLogin:
    @pytest.mark.asyncio
    async def test_login_issues_valid_token(self, user_service, authenticator):
        registered = await user_service.register("alice", "secret123", "alice@example.com")
        result = await user_service.login("alice", "secret123")
        claims = authenticator.validate(result.token)
        assert claims.user_id == registered.id
        assert claims.username == "alice"
        assert result.user_info.email == "alice@example.com"

    @pytest.mark.asyncio
    async def test_wrong_password_changes_nothing(self, user_service, user_repository):
        await user_service.register("alice", "secret123", "alice@example.com")
        before = await user_repository.find_by_username("alice")

        with pytest.raises(ResourceError) as exc_info:
            await user_service.login("alice", "wrong-password")

        assert exc_info.value.code == ErrorCode.INVALID_PASSWORD
        after = await user_repository.find_by_username("alice")
        assert after.updated_at == before.updated_at
        assert await user_repository.count() == 1

    @pytest.mark.asyncio
    async def test_unknown_user_is_indistinguishable(self, user_service):
        with pytest.raises(ResourceError) as exc_info:
            await user_service.login("nobody", "secret123")
        assert exc_info.value.code == ErrorCode.INVALID_PASSWORD

    @pytest.mark.asyncio
    async def test_unknown_user_still_checks_a_hash(self, user_service, monkeypatch):
        verify = AsyncMock(return_value=False)
        monkeypatch.setattr("inkwell.services.user_service.verify_password", verify)
        with pytest.raises(ResourceError):
            await user_service.login("nobody", "secret123")
        verify.assert_awaited_once()
        password, hashed = verify.await_args.args
        assert password == "secret123"
        assert hashed.startswith("$2b$04$")

    @pytest.mark.asyncio
    async def test_disabled_user(self, user_service, session_factory):
        user = await user_service.register("alice", "secret123", "alice@example.com")
        await disable_user(session_factory, user.id)
        with pytest.raises(ResourceError) as exc_info:
            await user_service.login("alice", "secret123")
        assert exc_info.value.code == ErrorCode.USER_DISABLED

    @pytest.mark.asyncio
    async def test_disabled_user_with_wrong_password(self, user_service, session_factory):
        user = await user_service.register("alice", "secret123", "alice@example.com")
        await disable_user(session_factory, user.id)
        with pytest.raises(ResourceError) as exc_info:
            await user_service.login("alice", "nope-nope")
        assert exc_info.value.code == ErrorCode.INVALID_PASSWORD


class TestReadsAndWrites:
    @pytest.mark.asyncio
    async def test_get_missing_user(self, user_service):
        with pytest.raises(ResourceError) as exc_info:
            await user_service.get_user_by_id(999)
        assert exc_info.value.code == ErrorCode.USER_NOT_FOUND

    @pytest.mark.asyncio
    async def test_list_users_paginates(self, user_service):
        for name in ("alice", "bob", "carol"):
            await user_service.register(name, "secret123", f"{name}@example.com")
        page, total = await user_service.list_users(page=2, page_size=2)
        assert total == 3
        assert [u.username for u in page] == ["carol"]

    @pytest.mark.asyncio
    async def test_update_profile(self, user_service):
        user = await user_service.register("alice", "secret123", "alice@example.com")
        updated = await user_service.update_user(user.id, {"phone": "555-0100", "avatar": None})
        assert updated.phone == "555-0100"
        assert updated.avatar == ""

    @pytest.mark.asyncio
    async def test_update_with_nothing_is_param_invalid(self, user_service):
        user = await user_service.register("alice", "secret123", "alice@example.com")
        with pytest.raises(ParamInvalidError):
            await user_service.update_user(user.id, {"username": "mallory"})

    @pytest.mark.asyncio
    async def test_update_to_taken_email(self, user_service):
        await user_service.register("alice", "secret123", "alice@example.com")
        bob = await user_service.register("bob", "secret123", "bob@example.com")
        with pytest.raises(ResourceError) as exc_info:
            await user_service.update_user(bob.id, {"email": "alice@example.com"})
        assert exc_info.value.code == ErrorCode.EMAIL_EXISTS

    @pytest.mark.asyncio
    async def test_delete_self_is_refused(self, user_service, user_repository):
        user = await user_service.register("alice", "secret123", "alice@example.com")
        with pytest.raises(ResourceError) as exc_info:
            await user_service.delete_user(user.id, user.id)
        assert exc_info.value.code == ErrorCode.CANNOT_DELETE_SELF
        assert await user_repository.count() == 1

    @pytest.mark.asyncio
    async def test_delete_other_user_soft_deletes(self, user_service, user_repository):
        alice = await user_service.register("alice", "secret123", "alice@example.com")
        bob = await user_service.register("bob", "secret123", "bob@example.com")
        await user_service.delete_user(alice.id, bob.id)
        assert await user_repository.find_by_id(bob.id) is None
        # the username stays reserved
        assert await user_repository.exists_by_username("bob")

    @pytest.mark.asyncio
    async def test_delete_missing_user(self, user_service):
        alice = await user_service.register("alice", "secret123", "alice@example.com")
        with pytest.raises(ResourceError) as exc_info:
            await user_service.delete_user(alice.id, 4242)
        assert exc_info.value.code == ErrorCode.USER_NOT_FOUND


class TestCachingAndFailures:
    def _service(self, repo, authenticator, cache=None):
        return UserService(
            repository_provider=lambda: repo,
            authenticator=authenticator,
            bcrypt_rounds=4,
            cache_provider=(lambda: cache) if cache is not None else None,
            cache_ttl=60,
        )

    @pytest.mark.asyncio
    async def test_profile_is_cached_after_first_read(self, user_repository, authenticator):
        cache = MagicMock()
        cache.get = AsyncMock(return_value=None)
        cache.set = AsyncMock()
        service = self._service(user_repository, authenticator, cache)

        user = await service.register("alice", "secret123", "alice@example.com")
        info = await service.get_user_info(user.id)

        assert info.username == "alice"
        cache.set.assert_awaited_once()
        key, _, ttl = cache.set.await_args.args
        assert key == user_cache_key(user.id)
        assert ttl == 60

    @pytest.mark.asyncio
    async def test_cached_profile_skips_repository(self, user_repository, authenticator):
        service = self._service(user_repository, authenticator)
        user = await service.register("alice", "secret123", "alice@example.com")

        cache = MagicMock()
        cache.get = AsyncMock(return_value=user.model_dump_json())
        repo = MagicMock()
        repo.find_by_id = AsyncMock()
        cached_service = self._service(repo, authenticator, cache)

        info = await cached_service.get_user_info(user.id)
        assert info.id == user.id
        repo.find_by_id.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_cache_errors_fall_through(self, user_repository, authenticator):
        cache = MagicMock()
        cache.get = AsyncMock(side_effect=ConnectionError("redis down"))
        cache.set = AsyncMock(side_effect=ConnectionError("redis down"))
        service = self._service(user_repository, authenticator, cache)
        user = await service.register("alice", "secret123", "alice@example.com")
        assert (await service.get_user_info(user.id)).username == "alice"

    @pytest.mark.asyncio
    async def test_update_evicts_cache(self, user_repository, authenticator):
        cache = MagicMock()
        cache.delete = AsyncMock(return_value=1)
        service = self._service(user_repository, authenticator, cache)
        user = await service.register("alice", "secret123", "alice@example.com")
        await service.update_user(user.id, {"phone": "1"})
        cache.delete.assert_awaited_once_with(user_cache_key(user.id))

    @pytest.mark.asyncio
    async def test_driver_error_is_wrapped(self, authenticator):
        repo = MagicMock()
        repo.find_by_username = AsyncMock(
            side_effect=OperationalError("SELECT", {}, Exception("connection lost"))
        )
        service = self._service(repo, authenticator)
        with pytest.raises(PersistenceError) as exc_info:
            await service.login("alice", "secret123")
        assert exc_info.value.code == ErrorCode.DB_QUERY_FAILED

    @pytest.mark.asyncio
    async def test_store_not_initialized(self, settings, authenticator):
        from inkwell.stores import Stores

        service = UserService(Stores(settings).user_repository, authenticator)
        with pytest.raises(ServiceUnavailableError) as exc_info:
            await service.get_user_by_id(1)
        assert exc_info.value.code == ErrorCode.SERVICE_UNAVAILABLE
