"""
Inkwell Backend: Token Authenticator Unit Tests
================================================

What we test:
    ✅ Issued tokens validate and carry the expected claims
    ✅ Expiry boundary: accepted at T + L - 1, rejected at T + L
    ✅ Expired tokens are TOKEN_EXPIRED, forged or malformed are TOKEN_INVALID
    ✅ Wrong issuer and wrong algorithm are rejected
    ✅ Refresh only renews inside the refresh window
    ✅ X-Token takes precedence over Authorization: Bearer
"""

import jwt
import pytest

from inkwell.auth.dependencies import extract_token
from inkwell.auth.tokens import TokenAuthenticator
from inkwell.exceptions import ErrorCode, TokenExpiredError, TokenInvalidError

SECRET = "unit-test-secret-0123456789-abcdefghijklmnop"
TTL = 3600


class FakeClock:
    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now


class TestIssueAndValidate:
    def setup_method(self):
        self.clock = FakeClock()
        self.auth = TokenAuthenticator(SECRET, "inkwell", TTL, refresh_window=600, clock=self.clock)

    def test_round_trip_claims(self):
        token = self.auth.issue(42, "alice")
        claims = self.auth.validate(token)
        assert claims.user_id == 42
        assert claims.username == "alice"
        assert claims.issuer == "inkwell"
        assert claims.expires_at - claims.issued_at == TTL

    def test_valid_one_second_before_expiry(self):
        token = self.auth.issue(1, "alice")
        self.clock.now += TTL - 1
        assert self.auth.validate(token).user_id == 1

    def test_expired_at_exact_expiry(self):
        token = self.auth.issue(1, "alice")
        self.clock.now += TTL
        with pytest.raises(TokenExpiredError) as exc_info:
            self.auth.validate(token)
        assert exc_info.value.code == ErrorCode.TOKEN_EXPIRED

    def test_tampered_signature_is_invalid(self):
        token = self.auth.issue(1, "alice")
        header, payload, signature = token.split(".")
        flipped = ("A" if signature[0] != "A" else "B") + signature[1:]
        with pytest.raises(TokenInvalidError) as exc_info:
            self.auth.validate(".".join([header, payload, flipped]))
        assert exc_info.value.code == ErrorCode.TOKEN_INVALID

    def test_other_secret_is_invalid(self):
        other = TokenAuthenticator("another-secret-0123456789-abcdefghijklmn", "inkwell", TTL)
        with pytest.raises(TokenInvalidError):
            self.auth.validate(other.issue(1, "alice"))

    def test_garbage_is_invalid(self):
        with pytest.raises(TokenInvalidError):
            self.auth.validate("not-a-token")

    def test_wrong_issuer_is_invalid(self):
        other = TokenAuthenticator(SECRET, "someone-else", TTL, clock=self.clock)
        with pytest.raises(TokenInvalidError):
            self.auth.validate(other.issue(1, "alice"))

    def test_unsigned_token_is_invalid(self):
        now = int(self.clock())
        token = jwt.encode(
            {"user_id": 1, "username": "alice", "iss": "inkwell", "iat": now, "exp": now + TTL},
            None,
            algorithm="none",
        )
        with pytest.raises(TokenInvalidError):
            self.auth.validate(token)

    def test_missing_user_claims_is_invalid(self):
        now = int(self.clock())
        token = jwt.encode({"iss": "inkwell", "iat": now, "exp": now + TTL}, SECRET, algorithm="HS256")
        with pytest.raises(TokenInvalidError):
            self.auth.validate(token)

    def test_empty_secret_rejected(self):
        with pytest.raises(ValueError):
            TokenAuthenticator("", "inkwell", TTL)


class TestRefresh:
    def setup_method(self):
        self.clock = FakeClock()
        self.auth = TokenAuthenticator(SECRET, "inkwell", TTL, refresh_window=600, clock=self.clock)

    def test_fresh_token_returned_unchanged(self):
        token = self.auth.issue(7, "bob")
        assert self.auth.refresh(token) == token

    def test_token_near_expiry_is_renewed(self):
        token = self.auth.issue(7, "bob")
        self.clock.now += TTL - 300
        renewed = self.auth.refresh(token)
        assert renewed != token
        claims = self.auth.validate(renewed)
        assert claims.user_id == 7
        assert claims.expires_at == int(self.clock.now) + TTL

    def test_expired_token_cannot_be_refreshed(self):
        token = self.auth.issue(7, "bob")
        self.clock.now += TTL + 1
        with pytest.raises(TokenExpiredError):
            self.auth.refresh(token)


class TestExtractToken:
    def test_x_token_header(self):
        assert extract_token({"X-Token": "abc"}) == "abc"

    def test_bearer_header(self):
        assert extract_token({"Authorization": "Bearer xyz"}) == "xyz"

    def test_bearer_scheme_case_insensitive(self):
        assert extract_token({"Authorization": "bearer xyz"}) == "xyz"

    def test_x_token_wins_over_bearer(self):
        assert extract_token({"X-Token": "abc", "Authorization": "Bearer xyz"}) == "abc"

    def test_missing(self):
        assert extract_token({}) is None

    def test_other_scheme_ignored(self):
        assert extract_token({"Authorization": "Basic dXNlcjpwdw=="}) is None

    def test_empty_bearer_ignored(self):
        assert extract_token({"Authorization": "Bearer   "}) is None
