"""
Inkwell Backend: Identity Token Authenticator
==============================================

What:  Issues, validates and refreshes HMAC-SHA256 signed identity tokens.
How:   PyJWT encodes claims {user_id, username, iss, iat, exp}. Validation
       checks the signature, the algorithm and the issuer through PyJWT,
       then checks expiry against the injected clock so that an expired
       token is reported distinctly from a malformed or forged one.
Who:   UserService issues tokens on login; the auth dependency validates
       them on every protected request.

Expiry semantics:
    A token issued at T with lifetime L is accepted strictly before T + L
    and rejected from T + L on (no leeway).
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable

import jwt

from inkwell.exceptions import TokenExpiredError, TokenGenerationError, TokenInvalidError

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"


@dataclass(frozen=True)
class Claims:
    user_id: int
    username: str
    issuer: str
    issued_at: int
    expires_at: int


class TokenAuthenticator:
    def __init__(
        self,
        secret: str,
        issuer: str,
        ttl_seconds: int,
        refresh_window: int = 2 * 3600,
        clock: Callable[[], float] = time.time,
    ):
        if not secret:
            raise ValueError("Token secret must not be empty")
        self._secret = secret
        self.issuer = issuer
        self.ttl_seconds = ttl_seconds
        self.refresh_window = refresh_window
        self._clock = clock

    def issue(self, user_id: int, username: str) -> str:
        now = int(self._clock())
        payload = {
            "user_id": user_id,
            "username": username,
            "iss": self.issuer,
            "iat": now,
            "exp": now + self.ttl_seconds,
        }
        try:
            return jwt.encode(payload, self._secret, algorithm=ALGORITHM)
        except (jwt.PyJWTError, TypeError, ValueError) as e:
            logger.error("Token generation failed for user %s: %s", user_id, e)
            raise TokenGenerationError(context={"user_id": user_id})

    def validate(self, token: str) -> Claims:
        """
        Raises:
            TokenInvalidError: bad signature, wrong algorithm or issuer,
                               malformed token or missing claims
            TokenExpiredError: well-formed token whose `exp` has passed
        """
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[ALGORITHM],
                issuer=self.issuer,
                options={
                    # expiry is checked below against the injected clock
                    "verify_exp": False,
                    "verify_iat": False,
                    "verify_nbf": False,
                    "require": ["exp", "iat", "iss"],
                },
            )
        except jwt.InvalidTokenError as e:
            raise TokenInvalidError(context={"reason": str(e)})

        try:
            claims = Claims(
                user_id=int(payload["user_id"]),
                username=str(payload["username"]),
                issuer=str(payload["iss"]),
                issued_at=int(payload["iat"]),
                expires_at=int(payload["exp"]),
            )
        except (KeyError, TypeError, ValueError) as e:
            raise TokenInvalidError(context={"reason": f"bad claims: {e}"})

        if self._clock() >= claims.expires_at:
            raise TokenExpiredError(context={"user_id": claims.user_id})
        return claims

    def refresh(self, token: str) -> str:
        """
        Return a fresh token when less than `refresh_window` seconds remain,
        otherwise the same token unchanged. Invalid or expired tokens raise.
        """
        claims = self.validate(token)
        remaining = claims.expires_at - self._clock()
        if remaining > self.refresh_window:
            return token
        return self.issue(claims.user_id, claims.username)
