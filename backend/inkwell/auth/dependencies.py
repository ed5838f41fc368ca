"""
Inkwell Backend: Request Dependencies
======================================

What:  FastAPI dependencies that resolve the caller's identity and the
       per-application services.
How:   Protected routers declare `Depends(require_claims)`. The token is read
       from the `X-Token` header first and, when absent, from
       `Authorization: Bearer <token>`. On success the claims are also
       stored on `request.state.claims` for the access log.
"""

from typing import Mapping, Optional

from fastapi import Request

from inkwell.auth.tokens import Claims
from inkwell.exceptions import TokenMissingError

TOKEN_HEADER = "X-Token"
BEARER_PREFIX = "bearer "


def extract_token(headers: Mapping[str, str]) -> Optional[str]:
    token = headers.get(TOKEN_HEADER)
    if token and token.strip():
        return token.strip()
    authorization = headers.get("Authorization")
    if authorization and authorization.lower().startswith(BEARER_PREFIX):
        bearer = authorization[len(BEARER_PREFIX):].strip()
        if bearer:
            return bearer
    return None


def get_container(request: Request):
    return request.app.state.container


async def require_claims(request: Request) -> Claims:
    """
    Raises:
        TokenMissingError: neither header carries a token
        TokenInvalidError / TokenExpiredError: from the authenticator
    """
    token = extract_token(request.headers)
    if token is None:
        raise TokenMissingError()
    claims = get_container(request).authenticator.validate(token)
    request.state.claims = claims
    return claims


def get_user_service(request: Request):
    return get_container(request).user_service


def get_article_service(request: Request):
    return get_container(request).article_service


def get_health_aggregator(request: Request):
    return get_container(request).health
