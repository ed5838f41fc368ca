"""
Inkwell Backend: Authentication Routes
=======================================

What:  Register, login, logout and token refresh under /api/v1/auth.

Logout is acknowledged without server-side effect: tokens are stateless
and the client discards its copy.
"""

import logging

from fastapi import APIRouter, Depends, Request

from inkwell.auth.dependencies import extract_token, get_container, get_user_service, require_claims
from inkwell.auth.tokens import Claims
from inkwell.schemas.common import Envelope
from inkwell.schemas.user import LoginRequest, RegisterRequest, TokenResponse
from inkwell.responses import success
from inkwell.services.user_service import UserService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Auth"])


@router.post("/register", response_model=Envelope, summary="Create an account")
async def register(body: RegisterRequest, users: UserService = Depends(get_user_service)):
    user = await users.register(body.username, body.password, body.email)
    return success(user, message="registered")


@router.post("/login", response_model=Envelope, summary="Exchange credentials for a token")
async def login(body: LoginRequest, users: UserService = Depends(get_user_service)):
    result = await users.login(body.username, body.password)
    return success(result)


@router.post("/logout", response_model=Envelope, summary="Discard the current token")
async def logout(claims: Claims = Depends(require_claims)):
    logger.info("User %s logged out", claims.user_id)
    return success(message="logged out")


@router.post("/refresh", response_model=Envelope, summary="Renew a token close to expiry")
async def refresh(request: Request, claims: Claims = Depends(require_claims)):
    token = extract_token(request.headers)
    new_token = get_container(request).authenticator.refresh(token)
    return success(TokenResponse(token=new_token))
