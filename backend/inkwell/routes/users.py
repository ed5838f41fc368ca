"""
Inkwell Backend: User Routes
=============================

What:  Profile and user management under /api/v1/users. Every route
       requires a valid token.
"""

from fastapi import APIRouter, Depends, Path, Query

from inkwell.auth.dependencies import get_user_service, require_claims
from inkwell.auth.tokens import Claims
from inkwell.responses import success
from inkwell.schemas.common import (
    DEFAULT_PAGE,
    DEFAULT_PAGE_SIZE,
    INT64_MAX,
    MAX_PAGE,
    Envelope,
    PageResponse,
    normalize_page,
)
from inkwell.schemas.user import UpdateUserRequest, UserOut
from inkwell.services.user_service import UserService

router = APIRouter(prefix="/users", tags=["Users"], dependencies=[Depends(require_claims)])


@router.get("", response_model=Envelope, summary="Paginated user list")
async def list_users(
    page: int = Query(default=DEFAULT_PAGE, le=MAX_PAGE),
    page_size: int = Query(default=DEFAULT_PAGE_SIZE),
    users: UserService = Depends(get_user_service),
):
    page, page_size = normalize_page(page, page_size)
    items, total = await users.list_users(page, page_size)
    return success(PageResponse[UserOut](total=total, page=page, page_size=page_size, list=items))


# Declared before /{user_id} so "me" is not parsed as an id
@router.get("/me", response_model=Envelope, summary="Profile of the caller")
async def me(
    claims: Claims = Depends(require_claims),
    users: UserService = Depends(get_user_service),
):
    return success(await users.get_user_info(claims.user_id))


@router.post("/update", response_model=Envelope, summary="Update the caller's profile")
async def update_me(
    body: UpdateUserRequest,
    claims: Claims = Depends(require_claims),
    users: UserService = Depends(get_user_service),
):
    user = await users.update_user(claims.user_id, body.changes())
    return success(user, message="updated")


@router.get("/{user_id}", response_model=Envelope, summary="User by id")
async def get_user(
    user_id: int = Path(ge=1, le=INT64_MAX),
    users: UserService = Depends(get_user_service),
):
    return success(await users.get_user_by_id(user_id))


@router.post("/{user_id}/delete", response_model=Envelope, summary="Delete another user")
async def delete_user(
    user_id: int = Path(ge=1, le=INT64_MAX),
    claims: Claims = Depends(require_claims),
    users: UserService = Depends(get_user_service),
):
    await users.delete_user(claims.user_id, user_id)
    return success(message="deleted")
