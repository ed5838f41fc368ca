"""
Inkwell Backend: User Request/Response Schemas
===============================================

What:  API contract for registration, login, profile reads and updates.
How:   Request models validate input (a failure becomes PARAM_INVALID);
       `UserOut` is built from the ORM row and never exposes the password
       hash or the soft-delete marker.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, EmailStr, Field


# ══════════════════════════════════════════════════════════════════════════
# Request Models
# ══════════════════════════════════════════════════════════════════════════


class RegisterRequest(BaseModel):
    username: str = Field(min_length=3, max_length=50, description="Unique login name")
    password: str = Field(min_length=6, max_length=50, description="Plain-text password")
    email: EmailStr = Field(description="Unique contact address")


class LoginRequest(BaseModel):
    username: str = Field(min_length=1, max_length=50)
    password: str = Field(min_length=1, max_length=50)


class UpdateUserRequest(BaseModel):
    """
    Only email, phone and avatar are user-editable. Omitted (or null)
    fields are left as they are; a request changing nothing is rejected.
    """

    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(default=None, max_length=20)
    avatar: Optional[str] = Field(default=None, max_length=255)

    def changes(self) -> dict:
        return self.model_dump(exclude_none=True)


# ══════════════════════════════════════════════════════════════════════════
# Response Models
# ══════════════════════════════════════════════════════════════════════════


class UserOut(BaseModel):
    id: int
    username: str
    email: str
    phone: str = ""
    avatar: str = ""
    status: int
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class LoginResponse(BaseModel):
    token: str = Field(description="Identity token for X-Token / Authorization: Bearer")
    user_info: UserOut


class TokenResponse(BaseModel):
    token: str
