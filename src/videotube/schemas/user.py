"""Pydantic schemas for users and auth.

Learn: Separate "Create"/request schemas (input) from "Read" schemas
(output). Password fields only ever appear on input schemas.
"""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field, model_validator


class UserCreate(BaseModel):
    username: str = Field(..., min_length=3, max_length=50, pattern=r"^\s*[A-Za-z0-9_.-]+\s*$")
    email: str = Field(..., min_length=3, max_length=255, pattern=r"^\s*[^@\s]+@[^@\s]+\s*$")
    fullname: str = Field(..., min_length=1, max_length=100)
    avatar: str = Field(..., min_length=1, max_length=1024)
    cover_image: Optional[str] = Field(None, max_length=1024)
    password: str = Field(..., min_length=8, max_length=128)


class LoginRequest(BaseModel):
    """Log in with either username or email."""
    username: Optional[str] = None
    email: Optional[str] = None
    password: str

    @model_validator(mode="after")
    def require_identity(self):
        if not self.username and not self.email:
            raise ValueError("username or email is required")
        return self


class RefreshRequest(BaseModel):
    # Optional: browsers send the refreshToken cookie instead.
    refresh_token: Optional[str] = None


class ChangePasswordRequest(BaseModel):
    old_password: str
    new_password: str = Field(..., min_length=8, max_length=128)


class UserRead(BaseModel):
    id: uuid.UUID
    username: str
    email: str
    fullname: str
    avatar: str
    cover_image: Optional[str] = None
    created_at: datetime

    model_config = {"from_attributes": True}


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"


class LoginResponse(TokenResponse):
    user: UserRead
