from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, EmailStr, Field

from backoffice.models.user import UserStatus
from backoffice.schemas.common import ORMModel


class UserRead(ORMModel):
    id: int
    name: str
    email: str
    avatar: str | None
    status: UserStatus
    role_id: int | None
    created_by: int | None
    updated_by: int | None
    created_at: datetime


class UserCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    status: UserStatus = UserStatus.ACTIVE
    role_id: int | None = None
    avatar: str | None = Field(default=None, max_length=255)


class UserUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    email: EmailStr | None = None
    password: str | None = Field(default=None, min_length=8, max_length=128)
    status: UserStatus | None = None
    role_id: int | None = None
    avatar: str | None = Field(default=None, max_length=255)
