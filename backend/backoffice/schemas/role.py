from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field

from backoffice.schemas.common import ORMModel

SLUG_REGEX = r"^[a-z0-9]+(?:-[a-z0-9]+)*$"


class RoleRead(ORMModel):
    id: int
    name: str
    slug: str
    description: str | None
    is_default: bool
    created_at: datetime
    updated_at: datetime


class RoleSummaryRead(RoleRead):
    permission_count: int = 0
    user_count: int = 0


class RoleCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    slug: str | None = Field(default=None, min_length=1, max_length=255, pattern=SLUG_REGEX)
    description: str | None = None
    is_default: bool = False


class RoleUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=255)
    slug: str | None = Field(default=None, min_length=1, max_length=255, pattern=SLUG_REGEX)
    description: str | None = None
    is_default: bool | None = None
