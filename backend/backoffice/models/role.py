from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String, Table, Text
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backoffice.core.rbac import SUPER_ADMIN_SLUG
from backoffice.models.base import Base, utc_now

role_permission = Table(
    "role_permission",
    Base.metadata,
    Column("role_id", Integer, ForeignKey("roles.id", ondelete="CASCADE"), primary_key=True),
    Column("permission_id", Integer, ForeignKey("permissions.id", ondelete="CASCADE"), primary_key=True),
)


class Role(Base):
    __tablename__ = "roles"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    slug: Mapped[str] = mapped_column(String(255), unique=True, nullable=False, index=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    # Advisory: nothing at the database level stops two roles from being default.
    is_default: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False)

    permissions: Mapped[list["Permission"]] = relationship(
        secondary=role_permission,
        back_populates="roles",
        order_by="Permission.id",
    )
    users: Mapped[list["User"]] = relationship(back_populates="role", passive_deletes=True)

    @property
    def is_super_admin(self) -> bool:
        return self.slug == SUPER_ADMIN_SLUG

    @property
    def permission_names(self) -> set[str]:
        return {permission.name for permission in self.permissions}

    def has_permission(self, permission: str) -> bool:
        return permission in self.permission_names
