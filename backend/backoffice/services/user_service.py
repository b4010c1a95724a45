from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.orm import Session, selectinload

from backoffice.core.exceptions import ConflictError, NotFoundError, ValidationError
from backoffice.core.security import get_password_hash
from backoffice.models.role import Role
from backoffice.models.user import User
from backoffice.schemas.user import UserCreate, UserUpdate
from backoffice.services.policies import user_policy
from backoffice.services.role_service import get_default_role


def get_user(db: Session, user_id: int) -> User | None:
    return db.scalar(
        select(User)
        .where(User.id == user_id)
        .options(selectinload(User.role).selectinload(Role.permissions))
        .execution_options(populate_existing=True)
    )


def get_user_by_email(db: Session, email: str) -> User | None:
    return db.scalar(select(User).where(User.email == email).options(selectinload(User.role).selectinload(Role.permissions)))


def _ensure_email_available(db: Session, email: str, exclude_id: int | None = None) -> None:
    query = select(User.id).where(User.email == email)
    if exclude_id is not None:
        query = query.where(User.id != exclude_id)
    if db.scalar(query) is not None:
        raise ValidationError("Email already exists.", field="email")


def _ensure_role_exists(db: Session, role_id: int) -> None:
    if db.scalar(select(Role.id).where(Role.id == role_id)) is None:
        raise ValidationError("Role does not exist.", field="role_id")


def create_user(db: Session, payload: UserCreate) -> User:
    email = str(payload.email)
    _ensure_email_available(db, email)

    role_id = payload.role_id
    if role_id is not None:
        _ensure_role_exists(db, role_id)
    else:
        default_role = get_default_role(db)
        role_id = default_role.id if default_role else None

    user = User(
        name=payload.name,
        email=email,
        password=get_password_hash(payload.password),
        status=payload.status.value,
        role_id=role_id,
        avatar=payload.avatar,
    )
    db.add(user)
    db.commit()
    return get_user(db, user.id)


def update_user(db: Session, user_id: int, payload: UserUpdate) -> User:
    user = get_user(db, user_id)
    if not user:
        raise NotFoundError("User not found.")

    changes = payload.model_dump(exclude_unset=True)
    if changes.get("email") is not None:
        changes["email"] = str(changes["email"])
        _ensure_email_available(db, changes["email"], exclude_id=user.id)
    if changes.get("password") is not None:
        changes["password"] = get_password_hash(changes["password"])
    if changes.get("role_id") is not None:
        _ensure_role_exists(db, changes["role_id"])
    if changes.get("status") is not None:
        changes["status"] = changes["status"].value

    for key, value in changes.items():
        if value is None and key in {"name", "email", "password", "status"}:
            continue
        setattr(user, key, value)
    db.commit()
    return get_user(db, user.id)


def delete_user(db: Session, actor: User | None, user_id: int) -> None:
    user = get_user(db, user_id)
    if not user:
        raise NotFoundError("User not found.")

    decision = user_policy.delete(actor, user)
    if not decision:
        raise ConflictError(decision.message or "User cannot be deleted.", reason=decision.reason)

    db.delete(user)
    db.commit()


def list_users(db: Session, skip: int = 0, limit: int = 100) -> list[User]:
    return list(
        db.scalars(
            select(User)
            .options(selectinload(User.role))
            .order_by(User.created_at.desc(), User.id.desc())
            .offset(skip)
            .limit(limit)
        )
    )
