from __future__ import annotations

import logging
from collections.abc import Callable, Sequence

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from backoffice.core.context import bind_user
from backoffice.core.security import decode_access_token
from backoffice.db.session import get_db
from backoffice.models.user import User
from backoffice.services.authorization import can, can_access_admin, can_any
from backoffice.services.user_service import get_user

logger = logging.getLogger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/auth/token")


def _credentials_error() -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Invalid authentication credentials.",
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_user(token: str = Depends(oauth2_scheme), db: Session = Depends(get_db)) -> User:
    subject = decode_access_token(token)
    if subject is None or not subject.isdigit():
        raise _credentials_error()

    user = get_user(db, int(subject))
    if not user:
        raise _credentials_error()
    if not can_access_admin(user):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User account is not active.")

    bind_user(user.id)
    return user


def require_permission(permission: str) -> Callable:
    def dependency(user: User = Depends(get_current_user)) -> User:
        if not can(user, permission):
            logger.info("Permission %s denied for user %s", permission, user.id)
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient permissions.")
        return user

    return dependency


def require_any_permission(permissions: Sequence[str]) -> Callable:
    def dependency(user: User = Depends(get_current_user)) -> User:
        if not can_any(user, permissions):
            logger.info("Permissions %s denied for user %s", ", ".join(permissions), user.id)
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient permissions.")
        return user

    return dependency
