from __future__ import annotations

"""Who may read records, change them, or run trend analysis."""
from enum import Enum
from typing import Callable, FrozenSet

from fastapi import Depends, HTTPException, status

from .auth import User, get_current_user


class Permission(str, Enum):
    RECORDS_READ = "records:read"
    RECORDS_WRITE = "records:write"
    ANALYSIS_RUN = "analysis:run"


_EVERYTHING: FrozenSet[Permission] = frozenset(Permission)

ROLE_PERMISSIONS = {
    "viewer": frozenset({Permission.RECORDS_READ}),
    "editor": _EVERYTHING,
    "admin": _EVERYTHING,
}


def user_permissions(user: User) -> FrozenSet[Permission]:
    granted: FrozenSet[Permission] = frozenset()
    for role in user.roles:
        granted |= ROLE_PERMISSIONS.get(role, frozenset())
    return granted


def is_authorized(user: User, required: Permission) -> bool:
    return required in user_permissions(user)


def require_permission(required: Permission) -> Callable[[User], User]:
    """Route dependency: 403 unless the caller holds ``required``."""

    def dependency(user: User = Depends(get_current_user)) -> User:
        if not is_authorized(user, required):
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient permissions")
        return user

    return dependency
