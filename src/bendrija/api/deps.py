from __future__ import annotations

import uuid

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from bendrija.core.db import db_session
from bendrija.core.logging import bind_context
from bendrija.core.security import decode_access_token
from bendrija.modules.identity.models import User, UserRole

bearer_scheme = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    session: Session = Depends(db_session),
) -> User:
    """Resolve the bearer token to an active user; any failure is a 401."""
    if credentials is None or not credentials.credentials:
        raise _unauthorized("Not authenticated")

    try:
        user_id = uuid.UUID(decode_access_token(credentials.credentials) or "")
    except ValueError as e:
        raise _unauthorized("Invalid token") from e

    user = session.get(User, user_id)
    if user is None or not user.is_active:
        raise _unauthorized("Invalid user")
    bind_context(user_id=str(user.id))
    return user


def require_role(*roles: UserRole):
    allowed = ", ".join(r.value for r in roles)

    def _checker(user: User = Depends(get_current_user)) -> User:
        if user.role not in roles:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN, detail=f"Requires role: {allowed}"
            )
        return user

    return _checker


require_admin = require_role(UserRole.ADMIN)
