import logging
from collections.abc import Callable
from dataclasses import dataclass

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from .database import get_db_session
from .models import Role, User
from .security import AuthError, decode_access_token


logger = logging.getLogger(__name__)

ROLE_ACCESS = {
    Role.ADMIN: {Role.ADMIN, Role.SCHOOL_STAFF},
}


@dataclass(frozen=True)
class CurrentUser:
    user_id: int
    email: str
    role: Role


def _parse_token(auth_header: str | None) -> str:
    if not auth_header:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing Authorization header")
    parts = auth_header.split(" ", 1)
    if len(parts) != 2 or parts[0].lower() != "bearer" or not parts[1].strip():
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid auth scheme")
    return parts[1].strip()


def get_current_user(
    authorization: str | None = Header(default=None, alias="Authorization"),
    db: Session = Depends(get_db_session),
) -> CurrentUser:
    token = _parse_token(authorization)
    try:
        payload = decode_access_token(token)
        role = Role(payload["role"])
    except (AuthError, ValueError) as exc:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail=str(exc)) from exc

    user = db.get(User, payload["user_id"])
    if not user:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid user")
    return CurrentUser(user_id=user.user_id, email=user.email, role=role)


def require_roles(*allowed_roles: Role) -> Callable:
    def dependency(current_user: CurrentUser = Depends(get_current_user)) -> CurrentUser:
        reachable = ROLE_ACCESS.get(current_user.role, {current_user.role})
        if not set(allowed_roles).intersection(reachable):
            logger.warning(f"User {current_user.user_id} ({current_user.role.value}) denied, needs {[r.value for r in allowed_roles]}")
            raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Insufficient role privileges")
        return current_user

    return dependency
