"""Admin-only route protection."""

from typing import Optional

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from src.shared.auth.auth import decode_admin_token
from src.shared.auth.database import AdminUser, get_db

# auto_error=False: a missing header is a 401 here, not FastAPI's 403
bearer_scheme = HTTPBearer(auto_error=False)


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail=detail,
        headers={"WWW-Authenticate": "Bearer"},
    )


def get_current_admin(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    db: Session = Depends(get_db),
) -> AdminUser:
    """The site owner behind the bearer token. Every failure is a 401."""
    if credentials is None:
        raise _unauthorized("Authentication required")

    claims = decode_admin_token(credentials.credentials)
    if claims is None:
        raise _unauthorized("Invalid or expired session")

    admin = db.query(AdminUser).filter(AdminUser.id == claims["sub"]).first()
    if admin is None:
        raise _unauthorized("Invalid or expired session")
    return admin
