"""Site owner credentials: bcrypt password hashes and signed admin session tokens."""

import logging
import os
from datetime import datetime, timedelta
from typing import Optional

import bcrypt
from jose import JWTError, jwt

SECRET_KEY = os.environ.get("SECRET_KEY")
if not SECRET_KEY:
    logging.warning("SECRET_KEY is not set. Admin login will fail until it is configured.")

ALGORITHM = "HS256"
ADMIN_TOKEN_TYPE = "admin_session"
ADMIN_SESSION_DAYS = int(os.environ.get("ADMIN_SESSION_DAYS", "7"))

# bcrypt ignores everything past 72 bytes
BCRYPT_MAX_BYTES = 72


def _password_bytes(password: str) -> bytes:
    encoded = password.encode("utf-8")
    if len(encoded) <= BCRYPT_MAX_BYTES:
        return encoded
    # Cut on a character boundary so multi-byte characters are never split
    return encoded[:BCRYPT_MAX_BYTES].decode("utf-8", errors="ignore").encode("utf-8")


def hash_password(password: str) -> str:
    return bcrypt.hashpw(_password_bytes(password), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return bcrypt.checkpw(_password_bytes(plain_password), hashed_password.encode("utf-8"))


# Checked against when the email is unknown, so both failure paths cost one bcrypt round
_UNKNOWN_ADMIN_HASH = hash_password("unknown-admin-placeholder")


def check_login(plain_password: str, hashed_password: Optional[str]) -> bool:
    """Compare a login password. A missing account still spends the same hashing time."""
    if hashed_password is None:
        verify_password(plain_password, _UNKNOWN_ADMIN_HASH)
        return False
    return verify_password(plain_password, hashed_password)


def create_admin_token(admin_id: str, email: str, expires_in: Optional[timedelta] = None) -> str:
    if not SECRET_KEY:
        raise ValueError("SECRET_KEY environment variable is required to issue admin sessions")
    expires_at = datetime.utcnow() + (expires_in or timedelta(days=ADMIN_SESSION_DAYS))
    claims = {"sub": admin_id, "email": email, "type": ADMIN_TOKEN_TYPE, "exp": expires_at}
    return jwt.encode(claims, SECRET_KEY, algorithm=ALGORITHM)


def decode_admin_token(token: str) -> Optional[dict]:
    """Claims of a valid, unexpired admin session token, or None."""
    if not SECRET_KEY:
        logging.error("SECRET_KEY is not set, cannot check admin session")
        return None
    try:
        claims = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        return None
    if claims.get("type") != ADMIN_TOKEN_TYPE or not claims.get("sub"):
        return None
    return claims
