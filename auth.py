"""
Admin authentication.

There is one admin password and no user table. A successful login yields a
signed, expiring bearer token; a request either carries a valid token
(Capability.ADMIN) or it is anonymous.
"""

import logging
import os
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Optional

from fastapi import Header
from jose import JWTError, jwt
from passlib.context import CryptContext

from errors import AuthError, InvalidCredentials, PortfolioError

logger = logging.getLogger(__name__)

# =====================
# Auth / Security Setup
# =====================
SECRET_KEY = os.getenv("JWT_SECRET", "super-secret-key-change")
ALGORITHM = "HS256"
ACCESS_TOKEN_EXPIRE_MINUTES = 60 * 24

# Use pbkdf2_sha256 to avoid external bcrypt dependency issues
pwd_context = CryptContext(schemes=["pbkdf2_sha256"], deprecated="auto")

# Production deployments set a precomputed hash; ADMIN_PASSWORD is for local use
ADMIN_PASSWORD_HASH = os.getenv("ADMIN_PASSWORD_HASH") or (
    pwd_context.hash(os.environ["ADMIN_PASSWORD"]) if os.getenv("ADMIN_PASSWORD") else None
)


class Capability(str, Enum):
    ANONYMOUS = "anonymous"
    ADMIN = "admin"


def verify_password(plain_password: str, hashed_password: str) -> bool:
    return pwd_context.verify(plain_password, hashed_password)


def create_access_token(expires_delta: Optional[timedelta] = None,
                        issued_at: Optional[datetime] = None) -> str:
    issued_at = issued_at or datetime.now(timezone.utc)
    expire = issued_at + (expires_delta or timedelta(minutes=ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode = {"role": Capability.ADMIN.value, "iat": issued_at, "exp": expire}
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)


def login(password: str) -> str:
    if not ADMIN_PASSWORD_HASH:
        raise PortfolioError("Server auth not configured")
    try:
        valid = verify_password(password, ADMIN_PASSWORD_HASH)
    except ValueError:
        logger.error(
            "ADMIN_PASSWORD_HASH is not a pbkdf2_sha256 hash; regenerate it with `python auth.py <password>`"
        )
        raise PortfolioError("Server auth not configured")
    if not valid:
        logger.warning("Rejected admin login attempt")
        raise InvalidCredentials()
    return create_access_token()


def resolve_capability(authorization: Optional[str]) -> Capability:
    if not authorization or not authorization.lower().startswith("bearer "):
        return Capability.ANONYMOUS
    token = authorization.split(" ", 1)[1].strip()
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        return Capability.ANONYMOUS
    if payload.get("role") != Capability.ADMIN.value:
        return Capability.ANONYMOUS
    return Capability.ADMIN


def get_current_admin(authorization: Optional[str] = Header(None)) -> Capability:
    # missing, malformed and expired tokens all look the same to the caller
    capability = resolve_capability(authorization)
    if capability is not Capability.ADMIN:
        raise AuthError()
    return capability


if __name__ == "__main__":
    import sys

    if len(sys.argv) != 2:
        sys.exit("usage: python auth.py <password>")
    print(pwd_context.hash(sys.argv[1]))
