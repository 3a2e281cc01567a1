"""JWT authentication and permission-based authorization dependencies."""

import bcrypt
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import ExpiredSignatureError, JWTError, jwt
from sqlalchemy.orm import Session

from hostpanel.core.config import settings
from hostpanel.core.identity import CallerIdentity
from hostpanel.db.session import get_db
from hostpanel.services.permission_cache import permission_cache

# JWT bearer scheme
security_scheme = HTTPBearer(auto_error=False)


def hash_password(password: str) -> str:
    """Hash a password using bcrypt."""
    pwd_bytes = password.encode("utf-8")
    salt = bcrypt.gensalt()
    hashed = bcrypt.hashpw(pwd_bytes, salt)
    return hashed.decode("utf-8")


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against its hash."""
    pwd_bytes = plain_password.encode("utf-8")
    hashed_bytes = hashed_password.encode("utf-8")
    return bcrypt.checkpw(pwd_bytes, hashed_bytes)


def create_access_token(data: dict, expires_delta: Optional[timedelta] = None) -> str:
    """Create a JWT access token."""
    to_encode = data.copy()
    expire = datetime.now(timezone.utc) + (
        expires_delta or timedelta(minutes=settings.JWT_EXPIRY_MINUTES)
    )
    to_encode.update({"exp": expire, "type": "access"})
    return jwt.encode(to_encode, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> dict:
    """Decode and validate a JWT token."""
    try:
        return jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
    except ExpiredSignatureError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token expired",
            headers={"WWW-Authenticate": "Bearer"},
        )
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token",
            headers={"WWW-Authenticate": "Bearer"},
        )


async def get_current_user_id(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security_scheme),
) -> int:
    """Extract user_id from the Bearer token or the ``token`` cookie."""
    token = credentials.credentials if credentials else request.cookies.get("token")
    if not token:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    payload = decode_token(token)
    user_id = payload.get("sub")
    if user_id is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
        )
    try:
        return int(user_id)
    except (TypeError, ValueError):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token payload",
        )


def get_current_caller(
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
) -> CallerIdentity:
    """Resolve the authenticated caller's identity through the permission cache."""
    return permission_cache.resolve(db, user_id)


class RequirePermission:
    """Dependency that passes super admins or callers holding ``slug``."""

    def __init__(self, slug: str):
        self.slug = slug

    async def __call__(self, caller: CallerIdentity = Depends(get_current_caller)) -> CallerIdentity:
        if not caller.has_permission(self.slug):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Permission denied",
            )
        return caller


class RequireAnyPermission:
    """Dependency that passes super admins or callers holding any listed slug."""

    def __init__(self, *slugs: str):
        self.slugs = slugs

    async def __call__(self, caller: CallerIdentity = Depends(get_current_caller)) -> CallerIdentity:
        if not caller.has_any_permission(self.slugs):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Permission denied",
            )
        return caller


def require_permission(slug: str) -> RequirePermission:
    return RequirePermission(slug)


def require_any_permission(*slugs: str) -> RequireAnyPermission:
    return RequireAnyPermission(*slugs)


async def require_super_admin(
    caller: CallerIdentity = Depends(get_current_caller),
) -> CallerIdentity:
    if not caller.is_super_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Super admin access required",
        )
    return caller
