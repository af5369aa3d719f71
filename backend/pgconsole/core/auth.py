"""
Per-app session tokens and password hashing
"""
from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import jwt, JWTError
from passlib.context import CryptContext

from pgconsole.config import settings
from pgconsole.core.rbac import AppSession, Role

pwd_context = CryptContext(
    schemes=["bcrypt"],
    deprecated="auto",
    bcrypt__rounds=settings.BCRYPT_ROUNDS,
)


def hash_password(password: str) -> str:
    """Hash a password."""
    return pwd_context.hash(password)


def verify_password(password: str, hashed_password: Optional[str]) -> bool:
    """Verify password against hash."""
    if not password or not hashed_password:
        return False
    try:
        return pwd_context.verify(password, hashed_password)
    except ValueError:
        # Stored value is not a recognised hash
        return False


def session_cookie_name(app_id: str) -> str:
    return f"app_session_{app_id}"


def create_session_token(session: AppSession) -> str:
    """Create a signed session token scoped to one app."""
    expire = datetime.now(timezone.utc) + timedelta(minutes=settings.SESSION_EXPIRE_MINUTES)
    payload = {
        "sub": str(session.principal_id),
        "app": session.app_id,
        "role": session.role.value,
        "username": session.username,
        "exp": expire,
        "type": "app_session",
    }
    return jwt.encode(payload, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def verify_session_token(token: str, app_id: str) -> Optional[AppSession]:
    """Verify a session token and return its session if it belongs to ``app_id``."""
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None
    if payload.get("type") != "app_session" or payload.get("app") != app_id:
        return None
    try:
        principal_id = int(payload["sub"])
    except (KeyError, TypeError, ValueError):
        return None
    return AppSession(
        app_id=app_id,
        role=Role.parse(payload.get("role")),
        principal_id=principal_id,
        username=payload.get("username"),
    )
