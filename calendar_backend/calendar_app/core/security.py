from dataclasses import dataclass
from datetime import datetime, timedelta

from jose import JWTError, jwt
from passlib.context import CryptContext

from calendar_app.core.config import settings

_pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")
_ALGORITHM = "HS256"
_TOKEN_EXPIRE_MINUTES = 60 * 8  # one working day
_ADMIN_SCOPE = "admin"


@dataclass(frozen=True)
class AdminClaims:
    admin_id: int
    username: str | None
    issued_at: datetime | None


def hash_password(plain: str) -> str:
    return _pwd_context.hash(plain)


def verify_password(plain: str, hashed: str) -> bool:
    return _pwd_context.verify(plain, hashed)


def create_access_token(admin_id: int, username: str | None = None) -> str:
    """Admin token; ``username`` pins it to the account it was issued for."""
    now = datetime.utcnow()
    claims = {
        "sub": str(admin_id),
        "scope": _ADMIN_SCOPE,
        "iat": now,
        "exp": now + timedelta(minutes=_TOKEN_EXPIRE_MINUTES),
    }
    if username:
        claims["username"] = username
    return jwt.encode(claims, settings.jwt_secret, algorithm=_ALGORITHM)


def decode_admin_token(token: str) -> AdminClaims | None:
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[_ALGORITHM])
    except JWTError:
        return None
    if payload.get("scope") != _ADMIN_SCOPE:
        return None
    try:
        admin_id = int(payload["sub"])
    except (KeyError, TypeError, ValueError):
        return None
    issued = payload.get("iat")
    return AdminClaims(
        admin_id=admin_id,
        username=payload.get("username"),
        issued_at=datetime.utcfromtimestamp(issued) if isinstance(issued, (int, float)) else None,
    )
