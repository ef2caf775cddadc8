import logging

from fastapi import Depends, HTTPException, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session

from calendar_app.core.database import get_db
from calendar_app.core.security import create_access_token, decode_admin_token, verify_password
from calendar_app.models.admin import AdminUser
from calendar_app.schemas.auth import LoginRequest, TokenResponse

logger = logging.getLogger(__name__)

_oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


def login_admin(db: Session, payload: LoginRequest) -> TokenResponse:
    admin = db.query(AdminUser).filter(AdminUser.username == payload.username).first()
    if not admin or not admin.is_active or not verify_password(payload.password, admin.hashed_password):
        logger.info("Rejected admin login for %r", payload.username)
        raise HTTPException(status_code=401, detail="Invalid username or password.")
    return TokenResponse(access_token=create_access_token(admin.id, admin.username), admin_id=admin.id)


def admin_from_token(db: Session, token: str | None) -> AdminUser | None:
    if not token:
        return None
    claims = decode_admin_token(token)
    if claims is None:
        return None
    admin = db.get(AdminUser, claims.admin_id)
    if admin is None or not admin.is_active:
        return None
    if claims.username is not None and claims.username != admin.username:
        # Account was renamed or the id reassigned since issue
        return None
    return admin


def get_current_admin(
    token: str | None = Depends(_oauth2_scheme),
    db: Session = Depends(get_db),
) -> AdminUser:
    if not token:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Not authenticated.")
    admin = admin_from_token(db, token)
    if admin is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid token.")
    return admin


def get_optional_admin(
    token: str | None = Depends(_oauth2_scheme),
    db: Session = Depends(get_db),
) -> AdminUser | None:
    return admin_from_token(db, token)


def require_super_admin(admin: AdminUser = Depends(get_current_admin)) -> AdminUser:
    if not admin.is_super_admin:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Super admin access required.")
    return admin
