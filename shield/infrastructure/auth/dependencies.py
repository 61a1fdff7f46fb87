"""FastAPI authentication dependencies (Bearer JWT, admin only)."""
import os

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from shield.infrastructure.auth.jwt_handler import verify_token

_security = HTTPBearer(auto_error=False)


def is_admin_username(username: str | None) -> bool:
    """True if *username* matches ADMIN_USERNAME (case-insensitive)."""
    configured = os.environ.get("ADMIN_USERNAME", "").strip().lower()
    if not username or not configured:
        return False
    return username.strip().lower() == configured


def get_current_user(
    credentials: HTTPAuthorizationCredentials = Depends(_security),
) -> dict:
    """Extract and validate the access token. 401 on missing / invalid / expired."""
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required.",
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = verify_token(credentials.credentials)
    if not payload:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token.",
            headers={"WWW-Authenticate": "Bearer"},
        )

    if payload.get("type") != "access":
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token type. Access token required.",
        )

    return payload


def require_admin(current_user: dict = Depends(get_current_user)) -> dict:
    """403 unless the token carries role=admin or the ADMIN_USERNAME username."""
    if current_user.get("role") == "admin":
        return current_user
    if is_admin_username(current_user.get("username")):
        return current_user
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied. Admin only.")


SERVICE_ROLES = ("service", "admin")


def require_service(current_user: dict = Depends(get_current_user)) -> dict:
    """403 unless the token belongs to a trusted caller (role=service or an admin)."""
    if current_user.get("role") in SERVICE_ROLES:
        return current_user
    if is_admin_username(current_user.get("username")):
        return current_user
    raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied. Service credential required.")
