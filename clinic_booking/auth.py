"""
Admin authentication.
Admin tokens are HS256 JWTs signed with SECRET_KEY carrying role="admin".
Issuing them (login) is handled outside this service.
"""

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from fastapi import Depends, HTTPException
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError
from jose import jwt as jose_jwt

from .config import SECRET_KEY

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"
ADMIN_ROLE = "admin"

security = HTTPBearer(auto_error=False)


def create_admin_token(subject: str, expires_in: timedelta = timedelta(hours=12)) -> str:
    """Sign an admin token; used by operators' tooling and the test-suite"""
    payload = {
        "sub": subject,
        "role": ADMIN_ROLE,
        "exp": datetime.now(timezone.utc) + expires_in,
    }
    return jose_jwt.encode(payload, SECRET_KEY, algorithm=ALGORITHM)


def decode_admin_token(token: str) -> Optional[dict]:
    try:
        payload = jose_jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError as e:
        logger.warning(f"⚠️ Admin token rejected: {e}")
        return None
    if payload.get("role") != ADMIN_ROLE:
        logger.warning(f"⚠️ Token for {payload.get('sub')} lacks the admin role")
        return None
    return payload


def get_current_admin(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> dict:
    """Dependency for admin-only routes"""
    if not credentials:
        raise HTTPException(
            status_code=401,
            detail="Not authenticated. Please provide a valid Bearer token in the Authorization header.",
        )

    payload = decode_admin_token(credentials.credentials)
    if not payload:
        raise HTTPException(status_code=401, detail="Invalid or expired token")
    return payload
