import logging
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

import jwt

from ...core.config import settings
from ...application.ports.auth_provider import AuthProvider

logger = logging.getLogger(__name__)

DEFAULT_SECRET = "change-me-in-prod"


def create_jwt_token(data: dict, expires_in: timedelta = timedelta(hours=24)) -> str:
    """Create JWT access token with expiration"""
    to_encode = data.copy()
    to_encode.update({"exp": datetime.utcnow() + expires_in, "type": "access"})

    if not settings.SECRET_KEY or settings.SECRET_KEY == DEFAULT_SECRET:
        raise ValueError("SECRET_KEY not properly configured")

    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def decode_jwt_token(token: str) -> Optional[Dict[str, Any]]:
    """Decode and verify JWT token"""
    if not settings.SECRET_KEY or settings.SECRET_KEY == DEFAULT_SECRET:
        logger.error("SECRET_KEY not properly configured; refusing to verify tokens")
        return None
    try:
        return jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except jwt.ExpiredSignatureError:
        logger.warning("JWT token has expired")
        return None
    except jwt.InvalidTokenError as e:
        logger.warning(f"Invalid JWT token: {e}")
        return None


class JwtAuthProvider(AuthProvider):
    """Attributes a request to the user named by the bearer token's ``sub`` claim."""

    def __init__(self, token: Optional[str]) -> None:
        self._claims = decode_jwt_token(token) if token else None

    def current_user_id(self) -> Optional[str]:
        if not self._claims or not self._claims.get("sub"):
            return None
        return str(self._claims["sub"])

    def current_role(self) -> Optional[str]:
        if not self._claims:
            return None
        return self._claims.get("role", "patient")
