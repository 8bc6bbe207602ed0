import logging
from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import jwt

from passbridge.core.config import settings

logger = logging.getLogger(__name__)


class AuthService:

    @staticmethod
    def generate_admin_token(subject: str, expires_in_hours: Optional[int] = None) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "sub": subject,
            "type": "admin",
            "issued_at": now.isoformat(),
            "exp": now + timedelta(hours=expires_in_hours or settings.JWT_EXPIRY_HOURS)
        }
        return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)

    @staticmethod
    def verify_admin_token(token: str) -> Optional[str]:
        """
        Verify and decode an admin JWT token, return its subject.

        Args:
            token: JWT token string

        Returns:
            Subject if valid, None otherwise
        """
        try:
            payload = jwt.decode(token, settings.JWT_SECRET, algorithms=[settings.JWT_ALGORITHM])
            if payload.get("type") == "admin":
                return payload.get("sub")
            return None
        except jwt.ExpiredSignatureError:
            logger.warning("Admin JWT token has expired")
            return None
        except jwt.JWTError as e:
            logger.warning(f"Admin JWT token verification failed: {e}")
            return None
