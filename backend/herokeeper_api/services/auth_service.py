"""JWT authentication service"""

import logging
from datetime import UTC, datetime, timedelta

import jwt

logger = logging.getLogger(__name__)


class AuthService:
    """Issue and verify dashboard session tokens.

    The ``campaigns`` claim lists the Discord guild ids the user may manage.
    """

    def __init__(self, secret_key: str, algorithm: str = "HS256", expire_days: int = 30):
        if not secret_key:
            raise ValueError("JWT secret key cannot be empty")

        self.secret_key = secret_key
        self.algorithm = algorithm
        self.expire_days = expire_days

    def create_access_token(self, user_id: str, campaigns: list[str]) -> str:
        now = datetime.now(UTC)
        payload = {
            "sub": user_id,
            "campaigns": list(campaigns),
            "exp": now + timedelta(days=self.expire_days),
            "iat": now,
        }
        token = jwt.encode(payload, self.secret_key, algorithm=self.algorithm)
        logger.debug(f"JWT created for user: {user_id} ({len(campaigns)} campaigns)")
        return token

    def verify_token(self, token: str) -> dict | None:
        """Return the payload of a valid token, else None."""
        try:
            payload = jwt.decode(token, self.secret_key, algorithms=[self.algorithm])
        except jwt.ExpiredSignatureError:
            logger.warning("Token expired")
            return None
        except jwt.InvalidTokenError as e:
            logger.warning(f"Invalid token: {e}")
            return None

        if payload.get("sub") is None:
            logger.warning("Token missing sub")
            return None
        return payload

    @staticmethod
    def can_manage(payload: dict, campaign_id: str) -> bool:
        return campaign_id in (payload.get("campaigns") or [])
