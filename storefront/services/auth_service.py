# storefront/services/auth_service.py
import hmac
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional

import jwt

from storefront.utils.settings import (
    ADMIN_PASSWORD,
    ADMIN_UPLOAD_PASSWORD,
    ADMIN_USERNAME,
    JWT_SECRET,
    SESSION_TTL_SECONDS,
)
from storefront.utils.logging import get_logger

logger = get_logger(__name__)

ALGORITHM = "HS256"


class AuthError(Exception):
    """Brak, niepoprawna albo wygasla sesja admina."""


def _same(a: str, b: str) -> bool:
    return hmac.compare_digest(a.encode("utf-8"), b.encode("utf-8"))


class AuthService:
    """
    Sesja admina: token HS256 z claimami {admin, username, expires},
    wazny SESSION_TTL_SECONDS (24h), trzymany w ciasteczku http-only.
    """

    def __init__(
        self,
        secret: str = JWT_SECRET,
        username: str = ADMIN_USERNAME,
        password: str = ADMIN_PASSWORD,
        upload_password: str = ADMIN_UPLOAD_PASSWORD,
        ttl_seconds: int = SESSION_TTL_SECONDS,
    ):
        self.secret = secret
        self.username = username
        self.password = password
        self.upload_password = upload_password
        self.ttl_seconds = ttl_seconds

    def verify_credentials(self, username: str, password: str) -> bool:
        if not self.username or not self.password:
            logger.error("Brak ADMIN_USERNAME albo ADMIN_PASSWORD w konfiguracji")
            return False
        #porownanie obu pol zawsze, bez skracania
        user_ok = _same(username, self.username)
        pass_ok = _same(password, self.password)
        return user_ok and pass_ok

    def verify_upload_password(self, password: Optional[str]) -> bool:
        if not self.upload_password or not password:
            return False
        return _same(password, self.upload_password)

    def create_session_token(self, username: str, now: Optional[datetime] = None) -> str:
        now = now or datetime.now(timezone.utc)
        expires = now + timedelta(seconds=self.ttl_seconds)
        payload = {
            "admin": True,
            "username": username,
            "expires": expires.isoformat(),
            "iat": now,
            "exp": expires,
        }
        return jwt.encode(payload, self.secret, algorithm=ALGORITHM)

    def decode_session(self, token: Optional[str]) -> Dict[str, Any]:
        if not token:
            raise AuthError("Unauthorized")
        try:
            payload = jwt.decode(token, self.secret, algorithms=[ALGORITHM])
        except jwt.ExpiredSignatureError:
            raise AuthError("Session expired")
        except jwt.InvalidTokenError:
            raise AuthError("Unauthorized")

        if payload.get("admin") is not True:
            raise AuthError("Unauthorized")
        return payload

    def login(self, username: str, password: str) -> str:
        if not self.verify_credentials(username, password):
            logger.warning(f"Nieudane logowanie admina: {username!r}")
            raise AuthError("Invalid credentials")
        logger.info(f"Admin {username!r} zalogowany")
        return self.create_session_token(username)
