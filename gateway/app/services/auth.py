"""
Login and bearer-token verification.

A single admin account is configured through settings. Successful logins
receive an HS256 JWT carrying the username.
"""

import hmac
import logging
from datetime import datetime, timedelta, timezone
from typing import Dict, Optional

import jwt

from gateway.errors import Unauthorized
from gateway.settings import AuthSettings

logger = logging.getLogger(__name__)


class AuthService:
    """Issues and verifies bearer tokens for the admin account."""

    def __init__(self, auth_settings: AuthSettings):
        self.settings = auth_settings

    def check_credentials(self, username: str, password: str) -> bool:
        """Constant-time comparison against the configured admin account."""
        expected_user = self.settings.admin_username
        expected_password = self.settings.admin_password
        if not expected_user or not expected_password or not self.settings.jwt_secret:
            logger.warning("Login attempted but admin credentials or JWT secret not configured")
            return False

        user_ok = hmac.compare_digest(username.encode(), expected_user.encode())
        password_ok = hmac.compare_digest(password.encode(), expected_password.encode())
        return user_ok and password_ok

    def login(self, username: str, password: str) -> Optional[str]:
        """
        Return a signed token for valid credentials, None otherwise.

        Args:
            username: Submitted username
            password: Submitted password

        Returns:
            str: JWT, or None if the credentials are wrong
        """
        if not self.check_credentials(username, password):
            logger.info(f"Rejected login for {username!r}")
            return None
        logger.info(f"Issued token for {username!r}")
        return self.generate_token(username)

    def generate_token(self, username: str) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "username": username,
            "iat": now,
            "exp": now + timedelta(days=self.settings.token_expires_days),
        }
        return jwt.encode(payload, self.settings.jwt_secret, algorithm=self.settings.jwt_algorithm)

    def verify_token(self, token: str) -> Dict:
        """
        Decode and validate a token.

        Raises:
            Unauthorized: If the token is expired, tampered with, or unsigned
        """
        if not self.settings.jwt_secret:
            raise Unauthorized("Token verification unavailable")
        try:
            return jwt.decode(
                token,
                self.settings.jwt_secret,
                algorithms=[self.settings.jwt_algorithm],
            )
        except jwt.ExpiredSignatureError as e:
            raise Unauthorized("Token expired") from e
        except jwt.InvalidTokenError as e:
            raise Unauthorized("Invalid token") from e

    def verify_header(self, authorization: Optional[str]) -> Dict:
        """Validate an 'Authorization: Bearer <token>' header value."""
        if not authorization:
            raise Unauthorized("Missing Authorization header")

        parts = authorization.split(" ", 1)
        if len(parts) != 2 or parts[0].lower() != "bearer" or not parts[1].strip():
            raise Unauthorized("Malformed Authorization header")

        return self.verify_token(parts[1].strip())
