"""
Admin Session Module

Single-admin login backed by configured credentials. A login creates a new
session id in the stored state and returns a signed JWT naming it; logging in
again or logging out invalidates every earlier token.
"""

from datetime import datetime, timezone, timedelta
from typing import Optional
import hmac
import uuid

import jwt

from .config import RatingLedgerConfig, get_config
from .errors import AuthenticationError
from .storage import StorageInterface
from .logging_config import get_logger, log_action


logger = get_logger(__name__)


class AdminAuthenticator:
    """
    Issues and validates admin tokens
    """

    def __init__(self, storage: StorageInterface, config: Optional[RatingLedgerConfig] = None):
        self.storage = storage
        self.config = config or get_config()

    def login(self, username: str, password: str) -> str:
        """
        Authenticate the admin and return a bearer token

        Raises:
            AuthenticationError: If the credentials don't match
        """
        valid_user = hmac.compare_digest(
            (username or "").encode(), self.config.admin_username.encode()
        )
        valid_password = hmac.compare_digest(
            (password or "").encode(), self.config.admin_password.encode()
        )
        if not (valid_user and valid_password):
            log_action(logger, "warning", "Admin login failed",
                       action="login_failed", resource="auth",
                       details={"username": username})
            raise AuthenticationError("Invalid credentials")

        session_id = str(uuid.uuid4())
        now = datetime.now(timezone.utc)
        with self.storage.atomic():
            state = self.storage.load()
            state["admin"]["session_id"] = session_id
            self.storage.save(state)

        token = jwt.encode(
            {
                "sub": self.config.admin_username,
                "session_id": session_id,
                "iat": now,
                "exp": now + timedelta(hours=self.config.admin_token_ttl_hours),
            },
            self.config.jwt_secret,
            algorithm=self.config.jwt_algorithm,
        )
        log_action(logger, "info", "Admin logged in", action="login", resource="auth")
        return token

    def verify(self, token: Optional[str]) -> str:
        """
        Validate a token and return the admin username

        Raises:
            AuthenticationError: If the token is missing, malformed, expired or
                belongs to a session that has been replaced or logged out
        """
        if not token:
            raise AuthenticationError("Missing admin token")
        try:
            payload = jwt.decode(
                token, self.config.jwt_secret, algorithms=[self.config.jwt_algorithm]
            )
        except jwt.InvalidTokenError as e:
            raise AuthenticationError("Invalid or expired token") from e

        with self.storage.atomic():
            current = self.storage.load()["admin"].get("session_id")
        if not current or payload.get("session_id") != current:
            raise AuthenticationError("Invalid or expired token")
        return payload["sub"]

    def logout(self, token: Optional[str]) -> None:
        """Invalidate the session behind a valid token"""
        self.verify(token)
        with self.storage.atomic():
            state = self.storage.load()
            state["admin"]["session_id"] = None
            self.storage.save(state)
        log_action(logger, "info", "Admin logged out", action="logout", resource="auth")
