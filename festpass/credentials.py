from __future__ import annotations
import logging
import secrets
from typing import Optional

from passlib.context import CryptContext

from .errors import AuthNotConfigured, InvalidRequest

logger = logging.getLogger(__name__)

# argon2id, 64 MiB, 3 passes, 4 lanes
pwd_context = CryptContext(
    schemes=["argon2"],
    deprecated="auto",
    argon2__memory_cost=65536,
    argon2__rounds=3,
    argon2__parallelism=4,
)


def hash_secret(secret: str) -> str:
    return pwd_context.hash(secret.strip())


class CredentialVerifier:
    """Checks the shared admin secret against its stored argon2 hash."""

    def __init__(self, password_hash: Optional[str]) -> None:
        self.password_hash = (password_hash or "").strip()

    def verify(self, submitted: Optional[str]) -> bool:
        if not isinstance(submitted, str) or not submitted.strip():
            raise InvalidRequest("Password is required")
        if not self.password_hash:
            logger.error("ADMIN_PASSWORD_HASH not configured")
            raise AuthNotConfigured("Authentication not configured")
        try:
            return pwd_context.verify(submitted.strip(), self.password_hash)
        except ValueError as e:
            # unknown or malformed hash string
            logger.error("ADMIN_PASSWORD_HASH is not a usable hash: %s", e)
            raise AuthNotConfigured("Authentication not configured") from e

    @staticmethod
    def issue_session_token() -> str:
        return secrets.token_hex(32)
