"""
Redis Credential Vault

Pass-through credential storage keyed by an opaque reference. Jobs only
hold the reference; the vault entry is discarded with the job.
"""

import logging
import secrets
from typing import Optional

from jiradl.domain.job_management.repositories import CredentialVault
from jiradl.domain.job_management.value_objects import Credentials

logger = logging.getLogger(__name__)


class RedisCredentialVault(CredentialVault):
    """Redis-based implementation of CredentialVault."""

    def __init__(self, redis_repository, ttl: Optional[int] = None):
        """
        Args:
            redis_repository: RedisRepository instance
            ttl: Optional expiry of stored credentials in seconds
        """
        self.redis_repo = redis_repository
        self.key_prefix = "credentials"
        self.ttl = ttl

    def store(self, credentials: Credentials) -> str:
        credentials_ref = secrets.token_urlsafe(24)
        key = f"{self.key_prefix}:{credentials_ref}"
        if not self.redis_repo.set_json(key, credentials.to_dict(), ttl=self.ttl):
            raise Exception("Failed to store credentials")
        return credentials_ref

    def get(self, credentials_ref: str) -> Optional[Credentials]:
        if not credentials_ref:
            return None
        data = self.redis_repo.get_json(f"{self.key_prefix}:{credentials_ref}")
        if data is None:
            return None
        try:
            return Credentials.from_dict(data)
        except (KeyError, ValueError) as e:
            logger.error(f"Stored credentials are unreadable: {e}")
            return None

    def discard(self, credentials_ref: str) -> bool:
        if not credentials_ref:
            return False
        return self.redis_repo.delete(f"{self.key_prefix}:{credentials_ref}")
