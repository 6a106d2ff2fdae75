"""
Redis Configuration

Connection and key settings for the job store and the credential vault.
The connection manager lives on the Flask app; nothing here is global.
"""

import os
from typing import Optional
from urllib.parse import quote

from jiradl.infrastructure.redis_repository import RedisConnectionManager, RedisRepository


def _url_from_parts() -> str:
    host = os.getenv("REDIS_HOST", "localhost")
    port = int(os.getenv("REDIS_PORT", 6379))
    db = int(os.getenv("REDIS_DB", 0))
    password = os.getenv("REDIS_PASSWORD")
    auth = f":{quote(password, safe='')}@" if password else ""
    return f"redis://{auth}{host}:{port}/{db}"


class RedisConfig:
    """
    Redis settings.

    REDIS_URL wins over REDIS_HOST/REDIS_PORT/REDIS_DB/REDIS_PASSWORD.
    Job and credential keys are namespaced by REDIS_KEY_PREFIX so the
    store can share a database with the Celery broker.
    """

    def __init__(self):
        self.url = os.getenv("REDIS_URL") or _url_from_parts()
        self.max_connections = int(os.getenv("REDIS_MAX_CONNECTIONS", 20))
        self.key_prefix = os.getenv("REDIS_KEY_PREFIX", "jiradl")

        ttl = os.getenv("CREDENTIAL_TTL_SECONDS")
        self.credential_ttl: Optional[int] = int(ttl) if ttl else None

    def connect(self) -> RedisConnectionManager:
        """Create the pooled connection manager; no connection is opened yet."""
        return RedisConnectionManager.from_url(self.url, max_connections=self.max_connections)

    def repository(self, manager: RedisConnectionManager) -> RedisRepository:
        return RedisRepository(manager.client, self.key_prefix)
