"""
Clients des systèmes externes.

- PostgreSQL Supabase (asyncpg)
- Redis (compteurs de rate limiting)
- n8n (déclenchement et suivi des automatisations)
- Supabase Auth (vérification des tokens)
"""

from .base import (
    AuthenticationError,
    BaseClient,
    ClientError,
    InvalidResponseError,
    NotFoundError,
    RateLimitError,
)
from .database import Database, database
from .n8n import N8nApiError, N8nClient, N8nError, n8n_client
from .redis_client import RedisClient, redis_client
from .supabase_auth import SupabaseAuthClient, supabase_auth_client

__all__ = [
    "AuthenticationError",
    "BaseClient",
    "ClientError",
    "InvalidResponseError",
    "NotFoundError",
    "RateLimitError",
    "Database",
    "database",
    "N8nApiError",
    "N8nClient",
    "N8nError",
    "n8n_client",
    "RedisClient",
    "redis_client",
    "SupabaseAuthClient",
    "supabase_auth_client",
]
