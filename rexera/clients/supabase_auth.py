"""
Client Supabase Auth (GoTrue).

Vérifie les access tokens des utilisateurs via GET /auth/v1/user.
"""

from typing import Any, Optional

import httpx
import structlog

from ..config import settings
from .base import AuthenticationError, BaseClient

logger = structlog.get_logger(__name__)


class SupabaseAuthClient(BaseClient):
    """Client pour l'API d'authentification Supabase."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        url = base_url if base_url is not None else settings.supabase_url
        super().__init__(
            base_url=f"{url.rstrip('/')}/auth/v1" if url else "",
            timeout=settings.supabase_timeout,
            transport=transport,
        )
        self.api_key = (
            api_key
            if api_key is not None
            else settings.supabase_service_role_key.get_secret_value()
        )

    @property
    def configured(self) -> bool:
        return bool(self.base_url and self.api_key)

    def _get_headers(self) -> dict[str, str]:
        return {"apikey": self.api_key, "Accept": "application/json"}

    async def get_user(self, access_token: str) -> Optional[dict[str, Any]]:
        """
        Retourne l'utilisateur Supabase correspondant au token.

        Args:
            access_token: JWT envoyé par le frontend

        Returns:
            {"id", "email", ...} ou None si le token est invalide/expiré
        """
        if not self.configured:
            logger.warning("supabase_auth_not_configured")
            return None

        headers = {**self._get_headers(), "Authorization": f"Bearer {access_token}"}
        try:
            user = await self._request("GET", "/user", headers=headers)
        except AuthenticationError:
            return None

        if not user or not user.get("id"):
            return None
        return user


# Instance singleton
supabase_auth_client = SupabaseAuthClient()
