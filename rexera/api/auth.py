"""
Authentification des requêtes API.

Deux modes:
- SKIP_AUTH=true : utilisateur HIL admin fixe (développement)
- SSO Supabase   : token Bearer vérifié via Supabase Auth puis profil user_profiles

Le webhook n8n et le cron SLA utilisent des secrets Bearer partagés.
"""

import hmac
from typing import Optional

import httpx
import structlog
from fastapi import Depends, Request, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ..clients.base import ClientError
from ..clients.supabase_auth import SupabaseAuthClient
from ..config import get_settings
from ..models.enums import UserType
from ..models.users import AuthUser
from ..repositories.users import UserRepository
from .dependencies import get_supabase_auth, get_user_repository
from .errors import forbidden, service_unavailable, unauthorized

logger = structlog.get_logger(__name__)

bearer_scheme = HTTPBearer(auto_error=False)

SKIP_AUTH_TOKEN = "skip-auth-token"

DEV_USER = AuthUser(
    id="284219ff-3a1f-4e86-9ea4-3536f940451f",
    email="admin@rexera.com",
    user_type=UserType.HIL_USER,
    role="HIL_ADMIN",
    company_id=None,
)


def _bind_user(user: AuthUser) -> AuthUser:
    structlog.contextvars.bind_contextvars(user_id=user.id)
    return user


async def get_current_user(
    credentials: Optional[HTTPAuthorizationCredentials] = Security(bearer_scheme),
    supabase: SupabaseAuthClient = Depends(get_supabase_auth),
    users: UserRepository = Depends(get_user_repository),
) -> AuthUser:
    """
    Résout l'utilisateur appelant.

    Raises:
        APIError 401: Header absent, token invalide ou expiré
        APIError 403: Profil absent
        APIError 503: Supabase Auth injoignable
    """
    settings = get_settings()

    if settings.skip_auth:
        return _bind_user(DEV_USER)

    if credentials is None or credentials.scheme.lower() != "bearer" or not credentials.credentials:
        raise unauthorized("Missing or invalid Authorization header")

    token = credentials.credentials

    if token == SKIP_AUTH_TOKEN:
        if not settings.is_production:
            logger.debug("skip_auth_token_used")
            return _bind_user(DEV_USER)
        logger.warning("skip_auth_token_rejected", environment=settings.environment)
        raise unauthorized("Invalid or expired token")

    try:
        supabase_user = await supabase.get_user(token)
    except (ClientError, httpx.TransportError) as e:
        logger.error("supabase_auth_unavailable", error=str(e))
        raise service_unavailable("Authentication service unavailable")

    if supabase_user is None:
        raise unauthorized("Invalid or expired token")

    profile = await users.get_profile(supabase_user["id"])
    if profile is None:
        logger.warning("user_profile_missing", user_id=supabase_user["id"])
        raise forbidden("User profile not found")

    user = AuthUser(
        id=str(profile["id"]),
        email=supabase_user.get("email") or profile.get("email") or "",
        user_type=UserType(profile["user_type"]),
        role=profile["role"],
        company_id=str(profile["company_id"]) if profile.get("company_id") else None,
    )

    if user.user_type == UserType.CLIENT_USER and not user.company_id:
        raise forbidden("Client user has no company")

    return _bind_user(user)


async def require_hil_user(user: AuthUser = Depends(get_current_user)) -> AuthUser:
    """Réservé aux opérateurs HIL."""
    if not user.is_hil:
        raise forbidden("HIL access required")
    return user


def _bearer_token(request: Request) -> Optional[str]:
    header = request.headers.get("Authorization", "")
    if not header.lower().startswith("bearer "):
        return None
    return header[7:].strip() or None


def _secret_matches(provided: Optional[str], expected: str) -> bool:
    if not provided:
        return False
    return hmac.compare_digest(provided.encode(), expected.encode())


async def verify_webhook_secret(request: Request) -> None:
    """
    Vérifie le secret Bearer du webhook n8n.

    Sans secret configuré, la requête est acceptée (la production refuse de
    démarrer dans ce cas).
    """
    expected = get_settings().n8n_webhook_secret.get_secret_value()
    if not expected:
        logger.warning("n8n_webhook_auth_not_configured")
        return
    if not _secret_matches(_bearer_token(request), expected):
        logger.warning("n8n_webhook_unauthorized", client=request.client.host if request.client else None)
        raise unauthorized("Unauthorized")


async def verify_cron_secret(request: Request) -> None:
    """Vérifie le secret Bearer des endpoints cron (si configuré)."""
    expected = get_settings().cron_secret.get_secret_value()
    if not expected:
        logger.warning("cron_auth_not_configured")
        return
    if not _secret_matches(_bearer_token(request), expected):
        raise unauthorized("Unauthorized")
