"""
Tests for caller authentication and shared-secret checks.
"""

from unittest.mock import AsyncMock

import pytest
from fastapi.security import HTTPAuthorizationCredentials
from pydantic import SecretStr
from starlette.requests import Request

from rexera.api.auth import (
    DEV_USER,
    SKIP_AUTH_TOKEN,
    get_current_user,
    require_hil_user,
    verify_cron_secret,
    verify_webhook_secret,
)
from rexera.api.errors import APIError
from rexera.clients.base import ClientError
from rexera.clients.supabase_auth import SupabaseAuthClient
from rexera.config import get_settings
from rexera.models.enums import UserType

from .conftest import CLIENT_ID, CLIENT_USER_ID, HIL_USER_ID


def bearer(token: str) -> HTTPAuthorizationCredentials:
    return HTTPAuthorizationCredentials(scheme="Bearer", credentials=token)


def make_request(authorization: str = "") -> Request:
    headers = [(b"authorization", authorization.encode())] if authorization else []
    return Request({"type": "http", "method": "POST", "path": "/", "headers": headers, "client": ("10.0.0.1", 5000)})


@pytest.fixture
def settings(monkeypatch):
    current = get_settings()
    monkeypatch.setattr(current, "skip_auth", False)
    monkeypatch.setattr(current, "environment", "test")
    return current


@pytest.fixture
def supabase():
    return AsyncMock(spec=SupabaseAuthClient)


class TestGetCurrentUser:
    """Test bearer token resolution."""

    async def test_skip_auth_returns_dev_user(self, settings, monkeypatch, supabase, user_repo):
        monkeypatch.setattr(settings, "skip_auth", True)

        user = await get_current_user(credentials=None, supabase=supabase, users=user_repo)

        assert user == DEV_USER
        supabase.get_user.assert_not_awaited()

    async def test_missing_header(self, settings, supabase, user_repo):
        with pytest.raises(APIError) as exc:
            await get_current_user(credentials=None, supabase=supabase, users=user_repo)
        assert exc.value.status_code == 401
        assert exc.value.headers == {"WWW-Authenticate": "Bearer"}

    async def test_dev_token_outside_production(self, settings, supabase, user_repo):
        user = await get_current_user(credentials=bearer(SKIP_AUTH_TOKEN), supabase=supabase, users=user_repo)
        assert user.id == "284219ff-3a1f-4e86-9ea4-3536f940451f"
        assert user.role == "HIL_ADMIN"

    async def test_dev_token_rejected_in_production(self, settings, monkeypatch, supabase, user_repo):
        monkeypatch.setattr(settings, "environment", "production")

        with pytest.raises(APIError) as exc:
            await get_current_user(credentials=bearer(SKIP_AUTH_TOKEN), supabase=supabase, users=user_repo)
        assert exc.value.status_code == 401

    async def test_invalid_token(self, settings, supabase, user_repo):
        supabase.get_user.return_value = None

        with pytest.raises(APIError) as exc:
            await get_current_user(credentials=bearer("expired"), supabase=supabase, users=user_repo)
        assert exc.value.status_code == 401
        assert exc.value.message == "Invalid or expired token"

    async def test_auth_service_down(self, settings, supabase, user_repo):
        supabase.get_user.side_effect = ClientError("API error 502", status_code=502)

        with pytest.raises(APIError) as exc:
            await get_current_user(credentials=bearer("jwt"), supabase=supabase, users=user_repo)
        assert exc.value.status_code == 503

    async def test_missing_profile(self, settings, supabase, user_repo):
        supabase.get_user.return_value = {"id": HIL_USER_ID, "email": "op@rexera.com"}
        user_repo.get_profile.return_value = None

        with pytest.raises(APIError) as exc:
            await get_current_user(credentials=bearer("jwt"), supabase=supabase, users=user_repo)
        assert exc.value.status_code == 403

    async def test_client_profile(self, settings, supabase, user_repo):
        supabase.get_user.return_value = {"id": CLIENT_USER_ID, "email": "buyer@acme-title.com"}
        user_repo.get_profile.return_value = {
            "id": CLIENT_USER_ID,
            "email": "old@acme-title.com",
            "user_type": "client_user",
            "role": "CLIENT_ADMIN",
            "company_id": CLIENT_ID,
        }

        user = await get_current_user(credentials=bearer("jwt"), supabase=supabase, users=user_repo)

        assert user.user_type == UserType.CLIENT_USER
        assert user.email == "buyer@acme-title.com"
        assert user.company_filter == CLIENT_ID
        supabase.get_user.assert_awaited_once_with("jwt")

    async def test_client_without_company(self, settings, supabase, user_repo):
        supabase.get_user.return_value = {"id": CLIENT_USER_ID, "email": "buyer@acme-title.com"}
        user_repo.get_profile.return_value = {
            "id": CLIENT_USER_ID,
            "user_type": "client_user",
            "role": "CLIENT_ADMIN",
            "company_id": None,
        }

        with pytest.raises(APIError) as exc:
            await get_current_user(credentials=bearer("jwt"), supabase=supabase, users=user_repo)
        assert exc.value.status_code == 403


class TestRequireHilUser:
    async def test_hil_user_passes(self, hil_user):
        assert await require_hil_user(hil_user) is hil_user

    async def test_client_user_rejected(self, client_user):
        with pytest.raises(APIError) as exc:
            await require_hil_user(client_user)
        assert exc.value.status_code == 403


class TestSharedSecrets:
    """Test the webhook and cron bearer secrets."""

    async def test_webhook_open_without_secret(self, settings, monkeypatch):
        monkeypatch.setattr(settings, "n8n_webhook_secret", SecretStr(""))
        assert await verify_webhook_secret(make_request()) is None

    async def test_webhook_wrong_secret(self, settings, monkeypatch):
        monkeypatch.setattr(settings, "n8n_webhook_secret", SecretStr("s" * 32))

        with pytest.raises(APIError) as exc:
            await verify_webhook_secret(make_request("Bearer nope"))
        assert exc.value.status_code == 401

    async def test_webhook_missing_header(self, settings, monkeypatch):
        monkeypatch.setattr(settings, "n8n_webhook_secret", SecretStr("s" * 32))

        with pytest.raises(APIError):
            await verify_webhook_secret(make_request())

    async def test_webhook_right_secret(self, settings, monkeypatch):
        monkeypatch.setattr(settings, "n8n_webhook_secret", SecretStr("s" * 32))
        assert await verify_webhook_secret(make_request("Bearer " + "s" * 32)) is None

    async def test_cron_secret(self, settings, monkeypatch):
        monkeypatch.setattr(settings, "cron_secret", SecretStr("cron-key"))

        assert await verify_cron_secret(make_request("bearer cron-key")) is None
        with pytest.raises(APIError):
            await verify_cron_secret(make_request("Basic cron-key"))


class TestRouteAuthentication:
    """Test authentication through the HTTP stack."""

    def test_missing_token_is_401(self, app, client, settings):
        del app.dependency_overrides[get_current_user]

        response = client.get("/api/workflows")

        assert response.status_code == 401
        assert response.headers["WWW-Authenticate"] == "Bearer"
        body = response.json()
        assert body["success"] is False
        assert body["error"]["code"] == "UNAUTHORIZED"

    def test_dev_token_over_http(self, app, client, settings, workflow_repo):
        del app.dependency_overrides[get_current_user]
        workflow_repo.list_page.return_value = ([], 0)

        response = client.get("/api/workflows", headers={"Authorization": f"Bearer {SKIP_AUTH_TOKEN}"})

        assert response.status_code == 200

    def test_cors_preflight_needs_no_token(self, app, client, settings):
        del app.dependency_overrides[get_current_user]

        response = client.options(
            "/api/workflows",
            headers={
                "Origin": "http://localhost:3000",
                "Access-Control-Request-Method": "POST",
                "Access-Control-Request-Headers": "Authorization, Content-Type",
            },
        )

        assert response.status_code == 200
        assert response.headers["access-control-allow-origin"] == "http://localhost:3000"

    def test_plain_options_is_not_an_auth_failure(self, app, client, settings):
        del app.dependency_overrides[get_current_user]

        response = client.options("/api/workflows")

        assert response.status_code == 405
        assert response.json()["error"]["code"] == "HTTP_405"
