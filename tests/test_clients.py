"""
Tests for the outbound HTTP clients, with httpx.MockTransport in place of
the network.
"""

import json

import httpx
import pytest

from rexera.clients.base import (
    BaseClient,
    ClientError,
    InvalidResponseError,
    NotFoundError,
    RateLimitError,
)
from rexera.clients.n8n import N8nApiError, N8nClient, N8nError
from rexera.clients.supabase_auth import SupabaseAuthClient

N8N_URL = "http://n8n.test"
WORKFLOW_IDS = {"PAYOFF_REQUEST": "wf-payoff", "HOA_ACQUISITION": "", "MUNI_LIEN_SEARCH": ""}


class Recorder:
    """MockTransport handler returning canned responses and keeping the requests."""

    def __init__(self, status_code: int = 200, payload=None):
        self.status_code = status_code
        self.payload = payload if payload is not None else {}
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code, json=self.payload)


def html_page(request: httpx.Request) -> httpx.Response:
    return httpx.Response(200, text="<html><body>Sign in</body></html>")


def n8n_client(handler, **overrides) -> N8nClient:
    options = {
        "base_url": N8N_URL,
        "api_key": "n8n-key",
        "workflow_ids": WORKFLOW_IDS,
        "webhook_url": "https://api.rexera.test/api/webhooks/n8n",
        "transport": httpx.MockTransport(handler),
    }
    options.update(overrides)
    return N8nClient(**options)


class TestN8nClient:
    """Test N8nClient."""

    async def test_disabled_without_credentials(self):
        client = n8n_client(Recorder(), api_key="")

        assert client.enabled is False
        with pytest.raises(N8nError) as exc:
            await client.get_execution("1")
        assert exc.value.code == "N8N_DISABLED"
        assert await client.test_connection() is False

    async def test_workflow_type_not_configured(self):
        recorder = Recorder()
        client = n8n_client(recorder)

        with pytest.raises(N8nError) as exc:
            await client.trigger_workflow("wf-1", "HOA_ACQUISITION", "client-1")
        assert exc.value.code == "N8N_NOT_CONFIGURED"
        assert recorder.requests == []

    async def test_trigger(self):
        recorder = Recorder(payload={"id": "exec-9", "status": "running"})
        client = n8n_client(recorder)

        execution = await client.trigger_workflow(
            "wf-1", "PAYOFF_REQUEST", "client-1", metadata={"loan_number": "L-1"}
        )

        assert execution["id"] == "exec-9"
        request = recorder.requests[0]
        assert request.method == "POST"
        assert str(request.url) == f"{N8N_URL}/api/v1/workflows/wf-payoff/execute"
        assert request.headers["X-N8N-API-KEY"] == "n8n-key"
        body = json.loads(request.content)
        assert body["rexeraWorkflowId"] == "wf-1"
        assert body["workflowType"] == "PAYOFF_REQUEST"
        assert body["metadata"] == {"loan_number": "L-1"}
        assert body["webhookUrl"] == "https://api.rexera.test/api/webhooks/n8n"
        await client.close()

    async def test_get_execution_is_normalised(self):
        recorder = Recorder(
            payload={
                "id": "exec-9",
                "status": "error",
                "finished": True,
                "startedAt": "2025-07-01T09:00:00Z",
                "stoppedAt": "2025-07-01T09:01:00Z",
                "data": {"resultData": {"error": {"message": "node failed"}}},
                "workflowData": {"nodes": []},
            }
        )
        client = n8n_client(recorder)

        execution = await client.get_execution("exec-9")

        assert execution == {
            "id": "exec-9",
            "status": "error",
            "finished": True,
            "startedAt": "2025-07-01T09:00:00Z",
            "stoppedAt": "2025-07-01T09:01:00Z",
            "error": {"message": "node failed"},
        }
        assert recorder.requests[0].url.path == "/api/v1/executions/exec-9"

    async def test_api_error(self):
        client = n8n_client(Recorder(status_code=500, payload={"message": "boom"}))

        with pytest.raises(N8nApiError) as exc:
            await client.cancel_execution("exec-9")
        assert exc.value.status_code == 500
        assert exc.value.data == {"message": "boom"}
        assert exc.value.code == "N8N_API_ERROR"

    async def test_cancel(self):
        recorder = Recorder()
        client = n8n_client(recorder)

        assert await client.cancel_execution("exec-9") is True
        assert recorder.requests[0].url.path == "/api/v1/executions/exec-9/stop"

    async def test_connection(self):
        assert await n8n_client(Recorder(payload={"data": []})).test_connection() is True
        assert await n8n_client(Recorder(status_code=401)).test_connection() is False

    async def test_html_reply_is_an_n8n_error(self):
        client = n8n_client(html_page)

        with pytest.raises(N8nError) as exc:
            await client.trigger_workflow("wf-1", "PAYOFF_REQUEST", "client-1")
        assert exc.value.code == "N8N_INVALID_RESPONSE"
        assert not isinstance(exc.value, N8nApiError)

    async def test_html_reply_fails_connection_test(self):
        assert await n8n_client(html_page).test_connection() is False

    def test_config_status_hides_secrets(self):
        status = n8n_client(Recorder()).config_status()

        assert status == {
            "enabled": True,
            "baseUrl": N8N_URL,
            "hasApiKey": True,
            "hasWebhookUrl": True,
            "workflowIds": {"PAYOFF_REQUEST": "wf-payoff", "HOA_ACQUISITION": None, "MUNI_LIEN_SEARCH": None},
        }
        assert "n8n-key" not in json.dumps(status)


class TestSupabaseAuthClient:
    """Test SupabaseAuthClient."""

    def make(self, handler, **overrides) -> SupabaseAuthClient:
        options = {
            "base_url": "http://supabase.test",
            "api_key": "service-key",
            "transport": httpx.MockTransport(handler),
        }
        options.update(overrides)
        return SupabaseAuthClient(**options)

    async def test_valid_token(self):
        recorder = Recorder(payload={"id": "user-1", "email": "op@rexera.com"})
        client = self.make(recorder)

        user = await client.get_user("jwt")

        assert user["email"] == "op@rexera.com"
        request = recorder.requests[0]
        assert request.url.path == "/auth/v1/user"
        assert request.headers["Authorization"] == "Bearer jwt"
        assert request.headers["apikey"] == "service-key"

    async def test_rejected_token(self):
        client = self.make(Recorder(status_code=401, payload={"msg": "invalid JWT"}))
        assert await client.get_user("expired") is None

    async def test_not_configured(self):
        recorder = Recorder()
        client = self.make(recorder, base_url="")

        assert await client.get_user("jwt") is None
        assert recorder.requests == []


class PlainClient(BaseClient):
    def _get_headers(self) -> dict[str, str]:
        return {"Accept": "application/json"}


class TestBaseClient:
    """Test the status and body handling shared by every client."""

    def make(self, handler) -> PlainClient:
        return PlainClient("http://remote.test/api", transport=httpx.MockTransport(handler))

    @pytest.mark.parametrize(
        "status_code, error_cls",
        [(404, NotFoundError), (429, RateLimitError), (500, ClientError)],
    )
    async def test_error_statuses(self, status_code, error_cls):
        client = self.make(Recorder(status_code=status_code, payload={"message": "nope"}))

        with pytest.raises(error_cls) as exc:
            await client._request("GET", "/items/1")
        assert exc.value.status_code == status_code
        assert json.loads(exc.value.response_body) == {"message": "nope"}

    async def test_empty_body(self):
        client = self.make(lambda request: httpx.Response(204))

        assert await client._request("POST", "/items/1/stop") == {}

    async def test_non_json_body(self):
        client = self.make(html_page)

        with pytest.raises(InvalidResponseError) as exc:
            await client._request("GET", "/items")
        assert exc.value.status_code == 200
        assert "Sign in" in exc.value.response_body

    async def test_endpoint_is_relative_to_base_url(self):
        recorder = Recorder(payload={"ok": True})
        client = self.make(recorder)

        await client._request("GET", "/items?limit=1")

        assert recorder.requests[0].url.path == "/api/items"
        assert recorder.requests[0].url.params["limit"] == "1"
        await client.close()
