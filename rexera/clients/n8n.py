"""
Client n8n.

Déclenche les workflows d'automatisation n8n, consulte et annule leurs
exécutions via l'API publique n8n (/api/v1, header X-N8N-API-KEY).
"""

import json
from datetime import datetime, timezone
from typing import Any, Optional

import httpx
import structlog

from ..config import settings
from .base import BaseClient, ClientError, InvalidResponseError

logger = structlog.get_logger(__name__)


class N8nError(Exception):
    """Erreur d'intégration n8n (configuration ou connectivité)."""

    def __init__(self, message: str, code: str):
        super().__init__(message)
        self.code = code


class N8nApiError(N8nError):
    """Réponse d'erreur de l'API n8n."""

    def __init__(self, message: str, status_code: Optional[int], data: Any = None):
        super().__init__(message, "N8N_API_ERROR")
        self.status_code = status_code
        self.data = data


class N8nClient(BaseClient):
    """
    Client pour l'API n8n.

    Les ids des workflows n8n sont résolus à partir du type de workflow Rexera.
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        workflow_ids: Optional[dict[str, str]] = None,
        webhook_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        root_url = (base_url if base_url is not None else settings.n8n_base_url).rstrip("/")
        super().__init__(
            base_url=f"{root_url}/api/v1" if root_url else "",
            timeout=timeout or settings.n8n_timeout,
            transport=transport,
        )
        self.root_url = root_url
        self.api_key = (
            api_key if api_key is not None else settings.n8n_api_key.get_secret_value()
        )
        self.workflow_ids = (
            workflow_ids if workflow_ids is not None else settings.n8n_workflow_ids
        )
        self.webhook_url = (
            webhook_url if webhook_url is not None else settings.n8n_webhook_callback_url
        )

    @property
    def enabled(self) -> bool:
        return bool(self.root_url and self.api_key)

    def _get_headers(self) -> dict[str, str]:
        return {
            "X-N8N-API-KEY": self.api_key,
            "Content-Type": "application/json",
            "Accept": "application/json",
        }

    def _ensure_enabled(self) -> None:
        if not self.enabled:
            raise N8nError("n8n integration is not enabled", "N8N_DISABLED")

    async def _call(self, method: str, endpoint: str, payload: Optional[dict] = None) -> Any:
        """
        Appelle l'API n8n en convertissant les erreurs HTTP et réseau.

        Raises:
            N8nApiError: Si n8n répond avec un statut d'erreur
            N8nError: Si n8n est injoignable (N8N_CONNECTION_ERROR) ou répond
                autre chose que du JSON (N8N_INVALID_RESPONSE)
        """
        try:
            return await self._request(method, endpoint, json_data=payload)
        except InvalidResponseError as e:
            raise N8nError(
                f"n8n returned a non-JSON response ({e.status_code})", "N8N_INVALID_RESPONSE"
            ) from e
        except ClientError as e:
            data: Any = e.response_body
            try:
                data = json.loads(e.response_body or "")
            except ValueError:
                pass
            raise N8nApiError(
                f"n8n API error: {e.status_code}", status_code=e.status_code, data=data
            ) from e
        except httpx.TransportError as e:
            raise N8nError(f"Failed to connect to n8n: {e}", "N8N_CONNECTION_ERROR") from e

    # =========================================================================
    # Exécutions
    # =========================================================================

    async def trigger_workflow(
        self,
        workflow_id: str,
        workflow_type: str,
        client_id: str,
        metadata: Optional[dict[str, Any]] = None,
    ) -> dict[str, Any]:
        """
        Déclenche le workflow n8n associé à un workflow Rexera.

        Args:
            workflow_id: UUID du workflow Rexera
            workflow_type: Type de workflow (PAYOFF_REQUEST, ...)
            client_id: Client propriétaire
            metadata: Données métier transmises à n8n

        Returns:
            Exécution créée par n8n (contient au moins "id")
        """
        self._ensure_enabled()

        n8n_workflow_id = self.workflow_ids.get(workflow_type)
        if not n8n_workflow_id:
            raise N8nError(
                f"No n8n workflow configured for {workflow_type}", "N8N_NOT_CONFIGURED"
            )

        payload = {
            "rexeraWorkflowId": workflow_id,
            "workflowType": workflow_type,
            "clientId": client_id,
            "metadata": metadata or {},
            "webhookUrl": self.webhook_url,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

        execution = await self._call("POST", f"/workflows/{n8n_workflow_id}/execute", payload)

        logger.info(
            "n8n_workflow_triggered",
            workflow_id=workflow_id,
            workflow_type=workflow_type,
            n8n_workflow_id=n8n_workflow_id,
            execution_id=execution.get("id"),
        )
        return execution

    async def get_execution(self, execution_id: str) -> dict[str, Any]:
        """Retourne le statut normalisé d'une exécution n8n."""
        self._ensure_enabled()

        execution = await self._call("GET", f"/executions/{execution_id}")
        result_data = (execution.get("data") or {}).get("resultData") or {}

        return {
            "id": execution.get("id"),
            "status": execution.get("status"),
            "finished": execution.get("finished", False),
            "startedAt": execution.get("startedAt"),
            "stoppedAt": execution.get("stoppedAt"),
            "error": result_data.get("error"),
        }

    async def cancel_execution(self, execution_id: str) -> bool:
        """Arrête une exécution n8n en cours."""
        self._ensure_enabled()
        await self._call("POST", f"/executions/{execution_id}/stop")
        logger.info("n8n_execution_canceled", execution_id=execution_id)
        return True

    async def get_workflow(self, n8n_workflow_id: str) -> dict[str, Any]:
        """Retourne la définition d'un workflow n8n."""
        self._ensure_enabled()
        return await self._call("GET", f"/workflows/{n8n_workflow_id}")

    # =========================================================================
    # Diagnostic
    # =========================================================================

    async def test_connection(self) -> bool:
        """Vérifie la connectivité n8n. Ne lève jamais d'exception."""
        if not self.enabled:
            return False
        try:
            await self._call("GET", "/workflows?limit=1")
            return True
        except N8nError as e:
            logger.warning("n8n_connection_test_failed", error=str(e), code=e.code)
            return False

    def config_status(self) -> dict[str, Any]:
        """Etat de la configuration n8n, sans secrets."""
        return {
            "enabled": self.enabled,
            "baseUrl": self.root_url or None,
            "hasApiKey": bool(self.api_key),
            "hasWebhookUrl": bool(self.webhook_url),
            "workflowIds": {k: v or None for k, v in self.workflow_ids.items()},
        }


# Instance singleton
n8n_client = N8nClient()
