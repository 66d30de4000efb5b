"""
Socle commun des clients HTTP sortants (n8n, Supabase Auth).

Chaque client fournit ses headers; la base gère le client httpx partagé,
les retries réseau et la conversion des statuts d'erreur.
"""

from abc import ABC, abstractmethod
from typing import Any, Optional

import httpx
import structlog

from ..utils.retry import with_retry

logger = structlog.get_logger(__name__)


class ClientError(Exception):
    """Réponse d'erreur d'un service distant."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        response_body: Optional[str] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body


class AuthenticationError(ClientError):
    """Identifiants ou token refusés (401/403)."""


class NotFoundError(ClientError):
    """Ressource distante absente (404)."""


class RateLimitError(ClientError):
    """Quota du service distant atteint (429)."""


class InvalidResponseError(ClientError):
    """Réponse 2xx dont le corps n'est pas du JSON (page de login, proxy...)."""


STATUS_ERRORS: dict[int, type[ClientError]] = {
    401: AuthenticationError,
    403: AuthenticationError,
    404: NotFoundError,
    429: RateLimitError,
}


class BaseClient(ABC):
    """Client JSON sur httpx, ouvert à la première requête."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        # MockTransport dans les tests
        self._transport = transport
        self._http: Optional[httpx.AsyncClient] = None

    @abstractmethod
    def _get_headers(self) -> dict[str, str]:
        """Headers d'authentification propres au service."""

    def _session(self) -> httpx.AsyncClient:
        if self._http is None or self._http.is_closed:
            self._http = httpx.AsyncClient(
                base_url=self.base_url,
                timeout=httpx.Timeout(self.timeout),
                transport=self._transport,
            )
        return self._http

    async def close(self) -> None:
        if self._http is not None and not self._http.is_closed:
            await self._http.aclose()
        self._http = None

    @staticmethod
    def _raise_for_status(response: httpx.Response) -> None:
        if response.is_success:
            return

        status = response.status_code
        body = response.text[:500]
        error_cls = STATUS_ERRORS.get(status, ClientError)
        raise error_cls(
            f"{response.request.method} {response.request.url.path} -> {status}",
            status_code=status,
            response_body=body,
        )

    @with_retry(max_attempts=3)
    async def _request(
        self,
        method: str,
        endpoint: str,
        json_data: Optional[dict[str, Any]] = None,
        headers: Optional[dict[str, str]] = None,
    ) -> Any:
        """
        Envoie une requête et décode la réponse JSON.

        Seules les erreurs de transport sont rejouées; un statut d'erreur
        lève immédiatement la sous-classe de ClientError qui lui correspond.
        Un corps vide est rendu sous la forme {}, un corps non JSON lève
        InvalidResponseError.
        """
        logger.debug("http_request", method=method, base_url=self.base_url, endpoint=endpoint)

        response = await self._session().request(
            method,
            endpoint,
            json=json_data,
            headers=headers if headers is not None else self._get_headers(),
        )
        self._raise_for_status(response)

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            raise InvalidResponseError(
                f"{method} {endpoint} -> non-JSON body",
                status_code=response.status_code,
                response_body=response.text[:500],
            ) from e
