"""
Routes /api/clients
"""

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from ...models.users import AuthUser
from ...repositories.clients import ClientRepository
from ..auth import get_current_user
from ..dependencies import get_client_repository
from ..errors import not_found
from ..responses import success

router = APIRouter(prefix="/api/clients", tags=["clients"])


@router.get("")
async def list_clients(
    user: AuthUser = Depends(get_current_user),
    clients: ClientRepository = Depends(get_client_repository),
) -> JSONResponse:
    return success(await clients.list_all(client_id=user.company_filter))


@router.get("/{client_id}")
async def get_client(
    client_id: str,
    user: AuthUser = Depends(get_current_user),
    clients: ClientRepository = Depends(get_client_repository),
) -> JSONResponse:
    if not user.can_access_client(client_id):
        raise not_found("Client")
    client = await clients.get(client_id)
    if client is None:
        raise not_found("Client")
    return success(client)
