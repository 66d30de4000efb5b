"""
Routes /api/users

Annuaire des profils pour les sélecteurs de mentions et d'assignation.
"""

from typing import Any, Optional

from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from ...models.enums import UserType
from ...models.users import AuthUser
from ...repositories.users import UserRepository
from ..auth import get_current_user
from ..dependencies import get_user_repository
from ..errors import not_found
from ..responses import success

router = APIRouter(prefix="/api/users", tags=["users"])


def _directory_entry(profile: dict[str, Any]) -> dict[str, Any]:
    return {
        "id": profile["id"],
        "name": profile.get("full_name") or profile["email"],
        "email": profile["email"],
        "user_type": profile["user_type"],
        "role": profile["role"],
    }


@router.get("")
async def list_users(
    q: Optional[str] = Query(None, max_length=200),
    user_type: Optional[UserType] = None,
    limit: int = Query(20, ge=1, le=100),
    user: AuthUser = Depends(get_current_user),
    users: UserRepository = Depends(get_user_repository),
) -> JSONResponse:
    profiles = await users.search(
        q=q, user_type=user_type, company_id=user.company_filter, limit=limit
    )
    return success([_directory_entry(p) for p in profiles])


@router.get("/{user_id}")
async def get_user(
    user_id: str,
    user: AuthUser = Depends(get_current_user),
    users: UserRepository = Depends(get_user_repository),
) -> JSONResponse:
    profile = await users.get_profile(user_id)
    if profile is None:
        raise not_found("User")
    # Un client ne voit que les profils de sa société
    if user.company_filter is not None and str(profile.get("company_id")) != user.company_filter:
        raise not_found("User")
    return success({**_directory_entry(profile), "company_id": profile.get("company_id")})
