"""
Routes /api/counterparties
"""

from typing import Literal, Optional

import structlog
from fastapi import APIRouter, Depends, Query
from fastapi.responses import JSONResponse

from ...models.counterparties import CreateCounterparty, UpdateCounterparty
from ...models.enums import (
    COUNTERPARTY_TYPE_LABELS,
    AuditAction,
    CounterpartyType,
    is_counterparty_allowed_for_workflow,
)
from ...models.users import AuthUser
from ...repositories.counterparties import CounterpartyRepository
from ...services.audit import AuditLogger
from ..auth import get_current_user
from ..dependencies import get_audit_logger, get_counterparty_repository
from ..errors import bad_request, conflict, not_found
from ..responses import paginated, success
from .common import Pagination, parse_include

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/counterparties", tags=["counterparties"])


@router.get("")
async def list_counterparties(
    pagination: Pagination = Depends(),
    type: Optional[CounterpartyType] = None,
    search: Optional[str] = Query(None, max_length=200),
    sort: Literal["name", "type", "created_at"] = "name",
    order: Literal["asc", "desc"] = "asc",
    include: Optional[str] = Query(None, description="workflows"),
    user: AuthUser = Depends(get_current_user),
    counterparties: CounterpartyRepository = Depends(get_counterparty_repository),
) -> JSONResponse:
    rows, total = await counterparties.list_page(
        page=pagination.page,
        limit=pagination.limit,
        type=type,
        search=search,
        sort=sort,
        order=order,
    )
    if "workflows" in parse_include(include) and rows:
        linked = await counterparties.linked_workflows([r["id"] for r in rows])
        for row in rows:
            row["workflows"] = linked.get(row["id"], [])
    return paginated(rows, pagination.page, pagination.limit, total)


@router.get("/search")
async def search_counterparties(
    q: str = Query(..., min_length=1, max_length=200),
    type: Optional[CounterpartyType] = None,
    limit: int = Query(10, ge=1, le=50),
    user: AuthUser = Depends(get_current_user),
    counterparties: CounterpartyRepository = Depends(get_counterparty_repository),
) -> JSONResponse:
    return success(await counterparties.search(q, limit, type=type))


@router.get("/types")
async def list_counterparty_types(user: AuthUser = Depends(get_current_user)) -> JSONResponse:
    return success(
        [{"value": t.value, "label": label} for t, label in COUNTERPARTY_TYPE_LABELS.items()]
    )


@router.get("/{counterparty_id}")
async def get_counterparty(
    counterparty_id: str,
    user: AuthUser = Depends(get_current_user),
    counterparties: CounterpartyRepository = Depends(get_counterparty_repository),
) -> JSONResponse:
    counterparty = await counterparties.get(counterparty_id)
    if counterparty is None:
        raise not_found("Counterparty", counterparty_id)
    linked = await counterparties.linked_workflows([counterparty["id"]])
    counterparty["workflows"] = linked.get(counterparty["id"], [])
    return success(counterparty)


@router.post("", status_code=201)
async def create_counterparty(
    body: CreateCounterparty,
    user: AuthUser = Depends(get_current_user),
    counterparties: CounterpartyRepository = Depends(get_counterparty_repository),
    audit: AuditLogger = Depends(get_audit_logger),
) -> JSONResponse:
    counterparty = await counterparties.create(body.model_dump())
    logger.info(
        "counterparty_created",
        counterparty_id=str(counterparty["id"]),
        type=counterparty["type"],
    )
    await audit.counterparty_event(
        user, AuditAction.CREATE, counterparty["id"], {"name": counterparty["name"]}
    )
    return success(counterparty, status_code=201)


@router.patch("/{counterparty_id}")
async def update_counterparty(
    counterparty_id: str,
    body: UpdateCounterparty,
    user: AuthUser = Depends(get_current_user),
    counterparties: CounterpartyRepository = Depends(get_counterparty_repository),
    audit: AuditLogger = Depends(get_audit_logger),
) -> JSONResponse:
    changes = body.model_dump(exclude_unset=True)
    if not changes:
        raise bad_request("No fields to update")

    current = await counterparties.get(counterparty_id)
    if current is None:
        raise not_found("Counterparty", counterparty_id)

    new_type = changes.get("type")
    if new_type is not None and new_type.value != current["type"]:
        incompatible = [
            wt for wt in await counterparties.linked_workflow_types(counterparty_id)
            if not is_counterparty_allowed_for_workflow(wt, new_type.value)
        ]
        if incompatible:
            raise conflict(
                "Counterparty type cannot change while linked to incompatible workflows",
                {"workflow_types": sorted(incompatible)},
            )

    updated = await counterparties.update(counterparty_id, changes)
    if updated is None:
        raise not_found("Counterparty", counterparty_id)

    await audit.counterparty_event(
        user, AuditAction.UPDATE, updated["id"], {"changes": sorted(changes)}
    )
    return success(updated)


@router.delete("/{counterparty_id}")
async def delete_counterparty(
    counterparty_id: str,
    user: AuthUser = Depends(get_current_user),
    counterparties: CounterpartyRepository = Depends(get_counterparty_repository),
    audit: AuditLogger = Depends(get_audit_logger),
) -> JSONResponse:
    current = await counterparties.get(counterparty_id)
    if current is None:
        raise not_found("Counterparty", counterparty_id)

    links = await counterparties.count_links(counterparty_id)
    if links:
        raise conflict(
            "Counterparty is linked to workflows and cannot be deleted",
            {"linked_workflows": links},
        )

    if not await counterparties.delete(counterparty_id):
        raise not_found("Counterparty", counterparty_id)

    logger.info("counterparty_deleted", counterparty_id=counterparty_id)
    await audit.counterparty_event(
        user, AuditAction.DELETE, current["id"], {"name": current["name"]}
    )
    return success({"id": counterparty_id, "deleted": True})
