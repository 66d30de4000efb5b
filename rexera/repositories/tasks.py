"""
Repository des exécutions de tâches (task_executions).

Couvre aussi la file d'interruptions HIL (status = INTERRUPT) et les
requêtes du moniteur SLA.
"""

from datetime import datetime
from typing import Any, Optional

import asyncpg

from .base import Repository, build_insert, build_update
from .query import SelectQuery

TASK_SOURCE = (
    "task_executions t "
    "JOIN workflows w ON w.id = t.workflow_id "
    "LEFT JOIN agents a ON a.id = t.agent_id"
)

TASK_COLUMNS = (
    "t.*, "
    "json_build_object('id', w.id, 'title', w.title, 'client_id', w.client_id) AS workflow, "
    "CASE WHEN a.id IS NULL THEN NULL "
    "ELSE json_build_object('id', a.id, 'name', a.name, 'type', a.type) END AS agent"
)

INTERRUPT_COLUMNS = (
    "t.*, w.title AS workflow_title, w.workflow_type, w.human_readable_id, w.client_id"
)

PRIORITY_ORDER_SQL = (
    "CASE t.priority WHEN 'URGENT' THEN 0 WHEN 'HIGH' THEN 1 "
    "WHEN 'NORMAL' THEN 2 ELSE 3 END"
)


class TaskRepository(Repository):
    """Accès à task_executions."""

    async def list_page(
        self,
        *,
        page: int,
        limit: int,
        workflow_id: Optional[str] = None,
        agent_id: Optional[str] = None,
        status: Optional[str] = None,
        executor_type: Optional[str] = None,
        sla_status: Optional[str] = None,
        company_id: Optional[str] = None,
    ) -> tuple[list[dict[str, Any]], int]:
        query = SelectQuery(TASK_SOURCE, columns=TASK_COLUMNS)
        query.where_eq("t.workflow_id", workflow_id)
        query.where_eq("t.agent_id", agent_id)
        query.where_eq("t.status", status)
        query.where_eq("t.executor_type", executor_type)
        query.where_eq("t.sla_status", sla_status)
        query.where_eq("w.client_id", company_id)
        query.order_raw("t.created_at DESC").order_raw("t.id ASC")
        query.paginate(page, limit)

        sql, params = query.build()
        count_sql, count_params = query.build_count()
        rows = await self.db.fetch(sql, *params)
        total = await self.db.fetchval(count_sql, *count_params)
        return rows, int(total or 0)

    async def get(self, task_id: str) -> Optional[dict[str, Any]]:
        try:
            return await self.db.fetchrow(
                f"SELECT {TASK_COLUMNS} FROM {TASK_SOURCE} WHERE t.id = $1", task_id
            )
        except asyncpg.DataError:
            return None

    async def get_by_workflow_and_type(
        self, workflow_id: str, task_type: str
    ) -> Optional[dict[str, Any]]:
        return await self.db.fetchrow(
            f"SELECT {TASK_COLUMNS} FROM {TASK_SOURCE} "
            "WHERE t.workflow_id = $1 AND t.task_type = $2 "
            "ORDER BY t.sequence_order ASC LIMIT 1",
            workflow_id,
            task_type,
        )

    async def create_many(self, tasks: list[dict[str, Any]]) -> list[dict[str, Any]]:
        """Insère toutes les tâches dans une seule transaction."""
        created: list[dict[str, Any]] = []
        async with self.db.transaction() as conn:
            for values in tasks:
                sql, params = build_insert("task_executions", values)
                created.append(await self.db.fetchrow(sql, *params, conn=conn))
        return created

    async def update(
        self,
        task_id: str,
        fields: dict[str, Any],
        output_patch: Optional[dict[str, Any]] = None,
        input_patch: Optional[dict[str, Any]] = None,
    ) -> Optional[dict[str, Any]]:
        """
        Met à jour une tâche (task_executions n'a pas de colonne updated_at).

        output_patch / input_patch sont fusionnés dans output_data / input_data.
        """
        json_merge = {}
        if output_patch:
            json_merge["output_data"] = output_patch
        if input_patch:
            json_merge["input_data"] = input_patch
        sql, params = build_update(
            "task_executions",
            fields,
            {"id": task_id},
            json_merge=json_merge or None,
            touch_updated_at=False,
        )
        return await self.db.fetchrow(sql, *params)

    # =========================================================================
    # Interruptions HIL
    # =========================================================================

    async def list_interrupts(
        self,
        *,
        page: int,
        limit: int,
        workflow_id: Optional[str] = None,
        priority: Optional[str] = None,
        interrupt_type: Optional[str] = None,
        company_id: Optional[str] = None,
    ) -> tuple[list[dict[str, Any]], int]:
        query = SelectQuery(
            "task_executions t JOIN workflows w ON w.id = t.workflow_id",
            columns=INTERRUPT_COLUMNS,
        )
        query.where("t.status = {}", "INTERRUPT")
        query.where_eq("t.workflow_id", workflow_id)
        query.where_eq("t.priority", priority)
        query.where_eq("t.interrupt_type", interrupt_type)
        query.where_eq("w.client_id", company_id)
        query.order_raw(f"{PRIORITY_ORDER_SQL} ASC").order_raw("t.created_at ASC")
        query.paginate(page, limit)

        sql, params = query.build()
        count_sql, count_params = query.build_count()
        rows = await self.db.fetch(sql, *params)
        total = await self.db.fetchval(count_sql, *count_params)
        return rows, int(total or 0)

    async def interrupt_stats(self) -> dict[str, Any]:
        by_type = await self.db.fetch(
            "SELECT interrupt_type, COUNT(*)::int AS count FROM task_executions "
            "WHERE status = 'INTERRUPT' GROUP BY interrupt_type"
        )
        by_priority = await self.db.fetch(
            "SELECT priority, COUNT(*)::int AS count FROM task_executions "
            "WHERE status = 'INTERRUPT' GROUP BY priority"
        )
        return {
            "total": sum(r["count"] for r in by_type),
            "by_type": {(r["interrupt_type"] or "UNSPECIFIED"): r["count"] for r in by_type},
            "by_priority": {r["priority"]: r["count"] for r in by_priority},
        }

    async def count_interrupts(self, workflow_id: str) -> int:
        value = await self.db.fetchval(
            "SELECT COUNT(*) FROM task_executions WHERE workflow_id = $1 AND status = 'INTERRUPT'",
            workflow_id,
        )
        return int(value or 0)

    # =========================================================================
    # SLA
    # =========================================================================

    async def find_sla_breaches(self, now: datetime) -> list[dict[str, Any]]:
        """Tâches échues, non terminées et pas encore marquées BREACHED."""
        return await self.db.fetch(
            """
            SELECT id, workflow_id, title, task_type, sla_hours, sla_due_at, started_at
            FROM task_executions
            WHERE sla_due_at < $1
              AND status <> 'COMPLETED'
              AND COALESCE(sla_status, 'ON_TIME') <> 'BREACHED'
            ORDER BY sla_due_at ASC
            """,
            now,
        )

    async def find_sla_candidates_on_time(self, now: datetime) -> list[dict[str, Any]]:
        """Tâches démarrées, ON_TIME, non échues: candidates au passage AT_RISK."""
        return await self.db.fetch(
            """
            SELECT id, workflow_id, title, task_type, sla_hours, sla_due_at, started_at
            FROM task_executions
            WHERE started_at IS NOT NULL
              AND sla_due_at IS NOT NULL
              AND sla_due_at >= $1
              AND status NOT IN ('COMPLETED', 'FAILED')
              AND COALESCE(sla_status, 'ON_TIME') = 'ON_TIME'
            """,
            now,
        )

    async def set_sla_status(self, task_id: str, sla_status: str) -> None:
        await self.db.execute(
            "UPDATE task_executions SET sla_status = $1 WHERE id = $2", sla_status, task_id
        )

    async def list_for_agent(self, agent_id: str, limit: int = 10) -> list[dict[str, Any]]:
        return await self.db.fetch(
            "SELECT id, workflow_id, title, task_type, status, started_at, completed_at, created_at "
            "FROM task_executions WHERE agent_id = $1 ORDER BY created_at DESC LIMIT $2",
            agent_id,
            limit,
        )


# Instance singleton
task_repository = TaskRepository()
