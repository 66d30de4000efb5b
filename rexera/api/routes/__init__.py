"""
Routeurs de l'API Rexera.
"""

from . import (
    agents,
    audit_events,
    clients,
    communications,
    counterparties,
    cron,
    documents,
    health,
    hil_notes,
    interrupts,
    notifications,
    task_executions,
    users,
    webhooks,
    workflows,
)

ROUTERS = [
    health.router,
    workflows.router,
    task_executions.router,
    interrupts.router,
    counterparties.router,
    communications.router,
    documents.router,
    hil_notes.router,
    notifications.router,
    audit_events.router,
    agents.router,
    clients.router,
    users.router,
    webhooks.router,
    cron.router,
]

__all__ = ["ROUTERS"]
