"""
Domain enumerations

Values mirror the Postgres enum types of the Supabase schema.
"""

from enum import Enum


class WorkflowType(str, Enum):
    MUNI_LIEN_SEARCH = "MUNI_LIEN_SEARCH"
    HOA_ACQUISITION = "HOA_ACQUISITION"
    PAYOFF_REQUEST = "PAYOFF_REQUEST"


class WorkflowStatus(str, Enum):
    NOT_STARTED = "NOT_STARTED"
    IN_PROGRESS = "IN_PROGRESS"
    BLOCKED = "BLOCKED"
    WAITING_FOR_CLIENT = "WAITING_FOR_CLIENT"
    COMPLETED = "COMPLETED"


class TaskStatus(str, Enum):
    NOT_STARTED = "NOT_STARTED"
    IN_PROGRESS = "IN_PROGRESS"
    INTERRUPT = "INTERRUPT"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


class ExecutorType(str, Enum):
    AI = "AI"
    HIL = "HIL"


class SlaStatus(str, Enum):
    ON_TIME = "ON_TIME"
    AT_RISK = "AT_RISK"
    BREACHED = "BREACHED"


class InterruptType(str, Enum):
    MISSING_DOCUMENT = "MISSING_DOCUMENT"
    PAYMENT_REQUIRED = "PAYMENT_REQUIRED"
    CLIENT_CLARIFICATION = "CLIENT_CLARIFICATION"
    MANUAL_VERIFICATION = "MANUAL_VERIFICATION"


class PriorityLevel(str, Enum):
    """Priority levels, in increasing urgency"""
    LOW = "LOW"
    NORMAL = "NORMAL"
    HIGH = "HIGH"
    URGENT = "URGENT"


class CounterpartyType(str, Enum):
    HOA = "hoa"
    LENDER = "lender"
    MUNICIPALITY = "municipality"
    UTILITY = "utility"
    TAX_AUTHORITY = "tax_authority"


class WorkflowCounterpartyStatus(str, Enum):
    PENDING = "PENDING"
    CONTACTED = "CONTACTED"
    RESPONDED = "RESPONDED"
    COMPLETED = "COMPLETED"


class NotificationType(str, Enum):
    WORKFLOW_UPDATE = "WORKFLOW_UPDATE"
    TASK_INTERRUPT = "TASK_INTERRUPT"
    HIL_MENTION = "HIL_MENTION"
    CLIENT_MESSAGE_RECEIVED = "CLIENT_MESSAGE_RECEIVED"
    COUNTERPARTY_MESSAGE_RECEIVED = "COUNTERPARTY_MESSAGE_RECEIVED"
    SLA_WARNING = "SLA_WARNING"
    AGENT_FAILURE = "AGENT_FAILURE"


class UserType(str, Enum):
    CLIENT_USER = "client_user"
    HIL_USER = "hil_user"


class ActorType(str, Enum):
    HUMAN = "human"
    AGENT = "agent"
    SYSTEM = "system"


class AuditAction(str, Enum):
    CREATE = "create"
    READ = "read"
    UPDATE = "update"
    DELETE = "delete"
    EXECUTE = "execute"
    APPROVE = "approve"
    REJECT = "reject"
    LOGIN = "login"
    LOGOUT = "logout"


class N8nStatus(str, Enum):
    NOT_STARTED = "not_started"
    RUNNING = "running"
    SUCCESS = "success"
    ERROR = "error"
    CANCELED = "canceled"
    CRASHED = "crashed"
    WAITING = "waiting"


class CommunicationType(str, Enum):
    EMAIL = "email"
    PHONE = "phone"
    SMS = "sms"
    CLIENT_CHAT = "client_chat"


class CommunicationDirection(str, Enum):
    INBOUND = "INBOUND"
    OUTBOUND = "OUTBOUND"


class CommunicationStatus(str, Enum):
    SENT = "SENT"
    DELIVERED = "DELIVERED"
    READ = "READ"
    BOUNCED = "BOUNCED"
    FAILED = "FAILED"


class DocumentType(str, Enum):
    WORKING = "WORKING"
    DELIVERABLE = "DELIVERABLE"


class DocumentStatus(str, Enum):
    PENDING = "PENDING"
    PROCESSING = "PROCESSING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


COUNTERPARTY_TYPE_LABELS: dict[CounterpartyType, str] = {
    CounterpartyType.HOA: "HOA",
    CounterpartyType.LENDER: "Lender",
    CounterpartyType.MUNICIPALITY: "Municipality",
    CounterpartyType.UTILITY: "Utility",
    CounterpartyType.TAX_AUTHORITY: "Tax Authority",
}

COUNTERPARTY_TYPES_BY_WORKFLOW: dict[WorkflowType, frozenset[CounterpartyType]] = {
    WorkflowType.PAYOFF_REQUEST: frozenset({CounterpartyType.LENDER}),
    WorkflowType.HOA_ACQUISITION: frozenset({CounterpartyType.HOA}),
    WorkflowType.MUNI_LIEN_SEARCH: frozenset({
        CounterpartyType.MUNICIPALITY,
        CounterpartyType.UTILITY,
        CounterpartyType.TAX_AUTHORITY,
    }),
}

# Sort rank for the HIL interrupt queue (URGENT first)
PRIORITY_RANK: dict[PriorityLevel, int] = {
    PriorityLevel.URGENT: 0,
    PriorityLevel.HIGH: 1,
    PriorityLevel.NORMAL: 2,
    PriorityLevel.LOW: 3,
}


def is_counterparty_allowed_for_workflow(workflow_type: str, counterparty_type: str) -> bool:
    """Return True if a counterparty of this type may be linked to the workflow type."""
    try:
        allowed = COUNTERPARTY_TYPES_BY_WORKFLOW[WorkflowType(workflow_type)]
        return CounterpartyType(counterparty_type) in allowed
    except ValueError:
        return False
