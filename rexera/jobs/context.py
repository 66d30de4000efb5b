"""
Per-run state handed to JobBase.execute.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Optional
from uuid import uuid4


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class JobContext:
    job_name: str = ""
    run_id: str = field(default_factory=lambda: uuid4().hex[:12])

    # "cron" (scheduler), "http" (cron route), "manual" (runner API)
    trigger_type: str = "manual"
    trigger_data: dict[str, Any] = field(default_factory=dict)
    caller: Optional[str] = None

    started_at: datetime = field(default_factory=_utcnow)
    completed_at: Optional[datetime] = None

    # Counters surfaced in the job result
    state: dict[str, Any] = field(default_factory=dict)
    errors: list[dict[str, Any]] = field(default_factory=list)

    @property
    def elapsed_ms(self) -> int:
        end = self.completed_at or _utcnow()
        return int((end - self.started_at).total_seconds() * 1000)

    def set_state(self, key: str, value: Any) -> None:
        self.state[key] = value

    def get_state(self, key: str, default: Any = None) -> Any:
        return self.state.get(key, default)

    def increment(self, key: str, amount: int = 1) -> int:
        self.state[key] = self.state.get(key, 0) + amount
        return self.state[key]

    def add_error(self, error: str, details: Optional[dict[str, Any]] = None) -> None:
        """Record a failure that did not stop the run (one task, one notification...)."""
        self.errors.append({
            "error": error,
            "details": details or {},
            "timestamp": _utcnow().isoformat(),
        })

    def complete(self) -> None:
        self.completed_at = _utcnow()
