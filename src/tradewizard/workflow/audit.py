"""Workflow execution logging and audit-trail retrieval from the checkpointer."""
import logging
from datetime import datetime, timezone
from typing import Any

from langgraph.checkpoint.base import BaseCheckpointSaver
from pydantic import BaseModel, Field

from tradewizard.schemas import AuditEntry

logger = logging.getLogger(__name__)


class ExecutionLogEntry(BaseModel):
    stage: str
    level: str
    message: str
    data: dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


class GraphExecutionLogger:
    """Collects structured log entries for one workflow run and mirrors them to logging."""

    def __init__(self, name: str = "tradewizard.workflow") -> None:
        self._logger = logging.getLogger(name)
        self.entries: list[ExecutionLogEntry] = []

    def _log(self, level: int, stage: str, message: str, data: dict[str, Any] | None) -> None:
        entry = ExecutionLogEntry(
            stage=stage,
            level=logging.getLevelName(level).lower(),
            message=message,
            data=data or {},
        )
        self.entries.append(entry)
        if entry.data:
            self._logger.log(level, "[%s] %s %s", stage, message, entry.data)
        else:
            self._logger.log(level, "[%s] %s", stage, message)

    def info(self, stage: str, message: str, data: dict[str, Any] | None = None) -> None:
        self._log(logging.INFO, stage, message, data)

    def warning(self, stage: str, message: str, data: dict[str, Any] | None = None) -> None:
        self._log(logging.WARNING, stage, message, data)

    def error(self, stage: str, message: str, data: dict[str, Any] | None = None) -> None:
        self._log(logging.ERROR, stage, message, data)

    def stages(self) -> list[str]:
        """Distinct stages in the order first seen."""
        return list(dict.fromkeys(e.stage for e in self.entries))


class AuditTrail(BaseModel):
    market_id: str
    stages: list[AuditEntry] = Field(default_factory=list)
    checkpoint_id: str | None = None


def _thread_config(thread_id: str, checkpoint_id: str | None = None) -> dict[str, Any]:
    configurable: dict[str, Any] = {"thread_id": thread_id}
    if checkpoint_id is not None:
        configurable["checkpoint_id"] = checkpoint_id
    return {"configurable": configurable}


def _as_audit_entries(raw: list[Any]) -> list[AuditEntry]:
    return [e if isinstance(e, AuditEntry) else AuditEntry.model_validate(e) for e in raw]


async def get_state_at_checkpoint(
    checkpointer: BaseCheckpointSaver,
    thread_id: str,
    checkpoint_id: str | None = None,
) -> dict[str, Any] | None:
    """Channel values saved at a checkpoint (latest when checkpoint_id is None)."""
    saved = await checkpointer.aget_tuple(_thread_config(thread_id, checkpoint_id))
    if saved is None:
        return None
    return dict(saved.checkpoint.get("channel_values", {}))


async def list_checkpoints(
    checkpointer: BaseCheckpointSaver, thread_id: str, limit: int | None = None
) -> list[dict[str, Any]]:
    """Checkpoint ids, timestamps and steps for a thread, newest first."""
    checkpoints = []
    async for saved in checkpointer.alist(_thread_config(thread_id), limit=limit):
        checkpoints.append(
            {
                "checkpoint_id": saved.checkpoint["id"],
                "timestamp": saved.checkpoint.get("ts"),
                "step": (saved.metadata or {}).get("step"),
                "source": (saved.metadata or {}).get("source"),
            }
        )
    return checkpoints


async def get_audit_trail(checkpointer: BaseCheckpointSaver, market_id: str) -> AuditTrail:
    """Audit entries accumulated in the latest checkpoint for a market's thread."""
    saved = await checkpointer.aget_tuple(_thread_config(market_id))
    if saved is None:
        return AuditTrail(market_id=market_id)
    values = saved.checkpoint.get("channel_values", {})
    return AuditTrail(
        market_id=market_id,
        stages=_as_audit_entries(values.get("audit_log") or []),
        checkpoint_id=saved.checkpoint["id"],
    )
