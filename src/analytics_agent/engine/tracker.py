"""Execution record ownership: status transitions, timestamps and the run log."""

from collections.abc import Callable
from datetime import datetime
from typing import Any
from uuid import uuid4

from src.analytics_agent.core.logging import get_logger
from src.analytics_agent.engine.errors import InvalidStatusTransition
from src.analytics_agent.models.base import utc_now
from src.analytics_agent.models.enums import ExecutionStatus, LogLevel
from src.analytics_agent.schemas.workflow import ExecutionLog, WorkflowExecution

logger = get_logger(__name__)

# Node id used for entries that concern the run as a whole
WORKFLOW_LOG_ID = "workflow"

_ALLOWED_TRANSITIONS: dict[ExecutionStatus, set[ExecutionStatus]] = {
    ExecutionStatus.PENDING: {ExecutionStatus.RUNNING},
    ExecutionStatus.RUNNING: {ExecutionStatus.COMPLETED, ExecutionStatus.FAILED},
    ExecutionStatus.COMPLETED: set(),
    ExecutionStatus.FAILED: set(),
}


def new_execution_id() -> str:
    return f"exec-{uuid4().hex}"


class ExecutionTracker:
    """Owns a single :class:`WorkflowExecution`.

    The tracker is the only writer of the record. Status only moves forward
    (pending -> running -> completed | failed) and log entries are only ever
    appended.
    """

    def __init__(
        self,
        workflow_id: str,
        execution_id: str | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self._clock = clock
        self._execution = WorkflowExecution(
            id=execution_id or new_execution_id(),
            workflow_id=workflow_id,
        )

    @property
    def execution(self) -> WorkflowExecution:
        return self._execution

    @property
    def status(self) -> ExecutionStatus:
        return self._execution.status

    def _transition(self, target: ExecutionStatus) -> None:
        current = self._execution.status
        if target not in _ALLOWED_TRANSITIONS[current]:
            raise InvalidStatusTransition(current.value, target.value)
        self._execution.status = target

    def start(self) -> None:
        self._transition(ExecutionStatus.RUNNING)
        self._execution.started_at = self._clock()

    def complete(self) -> None:
        self._transition(ExecutionStatus.COMPLETED)
        self._execution.completed_at = self._clock()

    def fail(self, message: str) -> None:
        self._transition(ExecutionStatus.FAILED)
        self._execution.completed_at = self._clock()
        self._execution.error = message

    def log(
        self,
        level: LogLevel,
        node_id: str,
        message: str,
        data: Any = None,
    ) -> ExecutionLog:
        """Append one entry to the run log and mirror it to the application log."""
        entry = ExecutionLog(
            node_id=node_id,
            timestamp=self._clock(),
            level=level,
            message=message,
            data=data,
        )
        self._execution.logs.append(entry)

        if level is LogLevel.ERROR:
            logger.error(message, node_id=node_id)
        elif level is LogLevel.WARN:
            logger.warning(message, node_id=node_id)
        else:
            logger.info(message, node_id=node_id)
        return entry

    def info(self, node_id: str, message: str, data: Any = None) -> ExecutionLog:
        return self.log(LogLevel.INFO, node_id, message, data)

    def warn(self, node_id: str, message: str, data: Any = None) -> ExecutionLog:
        return self.log(LogLevel.WARN, node_id, message, data)

    def error(self, node_id: str, message: str, data: Any = None) -> ExecutionLog:
        return self.log(LogLevel.ERROR, node_id, message, data)
