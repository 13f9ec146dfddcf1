"""
Audit Execution State Machine

ExecutionStatus is the source of truth.
State transitions:
    RUNNING → COMPLETED   (normal finish)
    RUNNING → FAILED      (error escaped filtering or aggregation)
    RUNNING → CANCELLED   (external cancel request)

Terminal states never move again.
"""
from datetime import datetime
from typing import Optional, Tuple

from ...models.ssot import ExecutionResult, ExecutionStatus
from .errors import ExecutionStateError


class ExecutionStateMachine:
    """Forward-only status transitions for an ExecutionResult."""

    # (current_status, action) -> new_status
    TRANSITIONS = {
        (ExecutionStatus.RUNNING, "complete"): ExecutionStatus.COMPLETED,
        (ExecutionStatus.RUNNING, "fail"): ExecutionStatus.FAILED,
        (ExecutionStatus.RUNNING, "cancel"): ExecutionStatus.CANCELLED,
    }

    def can_transition(
        self, current_status: ExecutionStatus, action: str
    ) -> Tuple[bool, Optional[str]]:
        if (current_status, action) not in self.TRANSITIONS:
            return False, f"Invalid transition: {current_status.value} + {action}"
        return True, None

    def transition(self, current_status: ExecutionStatus, action: str) -> ExecutionStatus:
        """
        Raises:
            ExecutionStateError: If transition is not allowed
        """
        is_allowed, error = self.can_transition(current_status, action)
        if not is_allowed:
            raise ExecutionStateError(error)
        return self.TRANSITIONS[(current_status, action)]

    def apply(
        self, execution: ExecutionResult, action: str, end_time: Optional[datetime] = None
    ) -> ExecutionResult:
        """Move the execution to its next status and stamp end_time."""
        execution.status = self.transition(execution.status, action)
        execution.end_time = end_time or datetime.utcnow()
        return execution
