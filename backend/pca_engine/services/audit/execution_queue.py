"""
Ghana PCA Engine - Execution Queue

Admits audit executions in priority order with a bounded number running
at once. High priority runs ahead of medium, medium ahead of low; within
a level executions start in submission order.

The queue owns no execution state. Each admitted item is a plain
`orchestrator.run_audit` call and the submitter awaits its result.
"""
from __future__ import annotations
import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Set

from ...models.ssot import Declaration, ExecutionResult
from .config import AuditExecutionConfig

logger = logging.getLogger(__name__)

MAX_CONCURRENT_EXECUTIONS = 5


class ExecutionPriority(str, Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


PRIORITY_RANK: Dict[ExecutionPriority, int] = {
    ExecutionPriority.HIGH: 0,
    ExecutionPriority.MEDIUM: 1,
    ExecutionPriority.LOW: 2,
}


@dataclass
class QueuedExecution:
    config: AuditExecutionConfig
    declarations: List[Declaration]
    priority: ExecutionPriority
    future: asyncio.Future
    on_progress: Optional[Any] = None
    queued_at: datetime = field(default_factory=datetime.utcnow)


class ExecutionQueue:
    """Priority admission in front of an AuditOrchestrator."""

    def __init__(self, orchestrator, max_concurrent: int = MAX_CONCURRENT_EXECUTIONS):
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")
        self.orchestrator = orchestrator
        self.max_concurrent = max_concurrent

        self._pending: List[QueuedExecution] = []
        self._active: Set[asyncio.Task] = set()

        self.total_submitted = 0
        self.total_completed = 0

    async def submit(
        self,
        config: AuditExecutionConfig,
        declarations: List[Declaration],
        priority: str = ExecutionPriority.MEDIUM.value,
        on_progress=None,
    ) -> ExecutionResult:
        """
        Queue one execution and wait for its ExecutionResult.

        Raises:
            AuditConfigurationError: invalid config, rejected before queuing
            ValueError: unknown priority
        """
        config.validate()
        priority = ExecutionPriority(priority)

        item = QueuedExecution(
            config=config,
            declarations=declarations,
            priority=priority,
            future=asyncio.get_running_loop().create_future(),
            on_progress=on_progress,
        )
        self._enqueue(item)
        self.total_submitted += 1

        logger.info(
            f"Queued audit for case {config.case_id} at {priority.value} priority "
            f"({len(self._pending)} waiting, {len(self._active)} running)"
        )
        self._pump()
        return await item.future

    def _enqueue(self, item: QueuedExecution) -> None:
        rank = PRIORITY_RANK[item.priority]
        index = next(
            (i for i, queued in enumerate(self._pending) if PRIORITY_RANK[queued.priority] > rank),
            len(self._pending),
        )
        self._pending.insert(index, item)

    def _pump(self) -> None:
        while self._pending and len(self._active) < self.max_concurrent:
            item = self._pending.pop(0)
            if item.future.done():
                # Submitter went away while waiting
                continue
            task = asyncio.create_task(self._run(item))
            self._active.add(task)
            task.add_done_callback(self._finished)

    def _finished(self, task: asyncio.Task) -> None:
        self._active.discard(task)
        self.total_completed += 1
        self._pump()

    async def _run(self, item: QueuedExecution) -> None:
        try:
            result = await self.orchestrator.run_audit(
                item.config, item.declarations, on_progress=item.on_progress,
            )
        except Exception as e:
            logger.error(f"Queued audit for case {item.config.case_id} raised: {e}")
            if not item.future.done():
                item.future.set_exception(e)
        else:
            if not item.future.done():
                item.future.set_result(result)
        finally:
            if not item.future.done():
                item.future.cancel()

    def status(self) -> Dict[str, Any]:
        queued_by_priority = {p.value: 0 for p in ExecutionPriority}
        for item in self._pending:
            queued_by_priority[item.priority.value] += 1
        return {
            "queued": len(self._pending),
            "active": len(self._active),
            "max_concurrent": self.max_concurrent,
            "queued_by_priority": queued_by_priority,
            "total_submitted": self.total_submitted,
            "total_completed": self.total_completed,
        }
