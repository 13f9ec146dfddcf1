"""
Execution Queue Tests

Covers:
- High before medium before low, submission order within a level
- At most max_concurrent executions running
- Errors reach the submitter without stalling the queue
"""
import asyncio

import pytest

from pca_engine.models.ssot import ExecutionResult, ExecutionStatus
from pca_engine.services.audit import (
    MAX_CONCURRENT_EXECUTIONS,
    AuditConfigurationError,
    AuditExecutionConfig,
    AuditOrchestrator,
    ExecutionQueue,
)


class BlockingOrchestrator:
    """Records start order and holds every run until released."""

    def __init__(self, fail_case=None):
        self.started = []
        self.release = asyncio.Event()
        self.fail_case = fail_case

    async def run_audit(self, config, declarations, on_progress=None):
        self.started.append(config.case_id)
        await self.release.wait()
        if config.case_id == self.fail_case:
            raise RuntimeError("orchestrator unavailable")
        return ExecutionResult(case_id=config.case_id, status=ExecutionStatus.COMPLETED)


async def settle():
    for _ in range(10):
        await asyncio.sleep(0)


def submit(queue, case_id, priority="medium"):
    return asyncio.ensure_future(queue.submit(AuditExecutionConfig(case_id=case_id), [], priority))


# =============================================================================
# TEST: Priority order
# =============================================================================

class TestPriorityOrder:

    async def test_high_medium_low(self):
        orchestrator = BlockingOrchestrator()
        queue = ExecutionQueue(orchestrator, max_concurrent=1)

        tasks = [submit(queue, "FIRST", "low")]
        await settle()
        assert orchestrator.started == ["FIRST"]

        tasks += [
            submit(queue, "LOW", "low"),
            submit(queue, "MEDIUM", "medium"),
            submit(queue, "HIGH", "high"),
        ]
        await settle()
        assert queue.status()["queued_by_priority"] == {"high": 1, "medium": 1, "low": 1}

        orchestrator.release.set()
        results = await asyncio.gather(*tasks)

        assert orchestrator.started == ["FIRST", "HIGH", "MEDIUM", "LOW"]
        assert [r.case_id for r in results] == ["FIRST", "LOW", "MEDIUM", "HIGH"]

    async def test_submission_order_within_level(self):
        orchestrator = BlockingOrchestrator()
        queue = ExecutionQueue(orchestrator, max_concurrent=1)

        tasks = [submit(queue, "BLOCKER")]
        await settle()
        tasks += [submit(queue, f"HIGH-{i}", "high") for i in range(3)]
        await settle()

        orchestrator.release.set()
        await asyncio.gather(*tasks)

        assert orchestrator.started == ["BLOCKER", "HIGH-0", "HIGH-1", "HIGH-2"]


# =============================================================================
# TEST: Concurrency cap
# =============================================================================

class TestConcurrencyCap:

    def test_default_cap(self):
        assert MAX_CONCURRENT_EXECUTIONS == 5
        assert ExecutionQueue(BlockingOrchestrator()).max_concurrent == 5

    def test_cap_must_be_positive(self):
        with pytest.raises(ValueError):
            ExecutionQueue(BlockingOrchestrator(), max_concurrent=0)

    async def test_running_never_exceeds_cap(self):
        orchestrator = BlockingOrchestrator()
        queue = ExecutionQueue(orchestrator, max_concurrent=2)

        tasks = [submit(queue, f"CASE-{i}") for i in range(4)]
        await settle()

        status = queue.status()
        assert status["active"] == 2
        assert status["queued"] == 2
        assert orchestrator.started == ["CASE-0", "CASE-1"]

        orchestrator.release.set()
        await asyncio.gather(*tasks)

        status = queue.status()
        assert status["active"] == 0
        assert status["queued"] == 0
        assert status["total_submitted"] == 4
        assert status["total_completed"] == 4


# =============================================================================
# TEST: Errors
# =============================================================================

class TestQueueErrors:

    async def test_invalid_config_rejected_before_queuing(self):
        queue = ExecutionQueue(BlockingOrchestrator())

        with pytest.raises(AuditConfigurationError):
            await queue.submit(AuditExecutionConfig(case_id=""), [])
        assert queue.status()["total_submitted"] == 0

    async def test_unknown_priority(self):
        queue = ExecutionQueue(BlockingOrchestrator())

        with pytest.raises(ValueError):
            await queue.submit(AuditExecutionConfig(case_id="CASE-1"), [], "urgent")

    async def test_failure_reaches_submitter_and_queue_continues(self):
        orchestrator = BlockingOrchestrator(fail_case="BROKEN")
        queue = ExecutionQueue(orchestrator, max_concurrent=1)

        broken = submit(queue, "BROKEN")
        healthy = submit(queue, "HEALTHY")
        await settle()
        orchestrator.release.set()

        with pytest.raises(RuntimeError, match="orchestrator unavailable"):
            await broken
        assert (await healthy).status == ExecutionStatus.COMPLETED


# =============================================================================
# TEST: Real orchestrator
# =============================================================================

class TestQueuedAudit:

    async def test_runs_through_orchestrator(self, mixed_declarations):
        orchestrator = AuditOrchestrator()
        queue = ExecutionQueue(orchestrator)

        execution = await queue.submit(
            AuditExecutionConfig(case_id="CASE-Q"), mixed_declarations, "high",
        )

        assert execution.status == ExecutionStatus.COMPLETED
        assert execution.processed_declarations == len(mixed_declarations)
        assert orchestrator.get_execution(execution.execution_id) is execution
