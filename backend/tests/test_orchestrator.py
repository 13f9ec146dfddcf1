"""
Audit Orchestrator Tests

Covers:
- Sequential and parallel runs agree on every aggregate
- processed + failed == total for terminal executions
- Cancellation before and during processing
- Per-declaration failures (malformed data, agent errors, timeouts)
- Execution-level failures keep partial results
- Progress callback side channel
"""
import asyncio

import pytest

from pca_engine.models.ssot import AgentType, ExecutionStatus, to_jsonable
from pca_engine.services.agents import TaxComplianceAgent, default_agents
from pca_engine.services.audit import (
    AgentConfig,
    AuditConfigurationError,
    AuditExecutionConfig,
    AuditOrchestrator,
    CancellationToken,
    ExecutionOptions,
    TargetFilters,
    run_audit,
)
from pca_engine.services.storage import InMemoryRepository


def make_config(parallel=True, max_concurrency=10, timeout_ms=30000, **kwargs):
    return AuditExecutionConfig(
        case_id=kwargs.pop("case_id", "CASE-GH-2024-001"),
        execution_options=ExecutionOptions(
            parallel=parallel, max_concurrency=max_concurrency, timeout_ms=timeout_ms
        ),
        **kwargs,
    )


class ExplodingTaxAgent(TaxComplianceAgent):
    def analyze(self, declaration):
        raise RuntimeError("tax service unavailable")


class CancellingTaxAgent(TaxComplianceAgent):
    """Cancels the run's token while analyzing its nth declaration."""

    def __init__(self, token, cancel_on_call):
        super().__init__()
        self.token = token
        self.cancel_on_call = cancel_on_call
        self.calls = 0

    def analyze(self, declaration):
        self.calls += 1
        if self.calls == self.cancel_on_call:
            self.token.cancel()
        return super().analyze(declaration)


class FailingStore(InMemoryRepository):
    """Execution store whose writes fail from the given call onwards."""

    def __init__(self, fail_from_call):
        super().__init__()
        self.fail_from_call = fail_from_call
        self.calls = 0

    def put(self, item_id, item):
        self.calls += 1
        if self.calls >= self.fail_from_call:
            raise RuntimeError("database is locked")
        return super().put(item_id, item)


async def hang(self, declaration, config):
    await asyncio.sleep(5)


@pytest.fixture
def orchestrator():
    return AuditOrchestrator()


# =============================================================================
# TEST: Aggregates
# =============================================================================

class TestAggregates:

    @pytest.mark.asyncio
    async def test_sequential_and_parallel_agree(self, mixed_declarations):
        sequential = await AuditOrchestrator().run_audit(make_config(parallel=False), mixed_declarations)
        parallel = await AuditOrchestrator().run_audit(
            make_config(parallel=True, max_concurrency=2), mixed_declarations
        )

        assert sequential.status == parallel.status == ExecutionStatus.COMPLETED
        assert to_jsonable(sequential.ghana_metrics) == to_jsonable(parallel.ghana_metrics)
        assert len(sequential.agent_results) == len(parallel.agent_results)

    @pytest.mark.asyncio
    async def test_completed_counts(self, orchestrator, mixed_declarations):
        execution = await orchestrator.run_audit(make_config(), mixed_declarations)

        assert execution.status == ExecutionStatus.COMPLETED
        assert execution.total_declarations == 5
        assert execution.processed_declarations == 5
        assert execution.failed_declarations == 0
        assert execution.end_time is not None
        assert execution.end_time >= execution.start_time

    @pytest.mark.asyncio
    async def test_ghana_metrics(self, orchestrator, mixed_declarations):
        execution = await orchestrator.run_audit(make_config(), mixed_declarations)
        metrics = execution.ghana_metrics
        results = execution.agent_results

        violations = [r for r in results if r.has_violation]
        assert metrics.total_violations == len(violations)
        assert metrics.total_recovery_amount == pytest.approx(
            sum(r.recovery_estimate for r in violations)
        )
        assert sum(metrics.risk_distribution.values()) == len(results)
        assert metrics.compliance_rate == pytest.approx(
            (len(results) - len(violations)) / len(results) * 100
        )
        assert set(metrics.sectoral_breakdown) == {"petroleum", "textiles", "vehicles", "other"}
        assert metrics.sectoral_breakdown["textiles"].declarations == 2
        assert metrics.violation_types["origin-fraud"] == 1
        assert metrics.violation_types["atg-shortfall"] == 1
        assert metrics.violation_types["invalid-tin-format"] == 1

    @pytest.mark.asyncio
    async def test_agent_selection(self, orchestrator, mixed_declarations):
        execution = await orchestrator.run_audit(make_config(), mixed_declarations)
        by_declaration = {}
        for result in execution.agent_results:
            by_declaration.setdefault(result.declaration_id, set()).add(result.agent_type)

        assert AgentType.PETROLEUM_ATG in by_declaration["GH-PET-001"]
        assert AgentType.PETROLEUM_ATG not in by_declaration["GH-TEX-001"]
        assert AgentType.ECOWAS_ORIGIN in by_declaration["GH-TEX-001"]
        assert AgentType.ECOWAS_ORIGIN not in by_declaration["GH-VEH-001"]
        # value 800 is below the TSA minimum
        assert by_declaration["GH-GEN-001"] == {AgentType.TAX_COMPLIANCE}

    @pytest.mark.asyncio
    async def test_disabled_agents_do_not_run(self, orchestrator, mixed_declarations):
        config = make_config(agent_config=AgentConfig(enable_tax_agent=False, enable_tsa_agent=False))
        execution = await orchestrator.run_audit(config, mixed_declarations)

        agent_types = {r.agent_type for r in execution.agent_results}
        assert agent_types == {AgentType.ECOWAS_ORIGIN, AgentType.PETROLEUM_ATG}
        assert set(execution.agent_performance) == {"ecowas-origin", "petroleum-atg"}

    @pytest.mark.asyncio
    async def test_no_matching_declarations_is_a_valid_empty_result(self, orchestrator, mixed_declarations):
        config = make_config(scope="hs-codes", target_filters=TargetFilters(hs_codes=["9999"]))
        execution = await orchestrator.run_audit(config, mixed_declarations)

        assert execution.status == ExecutionStatus.COMPLETED
        assert execution.total_declarations == 0
        assert execution.failure is None
        assert execution.ghana_metrics.total_violations == 0
        assert execution.ghana_metrics.compliance_rate == 0.0
        assert execution.performance_metrics.error_rate == 0.0

    @pytest.mark.asyncio
    async def test_module_level_run_audit(self, mixed_declarations):
        execution = await run_audit(make_config(), mixed_declarations)
        assert execution.status == ExecutionStatus.COMPLETED


# =============================================================================
# TEST: Configuration errors
# =============================================================================

class TestConfigurationErrors:

    @pytest.mark.asyncio
    async def test_invalid_config_rejected_before_processing(self, mixed_declarations):
        store = InMemoryRepository()
        orchestrator = AuditOrchestrator(execution_store=store)

        with pytest.raises(AuditConfigurationError):
            await orchestrator.run_audit(make_config(scope="shipments"), mixed_declarations)
        assert store.list() == []


# =============================================================================
# TEST: Per-declaration failures
# =============================================================================

class TestDeclarationFailures:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("parallel", [True, False])
    async def test_malformed_declaration_is_logged_not_raised(
        self, orchestrator, mixed_declarations, declaration_factory, parallel
    ):
        declarations = mixed_declarations + [declaration_factory(declaration_id="")]
        execution = await orchestrator.run_audit(make_config(parallel=parallel), declarations)

        assert execution.status == ExecutionStatus.COMPLETED
        assert execution.processed_declarations == 5
        assert execution.failed_declarations == 1
        assert execution.processed_declarations + execution.failed_declarations == execution.total_declarations
        error_agents = {e.agent_type for e in execution.errors}
        assert "tax-compliance" in error_agents
        assert "system" in error_agents
        assert execution.performance_metrics.error_rate == pytest.approx(100 / 6)

    @pytest.mark.asyncio
    async def test_one_failing_agent_does_not_fail_declaration(self, mixed_declarations):
        agents = default_agents()
        agents[AgentType.TAX_COMPLIANCE] = ExplodingTaxAgent()
        orchestrator = AuditOrchestrator(agents=agents)

        execution = await orchestrator.run_audit(make_config(), mixed_declarations)

        assert execution.status == ExecutionStatus.COMPLETED
        # GH-GEN-001 only had the tax agent, so it fails; the rest keep other agents' results
        assert execution.failed_declarations == 1
        assert execution.processed_declarations == 4
        tax_errors = [e for e in execution.errors if e.agent_type == "tax-compliance"]
        assert len(tax_errors) == 5
        assert all(e.error == "tax service unavailable" for e in tax_errors)

    @pytest.mark.asyncio
    async def test_timeout_counts_as_failed(self, orchestrator, declaration_factory, monkeypatch):
        monkeypatch.setattr(AuditOrchestrator, "_process_declaration", hang)
        declarations = [declaration_factory(declaration_id=f"D{i}") for i in range(2)]

        execution = await orchestrator.run_audit(make_config(parallel=False, timeout_ms=10), declarations)

        assert execution.status == ExecutionStatus.COMPLETED
        assert execution.failed_declarations == 2
        assert execution.processed_declarations == 0
        assert all("timed out" in e.error for e in execution.errors)


# =============================================================================
# TEST: Execution-level failures
# =============================================================================

class TestExecutionFailures:

    @pytest.mark.asyncio
    async def test_aggregation_failure(self, orchestrator, mixed_declarations, monkeypatch):
        def broken_aggregate(execution, end_time):
            raise ValueError("histogram overflow")

        monkeypatch.setattr("pca_engine.services.audit.orchestrator.aggregate", broken_aggregate)
        execution = await orchestrator.run_audit(make_config(), mixed_declarations)

        assert execution.status == ExecutionStatus.FAILED
        assert execution.failure.stage == "aggregation"
        assert execution.failure.message == "histogram overflow"
        # partial results survive for diagnosis
        assert len(execution.agent_results) > 0
        assert execution.processed_declarations + execution.failed_declarations == execution.total_declarations

    @pytest.mark.asyncio
    async def test_filtering_failure(self, orchestrator, mixed_declarations, monkeypatch):
        def broken_filter(declarations, config):
            raise KeyError("sector index")

        monkeypatch.setattr("pca_engine.services.audit.orchestrator.filter_declarations", broken_filter)
        execution = await orchestrator.run_audit(make_config(), mixed_declarations)

        assert execution.status == ExecutionStatus.FAILED
        assert execution.failure.stage == "filtering"
        assert execution.errors[-1].agent_type == "system"
        assert orchestrator.get_execution(execution.execution_id) is execution

    @pytest.mark.asyncio
    async def test_store_unavailable_at_start(self, mixed_declarations):
        orchestrator = AuditOrchestrator(execution_store=FailingStore(fail_from_call=1))

        execution = await orchestrator.run_audit(make_config(), mixed_declarations)

        assert execution.status == ExecutionStatus.FAILED
        assert execution.failure.stage == "persistence"
        assert execution.failure.message == "database is locked"
        assert execution.agent_results == []

    @pytest.mark.asyncio
    async def test_final_write_failure_keeps_result(self, mixed_declarations):
        store = FailingStore(fail_from_call=2)
        orchestrator = AuditOrchestrator(execution_store=store)

        execution = await orchestrator.run_audit(make_config(), mixed_declarations)

        assert execution.status == ExecutionStatus.COMPLETED
        assert execution.processed_declarations == 5
        assert execution.errors[-1].error == "Result not persisted: database is locked"
        assert store.calls == 2


# =============================================================================
# TEST: Cancellation
# =============================================================================

class TestCancellation:

    @pytest.mark.asyncio
    @pytest.mark.parametrize("parallel", [True, False])
    async def test_cancel_before_processing(self, orchestrator, mixed_declarations, parallel):
        token = CancellationToken()
        token.cancel()

        execution = await orchestrator.run_audit(
            make_config(parallel=parallel), mixed_declarations, cancel_token=token
        )

        assert execution.status == ExecutionStatus.CANCELLED
        assert execution.processed_declarations == 0
        assert execution.agent_results == []
        assert execution.end_time is not None

    @pytest.mark.asyncio
    async def test_cancel_from_progress_callback(self, orchestrator, mixed_declarations):
        seen = []

        def on_progress(progress):
            seen.append(progress.processed)
            if progress.processed == 2:
                assert orchestrator.cancel_execution(progress.execution_id) is True

        execution = await orchestrator.run_audit(
            make_config(parallel=False), mixed_declarations, on_progress=on_progress
        )

        assert execution.status == ExecutionStatus.CANCELLED
        assert execution.processed_declarations == 2
        assert seen == [1, 2]
        assert orchestrator.get_execution(execution.execution_id).status == ExecutionStatus.CANCELLED

    @pytest.mark.asyncio
    async def test_cancel_between_parallel_batches(self, orchestrator, mixed_declarations):
        def on_progress(progress):
            orchestrator.cancel_execution(progress.execution_id)

        execution = await orchestrator.run_audit(
            make_config(parallel=True, max_concurrency=2), mixed_declarations, on_progress=on_progress
        )

        assert execution.status == ExecutionStatus.CANCELLED
        assert execution.processed_declarations == 2

    @pytest.mark.asyncio
    @pytest.mark.parametrize("parallel", [True, False])
    async def test_in_flight_results_discarded(self, mixed_declarations, parallel):
        token = CancellationToken()
        agent = CancellingTaxAgent(token, cancel_on_call=3)
        orchestrator = AuditOrchestrator(agents={AgentType.TAX_COMPLIANCE: agent})

        execution = await orchestrator.run_audit(
            make_config(parallel=parallel, max_concurrency=2), mixed_declarations, cancel_token=token
        )

        assert execution.status == ExecutionStatus.CANCELLED
        assert execution.processed_declarations == 2
        assert execution.failed_declarations == 0
        # the third declaration was analyzed, but only the first two were merged
        assert agent.calls >= 3
        assert [r.declaration_id for r in execution.agent_results] == ["GH-PET-001", "GH-TEX-001"]
        assert execution.agent_performance["tax-compliance"].total_processed == 2

    @pytest.mark.asyncio
    async def test_cannot_cancel_finished_execution(self, orchestrator, mixed_declarations):
        execution = await orchestrator.run_audit(make_config(), mixed_declarations)

        assert orchestrator.cancel_execution(execution.execution_id) is False
        assert orchestrator.cancel_execution("exec-unknown") is False
        assert execution.status == ExecutionStatus.COMPLETED


# =============================================================================
# TEST: Progress callback
# =============================================================================

class TestProgress:

    @pytest.mark.asyncio
    async def test_parallel_progress_per_batch(self, orchestrator, mixed_declarations):
        updates = []
        execution = await orchestrator.run_audit(
            make_config(parallel=True, max_concurrency=2), mixed_declarations, on_progress=updates.append
        )

        assert [u.processed for u in updates] == [2, 4, 5]
        assert all(u.total == 5 for u in updates)
        assert sum(len(u.agent_results) for u in updates) == len(execution.agent_results)

    @pytest.mark.asyncio
    async def test_callback_errors_are_swallowed(self, orchestrator, mixed_declarations):
        def on_progress(progress):
            raise RuntimeError("dashboard offline")

        execution = await orchestrator.run_audit(
            make_config(parallel=False), mixed_declarations, on_progress=on_progress
        )

        assert execution.status == ExecutionStatus.COMPLETED
        assert execution.processed_declarations == 5
        assert execution.errors == []


# =============================================================================
# TEST: Queries and analytics
# =============================================================================

class TestQueries:

    @pytest.mark.asyncio
    async def test_executions_by_case(self, orchestrator, mixed_declarations):
        first = await orchestrator.run_audit(make_config(case_id="CASE-A"), mixed_declarations)
        await orchestrator.run_audit(make_config(case_id="CASE-B"), mixed_declarations)

        assert len(orchestrator.list_executions()) == 2
        by_case = orchestrator.get_executions_by_case("CASE-A")
        assert [e.execution_id for e in by_case] == [first.execution_id]

    @pytest.mark.asyncio
    async def test_agent_and_system_metrics(self, orchestrator, mixed_declarations):
        await orchestrator.run_audit(make_config(), mixed_declarations)
        await orchestrator.run_audit(make_config(), mixed_declarations)

        agents = orchestrator.agent_performance_metrics()
        assert agents["tax-compliance"]["executions"] == 2
        assert agents["tax-compliance"]["total_processed"] == 10
        assert agents["tax-compliance"]["average_confidence"] == pytest.approx(1.0)

        system = orchestrator.system_performance_metrics()
        assert system["total_executions"] == 2
        assert system["completed_executions"] == 2
        assert system["total_declarations_processed"] == 10
        assert system["error_rate"] == 0.0

    def test_empty_system_metrics(self, orchestrator):
        system = orchestrator.system_performance_metrics()
        assert system["completed_executions"] == 0
        assert system["system_throughput"] == 0.0
        assert orchestrator.agent_performance_metrics() == {}
