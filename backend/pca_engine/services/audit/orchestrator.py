"""
Ghana PCA Engine - Audit Orchestrator

Runs the agents over a declaration set and produces one ExecutionResult
(SSOT #3).

Pipeline:
    validate config → filter → process (parallel batches | sequential)
    → aggregate → terminal status

Per-declaration work never touches the ExecutionResult directly. Each unit
returns a DeclarationOutcome and outcomes are merged one at a time after
the unit (or the whole batch) has settled, so no locking is needed.
"""
from __future__ import annotations
import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, Dict, List, Optional

from ...models.ssot import (
    AgentResult, AgentType, Declaration, ExecutionError, ExecutionFailure, ExecutionResult,
    ExecutionStatus,
)
from ..agents import BaseAgent, default_agents
from ..agents.constants import TSA_MIN_VALUE, is_ecowas_country, is_petroleum
from ..storage import InMemoryRepository, Repository
from .aggregation import aggregate
from .analytics import agent_performance_summary, system_performance_summary
from .config import AuditExecutionConfig
from .filters import filter_declarations
from .state_machine import ExecutionStateMachine

logger = logging.getLogger(__name__)

SYSTEM_AGENT = "system"


# =============================================================================
# PROGRESS AND CANCELLATION
# =============================================================================

@dataclass
class AuditProgress:
    execution_id: str
    processed: int
    total: int
    current_declaration: Optional[str] = None
    agent_results: List[AgentResult] = field(default_factory=list)


ProgressCallback = Callable[[AuditProgress], None]


class CancellationToken:
    """Cooperative cancel flag, checked before each unit of work."""

    def __init__(self):
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


@dataclass
class DeclarationOutcome:
    """Everything one declaration produced; merged after the unit settles."""
    declaration_id: str
    results: List[AgentResult] = field(default_factory=list)
    errors: List[ExecutionError] = field(default_factory=list)
    failed: bool = False


# =============================================================================
# AGENT SELECTION
# =============================================================================

AGENT_APPLICABILITY: Dict[AgentType, Callable[[Declaration], bool]] = {
    AgentType.ECOWAS_ORIGIN: lambda d: d.ecowas_origin or is_ecowas_country(d.origin_country),
    AgentType.PETROLEUM_ATG: lambda d: is_petroleum(d.hs_code),
    AgentType.TAX_COMPLIANCE: lambda d: True,
    AgentType.TSA_RECONCILIATION: lambda d: d.value > TSA_MIN_VALUE,
}


def should_agent_run(agent_type: AgentType, declaration: Declaration) -> bool:
    policy = AGENT_APPLICABILITY.get(agent_type)
    return policy(declaration) if policy else True


def _chunks(items: List[Declaration], size: int) -> List[List[Declaration]]:
    return [items[i:i + size] for i in range(0, len(items), size)]


# =============================================================================
# ORCHESTRATOR
# =============================================================================

class AuditOrchestrator:
    """
    Owns the executions it runs. Construct one per use; nothing is shared
    between instances.
    """

    def __init__(
        self,
        agents: Optional[Dict[AgentType, BaseAgent]] = None,
        execution_store: Optional[Repository[ExecutionResult]] = None,
    ):
        self.agents = agents if agents is not None else default_agents()
        self.execution_store = execution_store if execution_store is not None else InMemoryRepository()
        self.state_machine = ExecutionStateMachine()
        self._live: Dict[str, ExecutionResult] = {}
        self._tokens: Dict[str, CancellationToken] = {}

    # -------------------------------------------------------------------------
    # Run
    # -------------------------------------------------------------------------

    async def run_audit(
        self,
        config: AuditExecutionConfig,
        declarations: List[Declaration],
        on_progress: Optional[ProgressCallback] = None,
        cancel_token: Optional[CancellationToken] = None,
    ) -> ExecutionResult:
        """
        Run one audit execution.

        Raises:
            AuditConfigurationError: before any work, if config is invalid

        Execution-level failures do not raise; they come back as a result
        with status FAILED and `failure` set.
        """
        config.validate()

        execution = ExecutionResult(case_id=config.case_id)
        token = cancel_token or CancellationToken()
        self._live[execution.execution_id] = execution
        self._tokens[execution.execution_id] = token

        logger.info(
            f"Starting audit {execution.execution_id} for case {config.case_id} "
            f"({len(declarations)} declarations supplied)"
        )

        stage = "persistence"
        try:
            self.execution_store.put(execution.execution_id, execution)

            stage = "filtering"
            filtered = filter_declarations(declarations, config)
            execution.total_declarations = len(filtered)

            stage = "processing"
            if config.execution_options.parallel:
                await self._execute_parallel(execution, filtered, config, token, on_progress)
            else:
                await self._execute_sequential(execution, filtered, config, token, on_progress)

            if token.cancelled and execution.status == ExecutionStatus.RUNNING:
                # Token cancelled directly by the caller rather than through cancel_execution
                self.state_machine.apply(execution, "cancel")
                logger.warning(f"Audit {execution.execution_id} cancelled")

            stage = "aggregation"
            end_time = execution.end_time or datetime.utcnow()
            aggregate(execution, end_time)
            if execution.status == ExecutionStatus.RUNNING:
                self.state_machine.apply(execution, "complete", end_time=end_time)
        except Exception as e:
            logger.error(f"Audit {execution.execution_id} failed during {stage}: {e}")
            self._fail(execution, stage, str(e))
        finally:
            self._live.pop(execution.execution_id, None)
            self._tokens.pop(execution.execution_id, None)

        try:
            self.execution_store.put(execution.execution_id, execution)
        except Exception as e:
            # Terminal status stands; the caller still gets the result
            logger.error(f"Audit {execution.execution_id} result not persisted: {e}")
            execution.errors.append(ExecutionError(
                declaration_id=SYSTEM_AGENT,
                agent_type=SYSTEM_AGENT,
                error=f"Result not persisted: {e}",
            ))

        logger.info(
            f"Audit {execution.execution_id} {execution.status.value}: "
            f"{execution.processed_declarations} processed, "
            f"{execution.failed_declarations} failed, "
            f"{execution.ghana_metrics.total_violations} violations"
        )
        return execution

    def _fail(self, execution: ExecutionResult, stage: str, message: str) -> None:
        execution.failure = ExecutionFailure(stage=stage, message=message)
        execution.errors.append(ExecutionError(
            declaration_id=SYSTEM_AGENT,
            agent_type=SYSTEM_AGENT,
            error=message,
        ))
        if execution.status == ExecutionStatus.RUNNING:
            # Declarations never reached count as failed
            execution.failed_declarations = max(
                execution.failed_declarations,
                execution.total_declarations - execution.processed_declarations,
            )
            self.state_machine.apply(execution, "fail")

    async def _execute_parallel(
        self,
        execution: ExecutionResult,
        declarations: List[Declaration],
        config: AuditExecutionConfig,
        token: CancellationToken,
        on_progress: Optional[ProgressCallback],
    ) -> None:
        options = config.execution_options
        for batch in _chunks(declarations, options.max_concurrency):
            if token.cancelled:
                break

            outcomes = await asyncio.gather(*[
                self._run_unit(declaration, config) for declaration in batch
            ])

            if token.cancelled:
                logger.warning(f"Audit {execution.execution_id} cancelled; discarding in-flight batch")
                break

            batch_results: List[AgentResult] = []
            for outcome in outcomes:
                self._merge(execution, outcome)
                batch_results.extend(outcome.results)

            self._notify(on_progress, AuditProgress(
                execution_id=execution.execution_id,
                processed=execution.processed_declarations,
                total=execution.total_declarations,
                current_declaration=(
                    f"Processed {execution.processed_declarations}/{execution.total_declarations}"
                ),
                agent_results=batch_results,
            ))

    async def _execute_sequential(
        self,
        execution: ExecutionResult,
        declarations: List[Declaration],
        config: AuditExecutionConfig,
        token: CancellationToken,
        on_progress: Optional[ProgressCallback],
    ) -> None:
        for declaration in declarations:
            if token.cancelled:
                break

            outcome = await self._run_unit(declaration, config)

            if token.cancelled:
                logger.warning(
                    f"Audit {execution.execution_id} cancelled; discarding {outcome.declaration_id}"
                )
                break

            self._merge(execution, outcome)
            self._notify(on_progress, AuditProgress(
                execution_id=execution.execution_id,
                processed=execution.processed_declarations,
                total=execution.total_declarations,
                current_declaration=outcome.declaration_id,
                agent_results=outcome.results,
            ))

    async def _run_unit(
        self, declaration: Declaration, config: AuditExecutionConfig
    ) -> DeclarationOutcome:
        """Process one declaration under the configured timeout. Never raises."""
        timeout_ms = config.execution_options.timeout_ms
        declaration_id = declaration.declaration_id or "unknown"
        try:
            return await asyncio.wait_for(
                self._process_declaration(declaration, config), timeout_ms / 1000
            )
        except asyncio.TimeoutError:
            message = f"Processing timed out after {timeout_ms} ms"
        except Exception as e:
            message = str(e) or type(e).__name__

        logger.warning(f"Declaration {declaration_id} failed: {message}")
        return DeclarationOutcome(
            declaration_id=declaration_id,
            errors=[ExecutionError(declaration_id=declaration_id, agent_type=SYSTEM_AGENT, error=message)],
            failed=True,
        )

    async def _process_declaration(
        self, declaration: Declaration, config: AuditExecutionConfig
    ) -> DeclarationOutcome:
        declaration_id = declaration.declaration_id or "unknown"
        outcome = DeclarationOutcome(declaration_id=declaration_id)
        attempted = 0

        for agent in self.select_agents(declaration, config):
            attempted += 1
            try:
                outcome.results.append(agent.analyze(declaration))
            except Exception as e:
                logger.warning(
                    f"Agent {agent.agent_type.value} failed for declaration {declaration_id}: {e}"
                )
                outcome.errors.append(ExecutionError(
                    declaration_id=declaration_id,
                    agent_type=agent.agent_type.value,
                    error=str(e) or type(e).__name__,
                ))
            # Yield between agents so concurrent units interleave
            await asyncio.sleep(0)

        if attempted and not outcome.results:
            outcome.failed = True
            outcome.errors.append(ExecutionError(
                declaration_id=declaration_id,
                agent_type=SYSTEM_AGENT,
                error="No agent result could be produced",
            ))
        return outcome

    def select_agents(
        self, declaration: Declaration, config: AuditExecutionConfig
    ) -> List[BaseAgent]:
        """Agents allowed by both the config flags and the applicability policy."""
        return [
            agent for agent_type, agent in self.agents.items()
            if config.agent_config.is_enabled(agent_type) and should_agent_run(agent_type, declaration)
        ]

    @staticmethod
    def _merge(execution: ExecutionResult, outcome: DeclarationOutcome) -> None:
        execution.agent_results.extend(outcome.results)
        execution.errors.extend(outcome.errors)
        if outcome.failed:
            execution.failed_declarations += 1
        else:
            execution.processed_declarations += 1

    @staticmethod
    def _notify(on_progress: Optional[ProgressCallback], progress: AuditProgress) -> None:
        if on_progress is None:
            return
        try:
            on_progress(progress)
        except Exception as e:
            logger.warning(f"Progress callback error for {progress.execution_id}: {e}")

    # -------------------------------------------------------------------------
    # Queries and control
    # -------------------------------------------------------------------------

    def cancel_execution(self, execution_id: str) -> bool:
        """Flip a running execution to CANCELLED. Returns False otherwise."""
        execution = self._live.get(execution_id) or self.execution_store.get(execution_id)
        if execution is None or execution.status != ExecutionStatus.RUNNING:
            return False

        token = self._tokens.get(execution_id)
        if token is not None:
            token.cancel()
        self.state_machine.apply(execution, "cancel")
        self.execution_store.put(execution_id, execution)
        logger.warning(f"Audit {execution_id} cancelled")
        return True

    def get_execution(self, execution_id: str) -> Optional[ExecutionResult]:
        return self._live.get(execution_id) or self.execution_store.get(execution_id)

    def list_executions(self) -> List[ExecutionResult]:
        return self.execution_store.list()

    def get_executions_by_case(self, case_id: str) -> List[ExecutionResult]:
        return [e for e in self.list_executions() if e.case_id == case_id]

    def agent_performance_metrics(self) -> Dict[str, Dict[str, float]]:
        return agent_performance_summary(self.list_executions())

    def system_performance_metrics(self) -> Dict[str, float]:
        return system_performance_summary(self.list_executions())


async def run_audit(
    config: AuditExecutionConfig,
    declarations: List[Declaration],
    on_progress: Optional[ProgressCallback] = None,
) -> ExecutionResult:
    """Run one audit with a freshly built orchestrator."""
    return await AuditOrchestrator().run_audit(config, declarations, on_progress)
