"""Ghana PCA Engine - Audit Orchestration

This layer runs the agents over declarations and outputs ExecutionResult (SSOT #3).
All aggregates are computed here - downstream reporting never recomputes.
"""
from .config import (
    AgentConfig,
    AuditExecutionConfig,
    AuditScope,
    DateRange,
    ExecutionOptions,
    TargetFilters,
)
from .errors import (
    AuditConfigurationError,
    ExecutionStateError,
    MalformedDeclarationError,
)
from .filters import filter_declarations
from .state_machine import ExecutionStateMachine
from .aggregation import aggregate
from .analytics import agent_performance_summary, system_performance_summary
from .orchestrator import (
    AuditOrchestrator,
    AuditProgress,
    CancellationToken,
    run_audit,
    should_agent_run,
)
from .execution_queue import (
    MAX_CONCURRENT_EXECUTIONS,
    ExecutionPriority,
    ExecutionQueue,
)

__all__ = [
    "AgentConfig",
    "AuditExecutionConfig",
    "AuditScope",
    "DateRange",
    "ExecutionOptions",
    "TargetFilters",
    "AuditConfigurationError",
    "ExecutionStateError",
    "MalformedDeclarationError",
    "filter_declarations",
    "ExecutionStateMachine",
    "aggregate",
    "agent_performance_summary",
    "system_performance_summary",
    "AuditOrchestrator",
    "AuditProgress",
    "CancellationToken",
    "run_audit",
    "should_agent_run",
    "MAX_CONCURRENT_EXECUTIONS",
    "ExecutionPriority",
    "ExecutionQueue",
]
