"""
Ghana PCA Engine - Execution Aggregation

Single pass over all AgentResults after the processing loop has settled.
Every float total is computed with math.fsum so aggregates do not depend
on result order (sequential and parallel runs agree exactly).
"""
from __future__ import annotations
from collections import defaultdict
from datetime import datetime
from math import fsum
from typing import Dict, List

from ...models.ssot import (
    AgentPerformance, AgentResult, ExecutionResult, GhanaMetrics, PerformanceMetrics,
    SectorMetrics, risk_band,
)


def _mean(values: List[float]) -> float:
    return fsum(values) / len(values) if values else 0.0


def compute_agent_performance(results: List[AgentResult]) -> Dict[str, AgentPerformance]:
    groups: Dict[str, List[AgentResult]] = defaultdict(list)
    for result in results:
        groups[result.agent_type.value].append(result)

    performance = {}
    for agent_type in sorted(groups):
        group = groups[agent_type]
        average_confidence = _mean([r.confidence for r in group])
        performance[agent_type] = AgentPerformance(
            total_processed=len(group),
            violations_detected=sum(1 for r in group if r.has_violation),
            average_confidence=average_confidence,
            average_processing_time=_mean([r.processing_time for r in group]),
            # No labelled outcomes at run time; confidence stands in for accuracy
            accuracy=average_confidence,
        )
    return performance


def compute_ghana_metrics(results: List[AgentResult]) -> GhanaMetrics:
    metrics = GhanaMetrics()
    violations = [r for r in results if r.has_violation]

    metrics.total_violations = len(violations)
    metrics.total_recovery_amount = fsum(r.recovery_estimate for r in violations)

    sector_results: Dict[str, List[AgentResult]] = defaultdict(list)
    for result in results:
        sector_results[result.sector].append(result)
    for sector in sorted(sector_results):
        group = sector_results[sector]
        sector_violations = [r for r in group if r.has_violation]
        metrics.sectoral_breakdown[sector] = SectorMetrics(
            violations=len(sector_violations),
            recovery=fsum(r.recovery_estimate for r in sector_violations),
            declarations=len({r.declaration_id for r in group}),
        )

    violation_types: Dict[str, int] = defaultdict(int)
    for result in results:
        for finding in result.findings:
            violation_types[finding.finding_type] += 1
        metrics.risk_distribution[risk_band(result.risk_score)] += 1
    metrics.violation_types = dict(sorted(violation_types.items()))

    if results:
        metrics.compliance_rate = (len(results) - len(violations)) / len(results) * 100
    return metrics


def compute_performance_metrics(
    execution: ExecutionResult, end_time: datetime
) -> PerformanceMetrics:
    total_ms = (end_time - execution.start_time).total_seconds() * 1000
    processing_times = [r.processing_time for r in execution.agent_results]
    return PerformanceMetrics(
        total_execution_time=total_ms,
        average_processing_time=_mean(processing_times),
        throughput=execution.processed_declarations * 1000 / total_ms if total_ms > 0 else 0.0,
        error_rate=(
            execution.failed_declarations / execution.total_declarations * 100
            if execution.total_declarations else 0.0
        ),
    )


def aggregate(execution: ExecutionResult, end_time: datetime) -> ExecutionResult:
    """Populate every aggregate field of the execution from its agent results."""
    execution.agent_performance = compute_agent_performance(execution.agent_results)
    execution.ghana_metrics = compute_ghana_metrics(execution.agent_results)
    execution.performance_metrics = compute_performance_metrics(execution, end_time)
    return execution
