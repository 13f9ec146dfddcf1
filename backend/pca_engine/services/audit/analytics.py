"""
Ghana PCA Engine - Cross-Execution Analytics

Agent and system statistics over the executions an orchestrator has stored.
Only completed executions contribute to averages; failed declaration
counts come from every execution.
"""
from __future__ import annotations
from math import fsum
from typing import Any, Dict, List

from ...models.ssot import ExecutionResult, ExecutionStatus


def agent_performance_summary(executions: List[ExecutionResult]) -> Dict[str, Dict[str, Any]]:
    """Per agent type: totals and mean confidence/processing time across runs."""
    completed = [e for e in executions if e.status == ExecutionStatus.COMPLETED]
    summary: Dict[str, Dict[str, Any]] = {}

    for execution in completed:
        for agent_type, performance in execution.agent_performance.items():
            metrics = summary.setdefault(agent_type, {
                "total_processed": 0,
                "total_violations": 0,
                "average_confidence": 0.0,
                "average_processing_time": 0.0,
                "executions": 0,
                "violation_rate": 0.0,
            })
            metrics["total_processed"] += performance.total_processed
            metrics["total_violations"] += performance.violations_detected
            metrics["average_confidence"] += performance.average_confidence
            metrics["average_processing_time"] += performance.average_processing_time
            metrics["executions"] += 1

    for metrics in summary.values():
        runs = metrics["executions"]
        metrics["average_confidence"] /= runs
        metrics["average_processing_time"] /= runs
        if metrics["total_processed"]:
            metrics["violation_rate"] = metrics["total_violations"] / metrics["total_processed"] * 100

    return summary


def _average_accuracy(executions: List[ExecutionResult]) -> float:
    per_execution = []
    for execution in executions:
        accuracies = [p.accuracy for p in execution.agent_performance.values()]
        if accuracies:
            per_execution.append(fsum(accuracies) / len(accuracies))
    return fsum(per_execution) / len(per_execution) if per_execution else 0.0


def system_performance_summary(executions: List[ExecutionResult]) -> Dict[str, Any]:
    completed = [e for e in executions if e.status == ExecutionStatus.COMPLETED]
    if not completed:
        return {
            "total_executions": len(executions),
            "completed_executions": 0,
            "average_execution_time": 0.0,
            "total_declarations_processed": 0,
            "system_throughput": 0.0,
            "error_rate": 0.0,
            "average_accuracy": 0.0,
        }

    total_time = fsum(e.performance_metrics.total_execution_time for e in completed)
    total_processed = sum(e.processed_declarations for e in completed)
    total_failed = sum(e.failed_declarations for e in executions)
    attempted = total_processed + total_failed

    return {
        "total_executions": len(executions),
        "completed_executions": len(completed),
        "average_execution_time": total_time / len(completed),
        "total_declarations_processed": total_processed,
        "system_throughput": total_processed * 1000 / total_time if total_time > 0 else 0.0,
        "error_rate": total_failed / attempted * 100 if attempted else 0.0,
        "average_accuracy": _average_accuracy(completed),
    }
