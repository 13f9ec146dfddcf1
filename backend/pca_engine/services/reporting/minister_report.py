"""
Ghana PCA Engine - Minister Report Service

Builds minister-level summaries from a completed audit execution:
executive summary, sectoral impact, financial projections, strategic
recommendations and risk analysis.

Reports only read ExecutionResult aggregates; nothing is re-audited here.
"""
from __future__ import annotations
import logging
from collections import Counter, defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from math import fsum
from typing import Any, Dict, List, Optional
from uuid import uuid4

from dateutil.relativedelta import relativedelta

from ...models.ssot import ExecutionResult, ExecutionStatus, to_jsonable, parse_datetime
from ..storage import InMemoryRepository, Repository

logger = logging.getLogger(__name__)

MONTHLY_GROWTH_RATE = 0.08
PROJECTION_MONTHS = 36
SUMMARY_MONTHS = 12
PROGRAMME_COST = 15_000_000  # GHS
OPERATIONAL_COST_ANNUAL = 2_400_000  # GHS
BREAK_EVEN_POINT = "18 months"
BASELINE_RISK = 85


class ReportType(str, Enum):
    EXECUTIVE_SUMMARY = "executive-summary"
    DETAILED_ANALYSIS = "detailed-analysis"
    STRATEGIC_PLAN = "strategic-plan"
    FINANCIAL_PROJECTIONS = "financial-projections"


class ReportGenerationError(Exception):
    """Raised when a report cannot be generated for a case."""
    pass


SECTOR_RECOMMENDATIONS: Dict[str, List[str]] = {
    "petroleum": [
        "Implement mandatory ATG for all petroleum imports",
        "Enhanced value verification procedures",
        "Standardized tax calculation protocols",
    ],
    "textiles": [
        "Strengthen ECOWAS origin verification",
        "Implement automated HS code classification",
        "Enhanced document authentication",
    ],
    "vehicles": [
        "Implement vehicle value database",
        "Enhanced document verification",
        "Weight verification protocols",
    ],
}

GENERAL_RECOMMENDATIONS = [
    "Review declarations with repeated findings",
    "Request supporting documentation for flagged shipments",
]

STRATEGIC_RECOMMENDATIONS: List[Dict[str, str]] = [
    {
        "priority": "high",
        "action": "Scale the audit system to cover 100% of high-risk declarations",
        "timeline": "6 months",
        "expected_impact": "GHS 15M additional recovery annually",
        "required_resources": "System infrastructure and training",
        "responsible_party": "GRA ICT Directorate",
    },
    {
        "priority": "high",
        "action": "Integrate with Ghana National Single Window for real-time data",
        "timeline": "12 months",
        "expected_impact": "30% improvement in detection accuracy",
        "required_resources": "Integration development and testing",
        "responsible_party": "GRA Technical Services",
    },
    {
        "priority": "medium",
        "action": "Establish an audit analytics training center for customs officers",
        "timeline": "9 months",
        "expected_impact": "Improved system utilization and effectiveness",
        "required_resources": "Training facilities and expert instructors",
        "responsible_party": "GRA Human Resources",
    },
]

STRATEGIC_PLAN_ACTIONS: List[Dict[str, str]] = [
    {
        "priority": "high",
        "action": "Deploy ATG monitoring at all petroleum entry points",
        "timeline": "6 months",
        "expected_impact": "30% increase in petroleum compliance revenue",
        "required_resources": "GHS 5M for equipment and training",
        "responsible_party": "Ghana Revenue Authority - Technical Services",
    },
    {
        "priority": "high",
        "action": "Implement real-time ECOWAS origin verification system",
        "timeline": "9 months",
        "expected_impact": "25% reduction in origin fraud",
        "required_resources": "GHS 3.2M for system integration",
        "responsible_party": "GRA - Customs Division",
    },
    {
        "priority": "medium",
        "action": "Expand audit coverage to all high-value shipments",
        "timeline": "12 months",
        "expected_impact": "50% increase in detection accuracy",
        "required_resources": "GHS 2.8M for system scaling",
        "responsible_party": "GRA - ICT Directorate",
    },
    {
        "priority": "medium",
        "action": "Establish specialized fraud investigation unit",
        "timeline": "3 months",
        "expected_impact": "40% improvement in case resolution",
        "required_resources": "GHS 1.5M for training and operations",
        "responsible_party": "GRA - Enforcement Division",
    },
]


# =============================================================================
# MODELS
# =============================================================================

@dataclass
class ReportConfig:
    case_id: str
    report_type: ReportType = ReportType.EXECUTIVE_SUMMARY
    period_start: Optional[str] = None
    period_end: Optional[str] = None
    include_projections: bool = True
    include_recommendations: bool = True


@dataclass
class MinisterReport:
    case_id: str
    execution_id: str
    report_type: str
    id: str = field(default_factory=lambda: f"mr-{uuid4().hex[:12]}")
    generated_at: datetime = field(default_factory=datetime.utcnow)
    period: Dict[str, Optional[str]] = field(default_factory=dict)
    executive_summary: Dict[str, Any] = field(default_factory=dict)
    sectoral_impact: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    financial_projections: Dict[str, Any] = field(default_factory=dict)
    strategic_recommendations: List[Dict[str, str]] = field(default_factory=list)
    risk_analysis: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return to_jsonable(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MinisterReport":
        return cls(**{**data, "generated_at": parse_datetime(data["generated_at"])})


# =============================================================================
# CALCULATIONS
# =============================================================================

def risk_reduction(compliance_rate: float) -> float:
    current_risk = 100 - compliance_rate
    return (BASELINE_RISK - current_risk) / BASELINE_RISK * 100


def financial_projections(current_recovery: float, start: datetime) -> Dict[str, Any]:
    """Compound 8% monthly growth over three years; first 12 months itemized."""
    monthly_rows = []
    monthly_amounts = []
    for i in range(1, PROJECTION_MONTHS + 1):
        monthly = current_recovery * (1 + MONTHLY_GROWTH_RATE) ** (i - 1)
        monthly_amounts.append(monthly)
        if i <= SUMMARY_MONTHS:
            monthly_rows.append({
                "month": (start + relativedelta(months=i)).strftime("%b %Y"),
                "projected_recovery": monthly,
                "cumulative_recovery": fsum(monthly_amounts),
            })

    three_year = fsum(monthly_amounts)
    return {
        "current_recovery": current_recovery,
        "three_year_projection": three_year,
        "roi": (three_year - PROGRAMME_COST) / PROGRAMME_COST * 100,
        "break_even_point": BREAK_EVEN_POINT,
        "monthly_projections": monthly_rows,
    }


def sectoral_impact(execution: ExecutionResult) -> Dict[str, Dict[str, Any]]:
    """Per-sector figures from the execution's sectoral breakdown and its results."""
    results_by_sector = defaultdict(list)
    for result in execution.agent_results:
        results_by_sector[result.sector].append(result)

    impact = {}
    for sector, metrics in sorted(execution.ghana_metrics.sectoral_breakdown.items()):
        results = results_by_sector.get(sector, [])
        issues = Counter(f.finding_type for r in results for f in r.findings)
        impact[sector] = {
            "total_declarations": metrics.declarations,
            "violations_detected": metrics.violations,
            "recovery_amount": metrics.recovery,
            "compliance_rate": (
                (len(results) - metrics.violations) / len(results) * 100 if results else 0.0
            ),
            "risk_score": fsum(r.risk_score for r in results) / len(results) if results else 0.0,
            "key_issues": [finding_type for finding_type, _ in issues.most_common(3)],
            "recommendations": SECTOR_RECOMMENDATIONS.get(sector, GENERAL_RECOMMENDATIONS),
        }
    return impact


def risk_analysis(execution: ExecutionResult) -> Dict[str, Any]:
    metrics = execution.ghana_metrics
    top_sectors = sorted(
        metrics.sectoral_breakdown.items(), key=lambda item: item[1].violations, reverse=True
    )
    return {
        "high_risk_areas": [sector for sector, m in top_sectors if m.violations > 0][:3],
        "risk_distribution": dict(metrics.risk_distribution),
        "risk_trends": dict(metrics.violation_types),
        "mitigation_strategies": [
            "Enhanced document verification",
            "Real-time tracking and monitoring",
            "Inter-agency cooperation and intelligence sharing",
        ],
    }


# =============================================================================
# SERVICE
# =============================================================================

class MinisterReportService:
    """Generates and stores minister reports from stored executions."""

    def __init__(
        self,
        execution_store: Repository[ExecutionResult],
        report_store: Optional[Repository[MinisterReport]] = None,
    ):
        self.execution_store = execution_store
        self.report_store = report_store if report_store is not None else InMemoryRepository()

    def _completed_execution(self, case_id: str) -> ExecutionResult:
        for execution in self.execution_store.list():
            if execution.case_id == case_id and execution.status == ExecutionStatus.COMPLETED:
                return execution
        raise ReportGenerationError(f"No completed execution found for case {case_id}")

    def generate_minister_report(self, config: ReportConfig) -> MinisterReport:
        """
        Raises:
            ReportGenerationError: the case has no completed execution
        """
        execution = self._completed_execution(config.case_id)
        report_type = ReportType(config.report_type)
        metrics = execution.ghana_metrics
        now = datetime.utcnow()

        report = MinisterReport(
            case_id=config.case_id,
            execution_id=execution.execution_id,
            report_type=report_type.value,
            generated_at=now,
            period={"start": config.period_start, "end": config.period_end},
        )

        report.executive_summary = {
            "key_findings": [
                f"Audit detected {metrics.total_violations} violations across "
                f"{execution.processed_declarations} declarations",
                f"Estimated recovery of GHS {metrics.total_recovery_amount:,.0f} identified",
                f"Overall compliance rate at {metrics.compliance_rate:.1f}%",
                f"Throughput of {execution.performance_metrics.throughput:.1f} declarations per second",
            ],
            "total_recovery": metrics.total_recovery_amount,
            "compliance_rate": metrics.compliance_rate,
            "risk_reduction": risk_reduction(metrics.compliance_rate),
        }
        report.sectoral_impact = sectoral_impact(execution)
        report.risk_analysis = risk_analysis(execution)

        if config.include_projections:
            report.financial_projections = financial_projections(metrics.total_recovery_amount, now)
        if config.include_recommendations:
            report.strategic_recommendations = list(STRATEGIC_RECOMMENDATIONS)

        if report_type == ReportType.STRATEGIC_PLAN:
            report.strategic_recommendations = list(STRATEGIC_PLAN_ACTIONS)
        elif report_type == ReportType.FINANCIAL_PROJECTIONS:
            current = metrics.total_recovery_amount
            report.financial_projections = {
                **financial_projections(current, now),
                "cost_benefit_analysis": {
                    "implementation_cost": PROGRAMME_COST,
                    "operational_cost_annual": OPERATIONAL_COST_ANNUAL,
                    "projected_revenue_year_1": current * 12,
                    "projected_revenue_year_2": current * 18,
                    "projected_revenue_year_3": current * 24,
                },
                "sensitivity_analysis": {
                    "conservative": current * 24,
                    "realistic": current * 36,
                    "optimistic": current * 48,
                },
            }
        elif report_type == ReportType.DETAILED_ANALYSIS:
            report.risk_analysis["agent_performance"] = to_jsonable(execution.agent_performance)
            report.risk_analysis["top_violation_types"] = Counter(
                metrics.violation_types
            ).most_common(5)

        self.report_store.put(report.id, report)
        logger.info(f"Generated {report_type.value} report {report.id} for case {config.case_id}")
        return report

    def get_report(self, report_id: str) -> Optional[MinisterReport]:
        return self.report_store.get(report_id)

    def list_reports(self) -> List[MinisterReport]:
        return self.report_store.list()

    def get_reports_by_case(self, case_id: str) -> List[MinisterReport]:
        return [r for r in self.report_store.list() if r.case_id == case_id]

    def delete_report(self, report_id: str) -> bool:
        return self.report_store.delete(report_id)
