"""Ghana PCA Engine - Data Models"""
from .ssot import (
    # Enums
    DeclarationType, Sector, FindingSeverity, AgentType, ExecutionStatus,
    # Input
    ATGReading, TaxBreakdown, PaymentConfirmation, Declaration,
    # Agent output
    Finding, AgentResult,
    # Execution output
    AgentPerformance, SectorMetrics, GhanaMetrics, PerformanceMetrics,
    ExecutionError, ExecutionFailure, ExecutionResult,
    risk_band,
)
from .rule_pack import (
    RuleCategory, RuleRiskLevel, Rule, RuleCriteria, RulePack,
    SimulationResult, SectorPerformance,
)
from .evidence import (
    EvidenceDocumentType, IssueType, EvidenceDocument, ValidationIssue,
    GhanaDocumentCompliance, DocumentValidation, EvidencePackage,
)

__all__ = [
    "DeclarationType", "Sector", "FindingSeverity", "AgentType", "ExecutionStatus",
    "ATGReading", "TaxBreakdown", "PaymentConfirmation", "Declaration",
    "Finding", "AgentResult",
    "AgentPerformance", "SectorMetrics", "GhanaMetrics", "PerformanceMetrics",
    "ExecutionError", "ExecutionFailure", "ExecutionResult",
    "risk_band",
    "RuleCategory", "RuleRiskLevel", "Rule", "RuleCriteria", "RulePack",
    "SimulationResult", "SectorPerformance",
    "EvidenceDocumentType", "IssueType", "EvidenceDocument", "ValidationIssue",
    "GhanaDocumentCompliance", "DocumentValidation", "EvidencePackage",
]
