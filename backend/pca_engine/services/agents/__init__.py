"""Ghana PCA Engine - Violation-Detection Agents

Each agent turns one Declaration (SSOT #1) into one AgentResult (SSOT #2).
"""
from typing import Dict

from ...models.ssot import AgentType
from .base import BaseAgent, Check, MalformedDeclarationError
from .origin import EcowasOriginAgent
from .petroleum import PetroleumATGAgent
from .tax import TaxComplianceAgent, expected_taxes, total_tax_liability, tax_gap
from .payment import TSAReconciliationAgent


def default_agents() -> Dict[AgentType, BaseAgent]:
    """Build a fresh registry with one instance of every agent."""
    return {
        AgentType.ECOWAS_ORIGIN: EcowasOriginAgent(),
        AgentType.PETROLEUM_ATG: PetroleumATGAgent(),
        AgentType.TAX_COMPLIANCE: TaxComplianceAgent(),
        AgentType.TSA_RECONCILIATION: TSAReconciliationAgent(),
    }


__all__ = [
    "BaseAgent",
    "Check",
    "MalformedDeclarationError",
    "EcowasOriginAgent",
    "PetroleumATGAgent",
    "TaxComplianceAgent",
    "TSAReconciliationAgent",
    "default_agents",
    "expected_taxes",
    "total_tax_liability",
    "tax_gap",
]
