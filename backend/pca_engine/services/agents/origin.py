"""
Ghana PCA Engine - ECOWAS Origin Verification Agent

Detects false ECOWAS origin claims, route diversion, and under-valued
preferential shipments.
"""
from __future__ import annotations
from typing import Any, Dict, List

from ...models.ssot import AgentType, Declaration, Finding, FindingSeverity
from .base import BaseAgent, Check
from .constants import ECOWAS_COUNTRIES

# Cotton, cotton waste, men's suits, women's suits, footwear
HIGH_RISK_HS_PREFIXES = ("5201", "5203", "6203", "6204", "6403")

MARKET_VALUE_MULTIPLIERS: Dict[str, float] = {
    "5201": 1.3,
    "5203": 1.4,
    "6203": 1.5,
    "6204": 1.5,
    "6403": 1.6,
}

UNDERVALUATION_RATIO = 0.8
TRANSSHIPMENT_HUBS = ("AE",)


class EcowasOriginAgent(BaseAgent):
    agent_type = AgentType.ECOWAS_ORIGIN
    agent_number = 1
    agent_name = "ECOWAS Origin Verification Agent"

    def checks(self) -> List[Check]:
        return [
            Check("origin_fraud", 40, self.check_origin_country),
            Check("suspicious_pattern", 25, self.check_suspicious_patterns),
            Check("under_valuation", 20, self.check_under_valuation),
            Check("certificate_of_origin", 10, self.check_certificate_of_origin, flags_violation=False),
        ]

    @staticmethod
    def check_origin_country(declaration: Declaration) -> List[Finding]:
        if not declaration.ecowas_origin or declaration.origin_country in ECOWAS_COUNTRIES:
            return []
        return [Finding(
            finding_type="origin-fraud",
            description=f"Non-ECOWAS country {declaration.origin_country} claimed as ECOWAS origin",
            severity=FindingSeverity.CRITICAL,
            evidence=[
                f"Origin country: {declaration.origin_country}",
                f"ECOWAS claim: {declaration.ecowas_origin}",
            ],
            recommendation="Verify certificate of origin and apply appropriate duties",
        )]

    @staticmethod
    def check_suspicious_patterns(declaration: Declaration) -> List[Finding]:
        if not declaration.ecowas_origin:
            return []
        if not declaration.hs_code.startswith(HIGH_RISK_HS_PREFIXES):
            return []

        findings = []
        if declaration.origin_country == "CN" and declaration.destination_country == "GH":
            findings.append(Finding(
                finding_type="suspicious-pattern",
                description="China to Ghana shipment claiming ECOWAS origin - possible route diversion",
                severity=FindingSeverity.HIGH,
                evidence=["Origin: China", "Destination: Ghana", "ECOWAS claim: true"],
                recommendation="Enhanced verification required for this shipment",
            ))

        hubs = [c for c in declaration.transit_countries if c in TRANSSHIPMENT_HUBS]
        if hubs:
            findings.append(Finding(
                finding_type="suspicious-pattern",
                description=f"Transshipment through {', '.join(hubs)} with ECOWAS origin claim",
                severity=FindingSeverity.HIGH,
                evidence=[f"Transit: {', '.join(hubs)}", "ECOWAS claim: true"],
                recommendation="Enhanced verification required for this shipment",
            ))
        return findings

    @staticmethod
    def check_under_valuation(declaration: Declaration) -> List[Finding]:
        if not declaration.ecowas_origin or not declaration.value:
            return []

        for prefix, multiplier in MARKET_VALUE_MULTIPLIERS.items():
            if not declaration.hs_code.startswith(prefix):
                continue
            market_value = declaration.value * multiplier
            if declaration.value < market_value * UNDERVALUATION_RATIO:
                return [Finding(
                    finding_type="under-valuation",
                    description="ECOWAS shipment appears to be under-valued",
                    severity=FindingSeverity.MEDIUM,
                    evidence=[
                        f"Declared value: {declaration.value:.2f}",
                        f"Market value range: {declaration.value * 1.2:.2f} - {declaration.value * 1.5:.2f}",
                    ],
                    recommendation="Request supporting documentation for value verification",
                )]
            return []
        return []

    @staticmethod
    def check_certificate_of_origin(declaration: Declaration) -> List[Finding]:
        if not declaration.ecowas_origin or "certificate-of-origin" in declaration.documents:
            return []
        return [Finding(
            finding_type="missing-document",
            description="Certificate of origin not found for ECOWAS claim",
            severity=FindingSeverity.HIGH,
            evidence=["ECOWAS origin claim without supporting certificate"],
            recommendation="Request valid certificate of origin",
        )]

    def confidence(self, findings: List[Finding], risk_score: float) -> float:
        if any(f.severity == FindingSeverity.CRITICAL for f in findings):
            return 0.95
        return 0.85

    def build_metadata(
        self, declaration: Declaration, findings: List[Finding], risk_score: float
    ) -> Dict[str, Any]:
        violating = {"origin-fraud", "suspicious-pattern", "under-valuation"}
        return {
            "ecowas_compliance": not any(f.finding_type in violating for f in findings),
            "verified_origin": declaration.origin_country,
            "risk_factors": [f.finding_type for f in findings],
        }
