"""
Ghana PCA Engine - Petroleum ATG Agent

Volumetric shortfall detection for petroleum imports using Automated
Transfer Gauger (ATG) readings, plus petroleum tax and certificate checks.
Non-petroleum declarations exit early as "not applicable".
"""
from __future__ import annotations
from typing import Any, Dict, List, Optional

from ...models.ssot import AgentType, Declaration, Finding, FindingSeverity
from .base import BaseAgent, Check
from .constants import BASE_TAX_RATES, is_petroleum

PETROLEUM_DENSITY_KG_PER_LITRE = 0.85
WEIGHT_TOLERANCE = 0.10
ATG_VOLUME_TOLERANCE = 0.95
TAX_TOLERANCE = 0.05

EXCISE_RATES: Dict[str, float] = {
    "270900": 0.20,  # crude oil
    "271019": 0.15,  # other oils
    "271112": 0.10,  # propane
    "271119": 0.10,  # other LPG
}

PETROLEUM_TYPES: Dict[str, str] = {
    "270900": "Crude Petroleum Oil",
    "271019": "Other Oils",
    "271112": "Propane",
    "271119": "Other LPG",
    "271320": "Petroleum Bitumen",
}


def identify_petroleum_type(hs_code: str) -> str:
    for prefix, name in PETROLEUM_TYPES.items():
        if hs_code.startswith(prefix):
            return name
    return "Unknown Petroleum Product"


def excise_rate(hs_code: str) -> float:
    for prefix, rate in EXCISE_RATES.items():
        if hs_code.startswith(prefix):
            return rate
    return 0.0


def shortfall_litres(declaration: Declaration) -> Optional[float]:
    """Declared minus ATG-measured volume; None when it cannot be computed."""
    if declaration.atg_readings is None or not declaration.volume:
        return None
    return declaration.volume - declaration.atg_readings.final_volume


class PetroleumATGAgent(BaseAgent):
    agent_type = AgentType.PETROLEUM_ATG
    agent_number = 2
    agent_name = "Petroleum ATG Analyzer"

    def is_applicable(self, declaration: Declaration) -> bool:
        return is_petroleum(declaration.hs_code)

    def checks(self) -> List[Check]:
        return [
            Check("atg_not_applied", 30, self.check_atg_applied),
            Check("atg_certificate", 15, self.check_atg_certificate),
            Check("atg_shortfall", 15, self.check_atg_shortfall),
            Check("volume_weight", 20, self.check_volume_weight, flags_violation=False),
            Check("petroleum_taxes", 10, self.check_petroleum_taxes, flags_violation=False),
            Check("quality_certificate", 15, self.check_quality_certificate, flags_violation=False),
        ]

    @staticmethod
    def check_atg_applied(declaration: Declaration) -> List[Finding]:
        if declaration.atg_applicable:
            return []
        return [Finding(
            finding_type="atg-not-applied",
            description="ATG monitoring not applied to petroleum shipment",
            severity=FindingSeverity.HIGH,
            evidence=["HS Code indicates petroleum product", "ATG flag: false"],
            recommendation="Apply ATG monitoring for all petroleum imports",
        )]

    @staticmethod
    def check_atg_certificate(declaration: Declaration) -> List[Finding]:
        if not declaration.atg_applicable or declaration.atg_certificate:
            return []
        return [Finding(
            finding_type="missing-atg-certificate",
            description="ATG certificate not provided",
            severity=FindingSeverity.CRITICAL,
            evidence=["Petroleum product requires ATG certification"],
            recommendation="Require ATG certificate before clearance",
        )]

    @staticmethod
    def check_atg_shortfall(declaration: Declaration) -> List[Finding]:
        if not declaration.atg_applicable:
            return []
        shortfall = shortfall_litres(declaration)
        if shortfall is None:
            return []

        expected = declaration.volume
        actual = declaration.atg_readings.final_volume
        if actual >= expected * ATG_VOLUME_TOLERANCE:
            return []

        monetary = shortfall * declaration.value / expected
        return [Finding(
            finding_type="atg-shortfall",
            description=f"ATG shows {shortfall:.0f} liters shortfall (GHS {monetary:.2f})",
            severity=FindingSeverity.CRITICAL,
            evidence=[
                f"Expected: {expected:g} liters",
                f"ATG reading: {actual:g} liters",
                f"Shortfall: {shortfall:.0f} liters",
            ],
            recommendation="Investigate potential theft or diversion",
        )]

    @staticmethod
    def check_volume_weight(declaration: Declaration) -> List[Finding]:
        if not declaration.volume or not declaration.weight:
            return []

        expected_weight = declaration.volume * PETROLEUM_DENSITY_KG_PER_LITRE
        if abs(declaration.weight - expected_weight) <= expected_weight * WEIGHT_TOLERANCE:
            return []
        return [Finding(
            finding_type="volume-weight-discrepancy",
            description="Weight doesn't match volume for petroleum product",
            severity=FindingSeverity.HIGH,
            evidence=[
                f"Volume: {declaration.volume:g} liters",
                f"Expected weight: {expected_weight:.0f} kg",
                f"Declared weight: {declaration.weight:g} kg",
            ],
            recommendation="Verify measurements and investigate discrepancy",
        )]

    @staticmethod
    def check_petroleum_taxes(declaration: Declaration) -> List[Finding]:
        if declaration.taxes is None:
            return []

        expected_taxes = {line: declaration.value * rate for line, rate in BASE_TAX_RATES.items()}
        expected_taxes["excise"] = declaration.value * excise_rate(declaration.hs_code)

        findings = []
        for line, expected in expected_taxes.items():
            actual = declaration.taxes.get(line)
            if abs(actual - expected) <= expected * TAX_TOLERANCE:
                continue
            findings.append(Finding(
                finding_type="tax-discrepancy",
                description=f"{line.upper()} tax calculation incorrect",
                severity=FindingSeverity.MEDIUM,
                evidence=[f"Expected: GHS {expected:.2f}", f"Actual: GHS {actual:.2f}"],
                recommendation="Recalculate taxes and recover difference",
            ))
        return findings

    @staticmethod
    def check_quality_certificate(declaration: Declaration) -> List[Finding]:
        if declaration.quality_certificate:
            return []
        return [Finding(
            finding_type="missing-quality-certificate",
            description="Quality certificate not provided for petroleum product",
            severity=FindingSeverity.MEDIUM,
            evidence=["Petroleum products require quality certification"],
            recommendation="Request quality analysis certificate",
        )]

    def confidence(self, findings: List[Finding], risk_score: float) -> float:
        if risk_score > 70:
            return 0.96
        if risk_score > 40:
            return 0.88
        return 0.90

    def build_metadata(
        self, declaration: Declaration, findings: List[Finding], risk_score: float
    ) -> Dict[str, Any]:
        shortfall = shortfall_litres(declaration)
        estimated = 0.0
        if shortfall is not None and shortfall > 0:
            estimated = shortfall * declaration.value / declaration.volume
        return {
            "petroleum_type": identify_petroleum_type(declaration.hs_code),
            "atg_compliant": not any("atg" in f.finding_type for f in findings),
            "tax_compliant": not any(f.finding_type == "tax-discrepancy" for f in findings),
            "shortfall_litres": max(0.0, shortfall) if shortfall is not None else 0.0,
            "estimated_shortfall": estimated,
        }
