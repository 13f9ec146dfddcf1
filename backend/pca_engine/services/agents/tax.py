"""
Ghana PCA Engine - Tax Compliance Agent

Recomputes statutory taxes (VAT, GETFund, NHIL, COVID levy, import duty)
and validates TIN, exemption claims and payment status. Deterministic
arithmetic, so confidence is always 1.0.
"""
from __future__ import annotations
import re
from typing import Any, Dict, List

from ...models.ssot import AgentType, Declaration, Finding, FindingSeverity
from .base import BaseAgent, Check
from .constants import (
    BASE_TAX_RATES, COVID_LEVY_RATE, GET_FUND_RATE, IMPORT_DUTY_RATE, NHIL_RATE, VAT_RATE,
)

TIN_PATTERN = re.compile(r"^TIN\d{7,10}$")
TAX_TOLERANCE = 0.02
HIGH_SEVERITY_DIFFERENCE = 0.10
HIGH_VALUE_THRESHOLD = 100000

VALID_EXEMPTIONS = frozenset({
    "diplomatic",
    "un-agency",
    "government",
    "educational",
    "religious",
    "charitable",
})


def expected_taxes(declaration: Declaration) -> Dict[str, float]:
    """Statutory tax lines owed on the declared value."""
    taxes = {line: declaration.value * rate for line, rate in BASE_TAX_RATES.items()}
    taxes["import_duty"] = 0.0 if declaration.ecowas_origin else declaration.value * IMPORT_DUTY_RATE
    return taxes


def total_tax_liability(declaration: Declaration) -> float:
    """VAT + GETFund + NHIL + COVID levy, plus import duty for non-ECOWAS goods."""
    base = declaration.value * (VAT_RATE + GET_FUND_RATE + NHIL_RATE + COVID_LEVY_RATE)
    if declaration.ecowas_origin:
        return base
    return base + declaration.value * IMPORT_DUTY_RATE


def tax_gap(declaration: Declaration) -> float:
    expected = total_tax_liability(declaration)
    if declaration.taxes is None:
        return expected
    return max(0.0, expected - declaration.taxes.total)


class TaxComplianceAgent(BaseAgent):
    agent_type = AgentType.TAX_COMPLIANCE
    agent_number = 3
    agent_name = "Ghana Tax Compliance Agent"

    def checks(self) -> List[Check]:
        return [
            Check("tax_lines", 12, self.check_tax_lines),
            Check("tin", 15, self.check_tin),
            Check("exemptions", 20, self.check_exemptions),
            Check("payment", 10, self.check_payment),
        ]

    @staticmethod
    def check_tax_lines(declaration: Declaration) -> List[Finding]:
        if declaration.taxes is None:
            return [Finding(
                finding_type="missing-tax-breakdown",
                description="Tax breakdown not provided",
                severity=FindingSeverity.CRITICAL,
                evidence=["No tax information found in declaration"],
                recommendation="Require complete tax calculation breakdown",
            )]

        findings = []
        for line, expected in expected_taxes(declaration).items():
            actual = declaration.taxes.get(line)
            difference = abs(actual - expected)
            if difference <= expected * TAX_TOLERANCE:
                continue
            severity = (
                FindingSeverity.HIGH if difference > expected * HIGH_SEVERITY_DIFFERENCE
                else FindingSeverity.MEDIUM
            )
            findings.append(Finding(
                finding_type="tax-calculation-error",
                description=f"{line.upper()} calculation error of GHS {difference:.2f}",
                severity=severity,
                evidence=[
                    f"Expected: GHS {expected:.2f}",
                    f"Declared: GHS {actual:.2f}",
                    f"Difference: GHS {difference:.2f}",
                ],
                recommendation="Recalculate tax and recover difference",
            ))
        return findings

    @staticmethod
    def check_tin(declaration: Declaration) -> List[Finding]:
        if not declaration.declarant_tin:
            return [Finding(
                finding_type="missing-tin",
                description="Declarant TIN not provided",
                severity=FindingSeverity.CRITICAL,
                evidence=["TIN is required for all customs declarations"],
                recommendation="Require valid TIN before processing",
            )]
        if TIN_PATTERN.match(declaration.declarant_tin):
            return []
        return [Finding(
            finding_type="invalid-tin-format",
            description="TIN format is invalid",
            severity=FindingSeverity.HIGH,
            evidence=[f"Provided TIN: {declaration.declarant_tin}"],
            recommendation="TIN must be in format: TIN followed by 7-10 digits",
        )]

    @staticmethod
    def check_exemptions(declaration: Declaration) -> List[Finding]:
        return [
            Finding(
                finding_type="invalid-exemption",
                description=f"Invalid exemption claim: {exemption}",
                severity=FindingSeverity.HIGH,
                evidence=[f"Claimed exemption: {exemption}"],
                recommendation="Verify exemption eligibility and documentation",
            )
            for exemption in declaration.exemptions
            if exemption not in VALID_EXEMPTIONS
        ]

    @staticmethod
    def check_payment(declaration: Declaration) -> List[Finding]:
        if declaration.value <= HIGH_VALUE_THRESHOLD or declaration.payment_status == "paid":
            return []
        return [Finding(
            finding_type="unpaid-high-value",
            description="High-value shipment with unpaid taxes",
            severity=FindingSeverity.HIGH,
            evidence=[
                f"Value: GHS {declaration.value:.2f}",
                f"Payment status: {declaration.payment_status}",
            ],
            recommendation="Require payment confirmation before clearance",
        )]

    def build_metadata(
        self, declaration: Declaration, findings: List[Finding], risk_score: float
    ) -> Dict[str, Any]:
        gap = tax_gap(declaration)
        return {
            "total_tax_liability": total_tax_liability(declaration),
            "tax_gap": gap,
            "recovery_amount": gap,
            "compliance_score": max(0, 100 - risk_score),
        }
