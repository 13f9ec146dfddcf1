"""
Ghana PCA Engine - TSA Payment Reconciliation Agent

Reconciles declared payments against the Treasury Single Account (TSA).
The orchestrator only selects this agent for declarations above the
minimum value; the agent itself does not filter.
"""
from __future__ import annotations
import re
from typing import Any, Dict, List

from ...models.ssot import AgentType, Declaration, Finding, FindingSeverity
from .base import BaseAgent, Check
from .tax import total_tax_liability

TSA_REFERENCE_PATTERN = re.compile(r"^TSA\d{12}$")
PAYMENT_TOLERANCE = 0.01
OFFICIAL_EXCHANGE_RATE = 12.5
EXCHANGE_RATE_TOLERANCE = 0.02
LOCAL_CURRENCY = "GHS"


def tsa_status(declaration: Declaration) -> str:
    if not declaration.tsa_reference:
        return "not-initiated"
    if declaration.payment_confirmation is None:
        return "pending"
    if declaration.payment_confirmation.verified:
        return "verified"
    return "unverified"


class TSAReconciliationAgent(BaseAgent):
    agent_type = AgentType.TSA_RECONCILIATION
    agent_number = 4
    agent_name = "TSA Payment Reconciliation Agent"

    def checks(self) -> List[Check]:
        return [
            Check("tsa_reference", 25, self.check_tsa_reference),
            Check("payment_amount", 15, self.check_payment_amount),
            Check("exchange_rate", 10, self.check_exchange_rate),
        ]

    @staticmethod
    def check_tsa_reference(declaration: Declaration) -> List[Finding]:
        if not declaration.tsa_reference:
            return [Finding(
                finding_type="missing-tsa-reference",
                description="TSA payment reference not found",
                severity=FindingSeverity.CRITICAL,
                evidence=["All payments must be processed through TSA"],
                recommendation="Generate TSA reference and process payment",
            )]
        if TSA_REFERENCE_PATTERN.match(declaration.tsa_reference):
            return []
        return [Finding(
            finding_type="invalid-tsa-reference",
            description="TSA reference format is invalid",
            severity=FindingSeverity.HIGH,
            evidence=[f"Reference: {declaration.tsa_reference}"],
            recommendation="Verify TSA reference with Bank of Ghana",
        )]

    @staticmethod
    def check_payment_amount(declaration: Declaration) -> List[Finding]:
        if declaration.payment_confirmation is None:
            return []

        expected = total_tax_liability(declaration)
        paid = declaration.payment_confirmation.amount
        if abs(paid - expected) <= expected * PAYMENT_TOLERANCE:
            return []
        return [Finding(
            finding_type="payment-mismatch",
            description="Payment amount doesn't match tax liability",
            severity=FindingSeverity.HIGH,
            evidence=[f"Expected: GHS {expected:.2f}", f"Paid: GHS {paid:.2f}"],
            recommendation="Investigate payment discrepancy",
        )]

    @staticmethod
    def check_exchange_rate(declaration: Declaration) -> List[Finding]:
        if declaration.currency == LOCAL_CURRENCY or not declaration.exchange_rate:
            return []

        tolerance = OFFICIAL_EXCHANGE_RATE * EXCHANGE_RATE_TOLERANCE
        if abs(declaration.exchange_rate - OFFICIAL_EXCHANGE_RATE) <= tolerance:
            return []
        return [Finding(
            finding_type="exchange-rate-discrepancy",
            description="Exchange rate differs from official rate",
            severity=FindingSeverity.MEDIUM,
            evidence=[
                f"Official rate: {OFFICIAL_EXCHANGE_RATE}",
                f"Used rate: {declaration.exchange_rate}",
            ],
            recommendation="Use Bank of Ghana official exchange rate",
        )]

    def build_metadata(
        self, declaration: Declaration, findings: List[Finding], risk_score: float
    ) -> Dict[str, Any]:
        confirmation = declaration.payment_confirmation
        return {
            "tsa_status": tsa_status(declaration),
            "reconciled_amount": confirmation.amount if confirmation else 0.0,
            "payment_method": declaration.payment_method,
        }
