"""
Ghana PCA Engine - Agent Base

Every agent is a list of named checks folded into one AgentResult.
Each check returns zero or more Findings; its penalty is charged once
per finding and the total is capped at 100.

Agents are pure: no state is written between calls, and the input
Declaration is never modified.
"""
from __future__ import annotations
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional

from ...models.ssot import AgentResult, AgentType, Declaration, Finding

logger = logging.getLogger(__name__)

MAX_RISK_SCORE = 100


class MalformedDeclarationError(Exception):
    """Raised when a declaration cannot be analyzed at all (no identifier)."""
    pass


@dataclass(frozen=True)
class Check:
    """A named heuristic and the risk it adds per finding."""
    name: str
    penalty: float
    evaluate: Callable[[Declaration], List[Finding]]
    flags_violation: bool = True


class BaseAgent(ABC):
    """
    Base class for all violation-detection agents.

    Subclasses provide:
        agent_type: AgentType
        checks(): ordered list of Check entries
        confidence(): confidence for the folded result
        build_metadata(): agent-specific metadata (sector is added here)
    """

    agent_type: AgentType
    agent_number: int = 0
    agent_name: str = ""

    def __init__(self, agent_id: Optional[str] = None):
        self.agent_id = agent_id or f"{self.agent_type.value}-{self.agent_number:03d}"

    @abstractmethod
    def checks(self) -> List[Check]:
        ...

    def is_applicable(self, declaration: Declaration) -> bool:
        return True

    def confidence(self, findings: List[Finding], risk_score: float) -> float:
        return 1.0

    def build_metadata(
        self, declaration: Declaration, findings: List[Finding], risk_score: float
    ) -> Dict[str, Any]:
        return {}

    def analyze(self, declaration: Declaration) -> AgentResult:
        """
        Run every check against the declaration and fold the results.

        Raises:
            MalformedDeclarationError: declaration has no identifier
        """
        start = time.perf_counter()

        if not declaration.declaration_id:
            raise MalformedDeclarationError(
                f"{self.agent_type.value}: declaration has no identifier"
            )

        if not self.is_applicable(declaration):
            return self._result(
                declaration,
                has_violation=False,
                confidence=1.0,
                risk_score=0,
                findings=[],
                start=start,
                metadata={"note": "not applicable"},
            )

        findings: List[Finding] = []
        risk_score = 0.0
        has_violation = False

        for check in self.checks():
            hits = check.evaluate(declaration)
            if not hits:
                continue
            findings.extend(hits)
            risk_score += check.penalty * len(hits)
            if check.flags_violation:
                has_violation = True

        risk_score = min(MAX_RISK_SCORE, risk_score)

        return self._result(
            declaration,
            has_violation=has_violation,
            confidence=self.confidence(findings, risk_score),
            risk_score=risk_score,
            findings=findings,
            start=start,
            metadata=self.build_metadata(declaration, findings, risk_score),
        )

    def _result(
        self,
        declaration: Declaration,
        has_violation: bool,
        confidence: float,
        risk_score: float,
        findings: List[Finding],
        start: float,
        metadata: Dict[str, Any],
    ) -> AgentResult:
        metadata = {"sector": declaration.sector.value, **metadata}
        return AgentResult(
            agent_id=self.agent_id,
            agent_type=self.agent_type,
            declaration_id=declaration.declaration_id,
            has_violation=has_violation,
            confidence=confidence,
            risk_score=risk_score,
            findings=findings,
            processing_time=(time.perf_counter() - start) * 1000,
            metadata=metadata,
        )
