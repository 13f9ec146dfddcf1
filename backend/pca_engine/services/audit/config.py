"""
Ghana PCA Engine - Audit Execution Configuration

Scope, target filters, per-agent enable flags and execution options for
one audit run. validate() rejects a bad configuration before any
declaration is touched.
"""
from __future__ import annotations
from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple

from dateutil.parser import isoparse

from ...models.ssot import AgentType
from .errors import AuditConfigurationError

STAGE = "configuration"


class AuditScope(str, Enum):
    ALL = "all"
    HS_CODES = "hs-codes"
    SHIPMENTS = "shipments"
    DECLARATIONS = "declarations"


# Scope -> TargetFilters attribute that must be present
SCOPE_REQUIRED_FILTER = {
    AuditScope.HS_CODES: "hs_codes",
    AuditScope.SHIPMENTS: "shipment_ids",
    AuditScope.DECLARATIONS: "declaration_ids",
}


@dataclass
class DateRange:
    start: str
    end: str

    def parse(self) -> Tuple[date, date]:
        """Parse both bounds; raises ValueError for unparseable dates."""
        return isoparse(self.start).date(), isoparse(self.end).date()


@dataclass
class TargetFilters:
    hs_codes: Optional[List[str]] = None
    shipment_ids: Optional[List[str]] = None
    declaration_ids: Optional[List[str]] = None
    date_range: Optional[DateRange] = None
    countries: Optional[List[str]] = None
    risk_threshold: Optional[float] = None
    sectors: Optional[List[str]] = None


@dataclass
class AgentConfig:
    enable_ecowas_agent: bool = True
    enable_petroleum_agent: bool = True
    enable_tax_agent: bool = True
    enable_tsa_agent: bool = True

    def is_enabled(self, agent_type: AgentType) -> bool:
        return {
            AgentType.ECOWAS_ORIGIN: self.enable_ecowas_agent,
            AgentType.PETROLEUM_ATG: self.enable_petroleum_agent,
            AgentType.TAX_COMPLIANCE: self.enable_tax_agent,
            AgentType.TSA_RECONCILIATION: self.enable_tsa_agent,
        }.get(agent_type, False)


@dataclass
class ExecutionOptions:
    parallel: bool = True
    max_concurrency: int = 10
    timeout_ms: int = 30000


@dataclass
class AuditExecutionConfig:
    case_id: str
    scope: str = AuditScope.ALL.value
    target_filters: TargetFilters = field(default_factory=TargetFilters)
    agent_config: AgentConfig = field(default_factory=AgentConfig)
    execution_options: ExecutionOptions = field(default_factory=ExecutionOptions)

    def validate(self) -> AuditScope:
        """
        Check the configuration and return the parsed scope.

        Raises:
            AuditConfigurationError: on any invalid setting
        """
        if not self.case_id:
            raise AuditConfigurationError(STAGE, "case_id is required")

        try:
            scope = AuditScope(self.scope)
        except ValueError:
            raise AuditConfigurationError(STAGE, f"Unknown scope: {self.scope}")

        required = SCOPE_REQUIRED_FILTER.get(scope)
        if required and not getattr(self.target_filters, required):
            raise AuditConfigurationError(
                STAGE, f"Scope '{scope.value}' requires target_filters.{required}"
            )

        date_range = self.target_filters.date_range
        if date_range is not None:
            try:
                start, end = date_range.parse()
            except (ValueError, TypeError) as e:
                raise AuditConfigurationError(STAGE, f"Invalid date range: {e}")
            if start > end:
                raise AuditConfigurationError(
                    STAGE, f"Date range start {date_range.start} is after end {date_range.end}"
                )

        options = self.execution_options
        if options.max_concurrency < 1:
            raise AuditConfigurationError(STAGE, "max_concurrency must be at least 1")
        if options.timeout_ms <= 0:
            raise AuditConfigurationError(STAGE, "timeout_ms must be positive")

        return scope

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AuditExecutionConfig":
        filters = dict(data.get("target_filters") or {})
        if filters.get("date_range"):
            filters["date_range"] = DateRange(**filters["date_range"])
        return cls(
            case_id=data.get("case_id", ""),
            scope=data.get("scope", AuditScope.ALL.value),
            target_filters=TargetFilters(**filters),
            agent_config=AgentConfig(**(data.get("agent_config") or {})),
            execution_options=ExecutionOptions(**(data.get("execution_options") or {})),
        )
