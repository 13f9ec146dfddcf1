"""
Ghana PCA Engine - Single Source of Truth Models

These models are the ONLY data structures passed between the agents,
the audit orchestrator and the reporting layer.

- Declaration (SSOT #1): read-only input, never mutated by the engine
- AgentResult / Finding (SSOT #2): output of one agent on one declaration
- ExecutionResult (SSOT #3): output of one audit run, owned by the orchestrator
"""

from __future__ import annotations
from dataclasses import dataclass, field, fields, is_dataclass
from datetime import date, datetime
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple
from uuid import uuid4

from dateutil.parser import isoparse


# =============================================================================
# ENUMS
# =============================================================================

class DeclarationType(str, Enum):
    IMPORT = "import"
    EXPORT = "export"
    TRANSIT = "transit"


class Sector(str, Enum):
    PETROLEUM = "petroleum"
    TEXTILES = "textiles"
    VEHICLES = "vehicles"
    OTHER = "other"


class FindingSeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class AgentType(str, Enum):
    ECOWAS_ORIGIN = "ecowas-origin"
    PETROLEUM_ATG = "petroleum-atg"
    TAX_COMPLIANCE = "tax-compliance"
    TSA_RECONCILIATION = "tsa-reconciliation"


class ExecutionStatus(str, Enum):
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    CANCELLED = "cancelled"


# Buckets for the numeric 0-100 risk score (not the finding severity enum)
RISK_BANDS: Tuple[Tuple[str, float], ...] = (
    ("critical", 80),
    ("high", 60),
    ("medium", 40),
)


def risk_band(score: float) -> str:
    """Bucket a numeric risk score into critical/high/medium/low."""
    for band, floor in RISK_BANDS:
        if score >= floor:
            return band
    return "low"


# =============================================================================
# SERIALIZATION HELPERS
# =============================================================================

def to_jsonable(value: Any) -> Any:
    """Convert dataclasses/enums/dates into plain JSON-compatible values."""
    if is_dataclass(value) and not isinstance(value, type):
        return {f.name: to_jsonable(getattr(value, f.name)) for f in fields(value)}
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, dict):
        return {str(to_jsonable(k)): to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [to_jsonable(v) for v in value]
    return value


def pick(data: Dict[str, Any], *keys: str, default: Any = None) -> Any:
    """Return the first present key (dataset JSON is camelCase, API is snake_case)."""
    for key in keys:
        if key in data and data[key] is not None:
            return data[key]
    return default


def _parse_date(value: Any) -> Optional[date]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    return isoparse(str(value)).date()


def parse_datetime(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    return isoparse(str(value))


def _optional_float(value: Any) -> Optional[float]:
    return None if value is None else float(value)


def _as_tuple(value: Any) -> tuple:
    """A single string is one entry, not a sequence of characters."""
    if value is None:
        return ()
    if isinstance(value, str):
        return (value,)
    return tuple(value)


def _label(violation: Any) -> str:
    if isinstance(violation, dict):
        return str(violation.get("type", ""))
    return str(violation)


DATASET_LEVY_KEYS = ("getFundLevy", "nhilLevy", "covidLevy", "vatRate")


# =============================================================================
# SSOT #1: DECLARATION
# =============================================================================

@dataclass(frozen=True)
class ATGReading:
    """Automated Transfer Gauger reading for a petroleum discharge."""
    final_volume: float


@dataclass(frozen=True)
class TaxBreakdown:
    """Taxes as stated by the declarant (GHS)."""
    vat: float = 0.0
    get_fund: float = 0.0
    nhil: float = 0.0
    covid: float = 0.0
    import_duty: float = 0.0
    excise: float = 0.0

    def get(self, tax_line: str) -> float:
        return getattr(self, tax_line, 0.0) or 0.0

    @property
    def total(self) -> float:
        return self.vat + self.get_fund + self.nhil + self.covid + self.import_duty + self.excise

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TaxBreakdown":
        return cls(
            vat=float(pick(data, "vat", default=0.0)),
            get_fund=float(pick(data, "get_fund", "getFund", default=0.0)),
            nhil=float(pick(data, "nhil", default=0.0)),
            covid=float(pick(data, "covid", default=0.0)),
            import_duty=float(pick(data, "import_duty", "importDuty", "customsDuty", default=0.0)),
            excise=float(pick(data, "excise", default=0.0)),
        )


@dataclass(frozen=True)
class PaymentConfirmation:
    """Payment confirmation received through the TSA channel."""
    amount: float
    verified: bool = False


@dataclass(frozen=True)
class Declaration:
    """
    SSOT #1: A customs filing.

    Read-only for the lifetime of an audit execution. Agents produce
    separate AgentResult records referencing declaration_id.
    """
    declaration_id: str
    hs_code: str
    value: float
    origin_country: str = ""
    destination_country: str = "GH"
    declaration_type: DeclarationType = DeclarationType.IMPORT
    description: str = ""
    currency: str = "GHS"
    weight: Optional[float] = None
    volume: Optional[float] = None
    declarant_tin: Optional[str] = None
    port_of_entry: str = ""
    declaration_date: Optional[date] = None
    sector: Sector = Sector.OTHER
    ecowas_origin: bool = False

    # Petroleum
    atg_applicable: Optional[bool] = None
    atg_readings: Optional[ATGReading] = None
    atg_certificate: Optional[str] = None
    quality_certificate: Optional[str] = None

    # Tax and payment
    taxes: Optional[TaxBreakdown] = None
    exemptions: Tuple[str, ...] = ()
    payment_status: Optional[str] = None
    payment_method: Optional[str] = None
    tsa_reference: Optional[str] = None
    payment_confirmation: Optional[PaymentConfirmation] = None
    exchange_rate: Optional[float] = None

    # Routing and documents
    shipment_id: Optional[str] = None
    transit_countries: Tuple[str, ...] = ()
    documents: Tuple[str, ...] = ()

    # Pre-assessed risk used by the scope filter
    risk_score: float = 0.0

    # Ground-truth violation labels (training datasets only)
    labels: Tuple[str, ...] = ()

    def to_dict(self) -> Dict[str, Any]:
        return to_jsonable(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Declaration":
        """Build a Declaration from API (snake_case) or dataset (camelCase) JSON."""
        readings = pick(data, "atg_readings", "atgReadings")
        taxes = pick(data, "taxes")
        confirmation = pick(data, "payment_confirmation", "paymentConfirmation")
        labels = _as_tuple(pick(data, "labels"))
        if not labels and pick(data, "violations"):
            labels = tuple(_label(v) for v in _as_tuple(data["violations"]))

        value = float(pick(data, "value", default=0.0))
        if taxes:
            breakdown = TaxBreakdown.from_dict(taxes)
        elif any(pick(data, key) is not None for key in DATASET_LEVY_KEYS):
            # Dataset records carry the levies at top level and VAT as a percentage
            breakdown = TaxBreakdown(
                vat=value * float(pick(data, "vatRate", default=0.0)) / 100,
                get_fund=float(pick(data, "getFundLevy", default=0.0)),
                nhil=float(pick(data, "nhilLevy", default=0.0)),
                covid=float(pick(data, "covidLevy", default=0.0)),
            )
        else:
            breakdown = None

        sector = pick(data, "sector", default=Sector.OTHER.value)
        try:
            sector = Sector(sector)
        except ValueError:
            sector = Sector.OTHER

        return cls(
            declaration_id=str(pick(data, "declaration_id", "declarationId", "id", default="")),
            hs_code=str(pick(data, "hs_code", "hsCode", default="")),
            value=value,
            origin_country=pick(data, "origin_country", "originCountry", default=""),
            destination_country=pick(data, "destination_country", "destinationCountry", default="GH"),
            declaration_type=DeclarationType(pick(data, "declaration_type", "type", default="import")),
            description=pick(data, "description", default=""),
            currency=pick(data, "currency", default="GHS"),
            weight=_optional_float(pick(data, "weight")),
            volume=_optional_float(pick(data, "volume")),
            declarant_tin=pick(data, "declarant_tin", "declarantTin"),
            port_of_entry=pick(data, "port_of_entry", "portOfEntry", default=""),
            declaration_date=_parse_date(pick(data, "declaration_date", "date")),
            sector=sector,
            ecowas_origin=bool(pick(data, "ecowas_origin", "ecowasOrigin", default=False)),
            atg_applicable=pick(data, "atg_applicable", "atgApplicable"),
            atg_readings=(
                ATGReading(final_volume=float(pick(readings, "final_volume", "finalVolume")))
                if readings else None
            ),
            atg_certificate=pick(data, "atg_certificate", "atgCertificate"),
            quality_certificate=pick(data, "quality_certificate", "qualityCertificate"),
            taxes=breakdown,
            exemptions=_as_tuple(pick(data, "exemptions")),
            payment_status=pick(data, "payment_status", "paymentStatus"),
            payment_method=pick(data, "payment_method", "paymentMethod"),
            tsa_reference=pick(data, "tsa_reference", "tsaReference"),
            payment_confirmation=(
                PaymentConfirmation(
                    amount=float(confirmation.get("amount", 0.0)),
                    verified=bool(confirmation.get("verified", False)),
                )
                if confirmation else None
            ),
            exchange_rate=_optional_float(pick(data, "exchange_rate", "exchangeRate")),
            shipment_id=pick(data, "shipment_id", "shipmentId"),
            transit_countries=_as_tuple(pick(data, "transit_countries", "transitCountries")),
            documents=_as_tuple(pick(data, "documents")),
            risk_score=float(pick(data, "risk_score", "riskScore", default=0.0)),
            labels=labels,
        )


# =============================================================================
# SSOT #2: AGENT OUTPUT
# =============================================================================

@dataclass(frozen=True)
class Finding:
    """One specific, evidence-backed issue surfaced by an agent."""
    finding_type: str
    description: str
    severity: FindingSeverity
    evidence: List[str] = field(default_factory=list)
    recommendation: str = ""

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Finding":
        return cls(
            finding_type=data["finding_type"],
            description=data.get("description", ""),
            severity=FindingSeverity(data["severity"]),
            evidence=list(data.get("evidence", [])),
            recommendation=data.get("recommendation", ""),
        )


@dataclass(frozen=True)
class AgentResult:
    """
    SSOT #2: Output of one agent run against one declaration.

    Created once per (agent, declaration) pair per execution.
    """
    agent_id: str
    agent_type: AgentType
    declaration_id: str
    has_violation: bool
    confidence: float
    risk_score: float
    findings: List[Finding] = field(default_factory=list)
    processing_time: float = 0.0  # milliseconds
    metadata: Dict[str, Any] = field(default_factory=dict)

    @property
    def sector(self) -> str:
        return self.metadata.get("sector") or "unknown"

    @property
    def recovery_estimate(self) -> float:
        """recovery_amount, falling back to estimated_shortfall, else 0."""
        recovery = self.metadata.get("recovery_amount")
        if recovery is None:
            recovery = self.metadata.get("estimated_shortfall")
        return float(recovery or 0.0)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "AgentResult":
        return cls(
            agent_id=data["agent_id"],
            agent_type=AgentType(data["agent_type"]),
            declaration_id=data["declaration_id"],
            has_violation=data["has_violation"],
            confidence=data["confidence"],
            risk_score=data["risk_score"],
            findings=[Finding.from_dict(f) for f in data.get("findings", [])],
            processing_time=data.get("processing_time", 0.0),
            metadata=dict(data.get("metadata", {})),
        )


# =============================================================================
# SSOT #3: EXECUTION RESULT (Output of Audit Orchestrator)
# =============================================================================

@dataclass
class AgentPerformance:
    total_processed: int = 0
    violations_detected: int = 0
    average_confidence: float = 0.0
    average_processing_time: float = 0.0
    accuracy: float = 0.0


@dataclass
class SectorMetrics:
    violations: int = 0
    recovery: float = 0.0
    declarations: int = 0


def _empty_risk_distribution() -> Dict[str, int]:
    return {"low": 0, "medium": 0, "high": 0, "critical": 0}


@dataclass
class GhanaMetrics:
    total_violations: int = 0
    total_recovery_amount: float = 0.0
    sectoral_breakdown: Dict[str, SectorMetrics] = field(default_factory=dict)
    violation_types: Dict[str, int] = field(default_factory=dict)
    risk_distribution: Dict[str, int] = field(default_factory=_empty_risk_distribution)
    compliance_rate: float = 0.0


@dataclass
class PerformanceMetrics:
    total_execution_time: float = 0.0  # milliseconds
    average_processing_time: float = 0.0
    throughput: float = 0.0  # declarations per second
    error_rate: float = 0.0


@dataclass
class ExecutionError:
    """Per-declaration failure recorded in the execution's error log."""
    declaration_id: str
    agent_type: str
    error: str
    timestamp: datetime = field(default_factory=datetime.utcnow)


@dataclass
class ExecutionFailure:
    """Execution-level failure: the stage that broke and why."""
    stage: str
    message: str


@dataclass
class ExecutionResult:
    """
    SSOT #3: One audit run.

    Mutated only by the orchestrator that owns it; frozen once terminal.
    Invariant: processed_declarations + failed_declarations <= total_declarations.
    """
    case_id: str
    execution_id: str = field(default_factory=lambda: f"exec-{uuid4().hex[:12]}")
    status: ExecutionStatus = ExecutionStatus.RUNNING
    start_time: datetime = field(default_factory=datetime.utcnow)
    end_time: Optional[datetime] = None

    total_declarations: int = 0
    processed_declarations: int = 0
    failed_declarations: int = 0

    agent_results: List[AgentResult] = field(default_factory=list)
    agent_performance: Dict[str, AgentPerformance] = field(default_factory=dict)
    ghana_metrics: GhanaMetrics = field(default_factory=GhanaMetrics)
    performance_metrics: PerformanceMetrics = field(default_factory=PerformanceMetrics)
    errors: List[ExecutionError] = field(default_factory=list)
    failure: Optional[ExecutionFailure] = None

    @property
    def is_terminal(self) -> bool:
        return self.status != ExecutionStatus.RUNNING

    def to_dict(self) -> Dict[str, Any]:
        return to_jsonable(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ExecutionResult":
        metrics = data.get("ghana_metrics", {})
        failure = data.get("failure")
        return cls(
            execution_id=data["execution_id"],
            case_id=data["case_id"],
            status=ExecutionStatus(data["status"]),
            start_time=parse_datetime(data["start_time"]),
            end_time=parse_datetime(data.get("end_time")),
            total_declarations=data.get("total_declarations", 0),
            processed_declarations=data.get("processed_declarations", 0),
            failed_declarations=data.get("failed_declarations", 0),
            agent_results=[AgentResult.from_dict(r) for r in data.get("agent_results", [])],
            agent_performance={
                k: AgentPerformance(**v) for k, v in data.get("agent_performance", {}).items()
            },
            ghana_metrics=GhanaMetrics(
                total_violations=metrics.get("total_violations", 0),
                total_recovery_amount=metrics.get("total_recovery_amount", 0.0),
                sectoral_breakdown={
                    k: SectorMetrics(**v) for k, v in metrics.get("sectoral_breakdown", {}).items()
                },
                violation_types=dict(metrics.get("violation_types", {})),
                risk_distribution=dict(metrics.get("risk_distribution") or _empty_risk_distribution()),
                compliance_rate=metrics.get("compliance_rate", 0.0),
            ),
            performance_metrics=PerformanceMetrics(**data.get("performance_metrics", {})),
            errors=[
                ExecutionError(
                    declaration_id=e["declaration_id"],
                    agent_type=e["agent_type"],
                    error=e["error"],
                    timestamp=parse_datetime(e["timestamp"]),
                )
                for e in data.get("errors", [])
            ],
            failure=ExecutionFailure(**failure) if failure else None,
        )
