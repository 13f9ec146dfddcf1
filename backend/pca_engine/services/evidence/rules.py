"""
Ghana PCA Engine - Evidence Validation Rules

Per-document-type checks over extracted document fields, plus scoring,
risk level and recommendations. Pure functions; the service wires them.

Extracted fields are read in either snake_case or camelCase.
"""
from typing import Any, Callable, Dict, List, Optional

from ...models.evidence import (
    EvidenceDocumentType,
    GhanaDocumentCompliance,
    IssueType,
    ValidationIssue,
)
from ...models.ssot import Declaration, FindingSeverity, TaxBreakdown, pick
from ..agents.constants import BASE_TAX_RATES, is_ecowas_country
from ..agents.tax import TIN_PATTERN

GHANA_PORTS: Dict[str, Dict[str, str]] = {
    "TEMA": {"name": "Tema Port", "type": "sea", "region": "Greater Accra"},
    "TAKORADI": {"name": "Takoradi Port", "type": "sea", "region": "Western Region"},
    "KOTOKA": {"name": "Kotoka International Airport", "type": "air", "region": "Greater Accra"},
    "KUMASI": {"name": "Kumasi Airport", "type": "air", "region": "Ashanti Region"},
    "TAMALE": {"name": "Tamale Airport", "type": "air", "region": "Northern Region"},
}

RECOGNISED_ORIGIN_AUTHORITIES = (
    "Ministry of Trade and Industry",
    "Chamber of Commerce",
    "Export Promotion Authority",
)
TAX_CLEARANCE_AUTHORITY = "Ghana Revenue Authority"

TAX_LINE_TOLERANCE = 0.05
INVOICE_VALUE_TOLERANCE = 0.10
GROSS_WEIGHT_TOLERANCE = 0.05
ATG_WEIGHT_TOLERANCE = 0.10
PETROLEUM_KG_PER_LITRE = 0.85

PASS_SCORE = 70

SEVERITY_DEDUCTIONS: Dict[FindingSeverity, int] = {
    FindingSeverity.CRITICAL: 25,
    FindingSeverity.HIGH: 15,
    FindingSeverity.MEDIUM: 10,
    FindingSeverity.LOW: 5,
}

# (tax line, label, issue type, severity, invalidates tax rates)
INVOICE_TAX_LINES = (
    ("vat", "VAT", IssueType.ERROR, FindingSeverity.HIGH, True),
    ("get_fund", "GETFund levy", IssueType.ERROR, FindingSeverity.MEDIUM, True),
    ("nhil", "NHIL", IssueType.ERROR, FindingSeverity.MEDIUM, True),
    ("covid", "COVID levy", IssueType.WARNING, FindingSeverity.LOW, False),
)

Validator = Callable[[Dict[str, Any], Optional[Declaration], GhanaDocumentCompliance], List[ValidationIssue]]


def _error(message: str, field: str, severity: FindingSeverity) -> ValidationIssue:
    return ValidationIssue(type=IssueType.ERROR, message=message, field=field, severity=severity)


def _warning(message: str, field: str, severity: FindingSeverity) -> ValidationIssue:
    return ValidationIssue(type=IssueType.WARNING, message=message, field=field, severity=severity)


def tin_problem(tin: Optional[str]) -> Optional[str]:
    """None when the TIN is well formed, else the reason it is not."""
    if not tin:
        return "TIN is required"
    if not TIN_PATTERN.match(str(tin)):
        return "TIN must be in format: TIN followed by 7-10 digits"
    return None


def port_problem(port: Optional[str]) -> Optional[str]:
    if not port:
        return "Port information is required"
    if str(port).upper() not in GHANA_PORTS:
        return f"Invalid Ghana port. Valid ports: {', '.join(GHANA_PORTS)}"
    return None


# =============================================================================
# DOCUMENT VALIDATORS
# =============================================================================

def validate_commercial_invoice(data, declaration, compliance) -> List[ValidationIssue]:
    issues = []

    tin = pick(data, "declarant_tin", "declarantTin")
    if tin:
        problem = tin_problem(tin)
        if problem:
            issues.append(_error(problem, "declarantTin", FindingSeverity.HIGH))
            compliance.tin_valid = False
    else:
        issues.append(_error("Declarant TIN not found on invoice", "declarantTin", FindingSeverity.HIGH))
        compliance.tin_valid = False

    value = float(pick(data, "value", default=0.0))
    taxes = pick(data, "taxes")
    if value and taxes:
        declared = TaxBreakdown.from_dict(taxes)
        for line, label, issue_type, severity, invalidates in INVOICE_TAX_LINES:
            expected = value * BASE_TAX_RATES[line]
            found = declared.get(line)
            if abs(found - expected) > expected * TAX_LINE_TOLERANCE:
                issues.append(ValidationIssue(
                    type=issue_type,
                    message=f"{label} calculation mismatch. Expected: GHS {expected:.2f}, Found: GHS {found:.2f}",
                    field=f"taxes.{line}",
                    severity=severity,
                ))
                if invalidates:
                    compliance.tax_rates_valid = False
    else:
        issues.append(_warning("Tax breakdown not found on invoice", "taxes", FindingSeverity.MEDIUM))

    if value and declaration is not None and declaration.value:
        if abs(value - declaration.value) > declaration.value * INVOICE_VALUE_TOLERANCE:
            issues.append(_error(
                f"Invoice value mismatch with declaration. Expected: {declaration.value:.2f}, Found: {value:.2f}",
                "value",
                FindingSeverity.HIGH,
            ))

    return issues


def validate_certificate_of_origin(data, declaration, compliance) -> List[ValidationIssue]:
    issues = []
    origin = pick(data, "origin_country", "originCountry")
    authority = pick(data, "issuing_authority", "issuingAuthority")

    if origin and declaration is not None:
        ecowas = is_ecowas_country(origin)
        if declaration.ecowas_origin != ecowas:
            issues.append(_error(
                "ECOWAS origin claim mismatch between certificate and declaration",
                "originCountry",
                FindingSeverity.CRITICAL,
            ))
            compliance.ecowas_compliance = False

        if ecowas:
            if not pick(data, "certificate_number", "certificateNumber") or not authority:
                issues.append(_error(
                    "ECOWAS certificate missing required fields", "certificate", FindingSeverity.HIGH,
                ))
            if not pick(data, "ecowas_protocol", "ecowasProtocol"):
                issues.append(_warning(
                    "ECOWAS protocol reference not found", "ecowasProtocol", FindingSeverity.MEDIUM,
                ))

    if authority:
        lowered = str(authority).lower()
        if not any(known.lower() in lowered for known in RECOGNISED_ORIGIN_AUTHORITIES):
            issues.append(_warning(
                "Unrecognized issuing authority for certificate of origin",
                "issuingAuthority",
                FindingSeverity.MEDIUM,
            ))

    return issues


def validate_bill_of_lading(data, declaration, compliance) -> List[ValidationIssue]:
    issues = []

    port = pick(data, "port_of_discharge", "portOfDischarge") or pick(data, "port_of_loading", "portOfLoading")
    if port:
        problem = port_problem(port)
        if problem:
            issues.append(_error(problem, "port", FindingSeverity.HIGH))
            compliance.port_valid = False

    if not pick(data, "vessel_name", "vesselName") and not pick(data, "flight_number", "flightNumber"):
        issues.append(_error("Vessel or flight information missing", "transport", FindingSeverity.HIGH))

    gross_weight = float(pick(data, "gross_weight", "grossWeight", default=0.0))
    if gross_weight and declaration is not None and declaration.weight:
        if abs(gross_weight - declaration.weight) > declaration.weight * GROSS_WEIGHT_TOLERANCE:
            issues.append(_warning(
                f"Weight discrepancy. Declaration: {declaration.weight}kg, B/L: {gross_weight}kg",
                "grossWeight",
                FindingSeverity.MEDIUM,
            ))

    return issues


def validate_tax_clearance(data, declaration, compliance) -> List[ValidationIssue]:
    issues = []

    tin = pick(data, "tin")
    if tin:
        problem = tin_problem(tin)
        if problem:
            issues.append(_error(
                f"Invalid TIN format on tax clearance: {problem}", "tin", FindingSeverity.CRITICAL,
            ))
            compliance.tin_valid = False

    if not pick(data, "clearance_number", "clearanceNumber"):
        issues.append(_error("Tax clearance number missing", "clearanceNumber", FindingSeverity.HIGH))

    if pick(data, "issuing_authority", "issuingAuthority") != TAX_CLEARANCE_AUTHORITY:
        issues.append(_error(
            f"Tax clearance must be issued by {TAX_CLEARANCE_AUTHORITY}",
            "issuingAuthority",
            FindingSeverity.CRITICAL,
        ))

    return issues


def validate_atg_certificate(data, declaration, compliance) -> List[ValidationIssue]:
    issues = []

    if not pick(data, "atg_number", "atgNumber"):
        issues.append(_error("ATG certificate number missing", "atgNumber", FindingSeverity.HIGH))

    product = pick(data, "product_type", "productType", default="")
    if "petroleum" not in str(product).lower():
        issues.append(_warning(
            "ATG certificate should be for petroleum products", "productType", FindingSeverity.MEDIUM,
        ))

    volume = float(pick(data, "volume", default=0.0))
    if volume and declaration is not None and declaration.weight:
        expected_weight = volume * PETROLEUM_KG_PER_LITRE
        if abs(declaration.weight - expected_weight) > expected_weight * ATG_WEIGHT_TOLERANCE:
            issues.append(_warning(
                f"Weight-volume discrepancy. Expected: {expected_weight:.0f}kg, Found: {declaration.weight}kg",
                "volume",
                FindingSeverity.MEDIUM,
            ))

    return issues


def validate_generic_document(data, declaration, compliance) -> List[ValidationIssue]:
    issues = []
    if not pick(data, "document_number", "documentNumber"):
        issues.append(_warning("Document number not found", "documentNumber", FindingSeverity.LOW))
    if not pick(data, "issue_date", "issueDate"):
        issues.append(_warning("Document issue date not found", "issueDate", FindingSeverity.LOW))
    return issues


DOCUMENT_VALIDATORS: Dict[EvidenceDocumentType, Validator] = {
    EvidenceDocumentType.COMMERCIAL_INVOICE: validate_commercial_invoice,
    EvidenceDocumentType.CERTIFICATE_OF_ORIGIN: validate_certificate_of_origin,
    EvidenceDocumentType.BILL_OF_LADING: validate_bill_of_lading,
    EvidenceDocumentType.TAX_CLEARANCE: validate_tax_clearance,
    EvidenceDocumentType.ATG_CERTIFICATE: validate_atg_certificate,
}


def validator_for(document_type: EvidenceDocumentType) -> Validator:
    return DOCUMENT_VALIDATORS.get(document_type, validate_generic_document)


# =============================================================================
# SCORING
# =============================================================================

def validation_score(issues: List[ValidationIssue]) -> float:
    """100 less a fixed deduction per issue severity, floored at 0."""
    score = 100 - sum(SEVERITY_DEDUCTIONS[issue.severity] for issue in issues)
    return float(max(0, score))


def risk_level(issues: List[ValidationIssue], score: float) -> FindingSeverity:
    severities = {issue.severity for issue in issues}
    if FindingSeverity.CRITICAL in severities or score < 40:
        return FindingSeverity.CRITICAL
    if FindingSeverity.HIGH in severities or score < 60:
        return FindingSeverity.HIGH
    if score < 80:
        return FindingSeverity.MEDIUM
    return FindingSeverity.LOW


DOCUMENT_RECOMMENDATIONS: Dict[EvidenceDocumentType, List[str]] = {
    EvidenceDocumentType.COMMERCIAL_INVOICE: [
        "Ensure all Ghana taxes (VAT, GETFund, NHIL, COVID) are correctly calculated",
        "Verify declarant TIN format: TIN followed by 7-10 digits",
    ],
    EvidenceDocumentType.CERTIFICATE_OF_ORIGIN: [
        "For ECOWAS origin, ensure proper ECOWAS protocol compliance",
        "Verify issuing authority is recognized",
    ],
    EvidenceDocumentType.BILL_OF_LADING: [
        "Confirm port of entry is a valid Ghana port",
        "Ensure vessel/flight information is complete",
    ],
    EvidenceDocumentType.TAX_CLEARANCE: [
        "Tax clearance must be issued by Ghana Revenue Authority",
        "Verify TIN matches across all documents",
    ],
    EvidenceDocumentType.ATG_CERTIFICATE: [
        "ATG certificate required for petroleum products",
        "Verify volume-weight calculations",
    ],
}

GENERAL_RECOMMENDATIONS = [
    "Consider digital verification for faster processing",
    "Maintain consistent information across all documents",
]


def recommendations(issues: List[ValidationIssue], document_type: EvidenceDocumentType) -> List[str]:
    result = list(DOCUMENT_RECOMMENDATIONS.get(document_type, []))
    if any(issue.type == IssueType.ERROR for issue in issues):
        result.append("Address all error-level issues before submission")
    if any(issue.severity == FindingSeverity.CRITICAL for issue in issues):
        result.append("Critical issues found - immediate attention required")
    return result + GENERAL_RECOMMENDATIONS
