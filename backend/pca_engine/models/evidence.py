"""
Ghana PCA Engine - Evidence Models

Supporting documents submitted with a declaration and the result of
validating them against Ghana requirements (TIN format, ports of entry,
statutory tax rates, ECOWAS origin).
"""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from .ssot import FindingSeverity


class EvidenceDocumentType(str, Enum):
    COMMERCIAL_INVOICE = "commercial-invoice"
    BILL_OF_LADING = "bill-of-lading"
    CERTIFICATE_OF_ORIGIN = "certificate-of-origin"
    PACKING_LIST = "packing-list"
    INSURANCE_CERTIFICATE = "insurance-certificate"
    IMPORT_PERMIT = "import-permit"
    TAX_CLEARANCE = "tax-clearance"
    ATG_CERTIFICATE = "atg-certificate"
    PRE_ARRIVAL_ASSESSMENT = "pre-arrival-assessment"
    CUSTOMS_DECLARATION = "customs-declaration"
    DELIVERY_NOTE = "delivery-note"
    QUALITY_CERTIFICATE = "quality-certificate"


class IssueType(str, Enum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class EvidenceDocument(BaseModel):
    id: str = Field(..., min_length=1)
    type: EvidenceDocumentType
    name: str
    path: str = ""
    size: int = Field(0, ge=0, description="Bytes")
    format: str = Field("", description="pdf, jpg, png, ...")
    uploaded_at: datetime = Field(default_factory=datetime.utcnow)
    # Fields read off the document; extracted on validation when absent
    extracted_data: Optional[Dict[str, Any]] = None


class ValidationIssue(BaseModel):
    type: IssueType
    message: str
    field: Optional[str] = None
    severity: FindingSeverity


class GhanaDocumentCompliance(BaseModel):
    tin_valid: bool = True
    port_valid: bool = True
    tax_rates_valid: bool = True
    ecowas_compliance: bool = True
    sector_requirements: bool = True


class DocumentValidation(BaseModel):
    document_id: str
    is_valid: bool
    validation_score: float = Field(..., ge=0, le=100)
    issues: List[ValidationIssue] = Field(default_factory=list)
    ghana_compliance: GhanaDocumentCompliance = Field(default_factory=GhanaDocumentCompliance)
    recommendations: List[str] = Field(default_factory=list)
    risk_level: FindingSeverity
    processing_time: float = 0.0  # milliseconds


class EvidencePackage(BaseModel):
    id: str
    declaration_id: str
    documents: List[EvidenceDocument] = Field(default_factory=list)
    validation_results: List[DocumentValidation] = Field(default_factory=list)
    overall_score: float = Field(0.0, ge=0, le=100)
    overall_compliance: bool = False
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)
