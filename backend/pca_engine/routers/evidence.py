"""
Ghana PCA Engine - Evidence API Router

Validates supporting documents for a declaration and serves the stored
evidence packages and validation metrics.
"""
import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from ..dependencies import ServiceContainer, get_services
from ..models.evidence import EvidenceDocument
from ..models.ssot import Declaration

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/evidence", tags=["evidence"])


# =============================================================================
# PYDANTIC MODELS
# =============================================================================

class ValidatePackageRequest(BaseModel):
    declaration_id: str = Field(..., min_length=1)
    documents: List[EvidenceDocument] = Field(default=[])
    declaration: Optional[Dict[str, Any]] = Field(None, description="Declaration to cross-check against")


class ValidateDocumentRequest(BaseModel):
    document: EvidenceDocument
    declaration: Optional[Dict[str, Any]] = None


class EvidencePackageSummary(BaseModel):
    id: str
    declaration_id: str
    documents: int
    overall_score: float
    overall_compliance: bool
    created_at: str


def _declaration(data: Optional[Dict[str, Any]]) -> Optional[Declaration]:
    if data is None:
        return None
    try:
        return Declaration.from_dict(data)
    except (AttributeError, KeyError, TypeError, ValueError) as e:
        logger.warning(f"Rejected evidence declaration: {e}")
        raise HTTPException(status_code=400, detail=f"Invalid declaration: {e}")


# =============================================================================
# API ENDPOINTS
# =============================================================================

@router.post("/validate", status_code=201)
async def validate_evidence_package(
    request: ValidatePackageRequest,
    services: ServiceContainer = Depends(get_services),
):
    """Validate every document and store the evidence package."""
    package = services.evidence.validate_evidence_package(
        request.declaration_id, request.documents, _declaration(request.declaration),
    )
    return package.model_dump(mode="json")


@router.post("/documents/validate")
async def validate_document(
    request: ValidateDocumentRequest,
    services: ServiceContainer = Depends(get_services),
):
    """Validate a single document without storing anything."""
    result = services.evidence.validate_document(request.document, _declaration(request.declaration))
    return result.model_dump(mode="json")


@router.get("", response_model=List[EvidencePackageSummary])
async def list_evidence_packages(services: ServiceContainer = Depends(get_services)):
    return [
        EvidencePackageSummary(
            id=p.id,
            declaration_id=p.declaration_id,
            documents=len(p.documents),
            overall_score=p.overall_score,
            overall_compliance=p.overall_compliance,
            created_at=p.created_at.isoformat(),
        )
        for p in services.evidence.list_evidence_packages()
    ]


@router.get("/metrics")
async def validation_metrics(services: ServiceContainer = Depends(get_services)):
    return services.evidence.get_validation_metrics()


@router.get("/declaration/{declaration_id}")
async def packages_by_declaration(declaration_id: str, services: ServiceContainer = Depends(get_services)):
    return [
        p.model_dump(mode="json")
        for p in services.evidence.get_evidence_packages_by_declaration(declaration_id)
    ]


@router.get("/{package_id}")
async def get_evidence_package(package_id: str, services: ServiceContainer = Depends(get_services)):
    package = services.evidence.get_evidence_package(package_id)
    if not package:
        raise HTTPException(status_code=404, detail="Evidence package not found")
    return package.model_dump(mode="json")


@router.delete("/{package_id}")
async def delete_evidence_package(package_id: str, services: ServiceContainer = Depends(get_services)):
    if not services.evidence.delete_evidence_package(package_id):
        raise HTTPException(status_code=404, detail="Evidence package not found")
    return {"deleted": True, "id": package_id}
