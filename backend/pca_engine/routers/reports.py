"""
Ghana PCA Engine - Minister Reports API Router

Generates minister reports from completed audit executions.
"""
import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from ..dependencies import ServiceContainer, get_services
from ..services.reporting import ReportConfig, ReportGenerationError, ReportType

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/reports", tags=["reports"])


# =============================================================================
# PYDANTIC MODELS
# =============================================================================

class GenerateReportRequest(BaseModel):
    case_id: str
    report_type: ReportType = ReportType.EXECUTIVE_SUMMARY
    period_start: Optional[str] = None
    period_end: Optional[str] = None
    include_projections: bool = True
    include_recommendations: bool = True


class ReportSummary(BaseModel):
    id: str
    case_id: str
    execution_id: str
    report_type: str
    generated_at: str
    total_recovery: float = Field(0.0, description="GHS")


# =============================================================================
# API ENDPOINTS
# =============================================================================

@router.post("/minister", status_code=201)
async def generate_minister_report(
    request: GenerateReportRequest,
    services: ServiceContainer = Depends(get_services),
) -> Dict[str, Any]:
    """Generate a report from the case's completed execution."""
    config = ReportConfig(**request.model_dump())
    try:
        report = services.reports.generate_minister_report(config)
    except ReportGenerationError as e:
        logger.warning(f"No report for case {request.case_id}: {e}")
        raise HTTPException(status_code=404, detail=str(e))
    logger.info(f"Report {report.id} generated for case {report.case_id} ({report.report_type})")
    return report.to_dict()


@router.get("/case/{case_id}", response_model=List[ReportSummary])
async def reports_by_case(case_id: str, services: ServiceContainer = Depends(get_services)):
    return [
        ReportSummary(
            id=r.id,
            case_id=r.case_id,
            execution_id=r.execution_id,
            report_type=r.report_type,
            generated_at=r.generated_at.isoformat(),
            total_recovery=r.executive_summary.get("total_recovery", 0.0),
        )
        for r in services.reports.get_reports_by_case(case_id)
    ]


@router.get("/{report_id}")
async def get_report(report_id: str, services: ServiceContainer = Depends(get_services)):
    report = services.reports.get_report(report_id)
    if not report:
        raise HTTPException(status_code=404, detail="Report not found")
    return report.to_dict()


@router.delete("/{report_id}")
async def delete_report(report_id: str, services: ServiceContainer = Depends(get_services)):
    if not services.reports.delete_report(report_id):
        raise HTTPException(status_code=404, detail="Report not found")
    logger.info(f"Report deleted: {report_id}")
    return {"deleted": True, "id": report_id}
