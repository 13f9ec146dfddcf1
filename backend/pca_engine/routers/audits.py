"""
Ghana PCA Engine - Audits API Router

Runs audit executions over posted declarations and exposes execution
history and cross-execution analytics.
"""
import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from ..dependencies import ServiceContainer, get_services
from ..models.ssot import Declaration, ExecutionResult
from ..services.audit import AuditConfigurationError, AuditExecutionConfig, ExecutionPriority

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/audits", tags=["audits"])


# =============================================================================
# PYDANTIC MODELS
# =============================================================================

class DateRangeModel(BaseModel):
    start: str
    end: str


class TargetFiltersModel(BaseModel):
    hs_codes: Optional[List[str]] = None
    shipment_ids: Optional[List[str]] = None
    declaration_ids: Optional[List[str]] = None
    date_range: Optional[DateRangeModel] = None
    countries: Optional[List[str]] = None
    risk_threshold: Optional[float] = None
    sectors: Optional[List[str]] = None


class AgentConfigModel(BaseModel):
    enable_ecowas_agent: bool = True
    enable_petroleum_agent: bool = True
    enable_tax_agent: bool = True
    enable_tsa_agent: bool = True


class ExecutionOptionsModel(BaseModel):
    parallel: bool = True
    max_concurrency: int = 10
    timeout_ms: int = 30000


class AuditConfigModel(BaseModel):
    case_id: str = Field(..., description="Audit case the execution belongs to")
    scope: str = Field("all", description="all | hs-codes | shipments | declarations")
    target_filters: TargetFiltersModel = Field(default_factory=TargetFiltersModel)
    agent_config: AgentConfigModel = Field(default_factory=AgentConfigModel)
    execution_options: ExecutionOptionsModel = Field(default_factory=ExecutionOptionsModel)


class RunAuditRequest(BaseModel):
    config: AuditConfigModel
    declarations: List[Dict[str, Any]] = Field(default=[], description="Declaration records")
    priority: ExecutionPriority = Field(ExecutionPriority.MEDIUM, description="high | medium | low")


class ExecutionSummary(BaseModel):
    execution_id: str
    case_id: str
    status: str
    start_time: str
    end_time: Optional[str]
    total_declarations: int
    processed_declarations: int
    failed_declarations: int
    total_violations: int
    total_recovery_amount: float


def _summary(execution: ExecutionResult) -> ExecutionSummary:
    return ExecutionSummary(
        execution_id=execution.execution_id,
        case_id=execution.case_id,
        status=execution.status.value,
        start_time=execution.start_time.isoformat(),
        end_time=execution.end_time.isoformat() if execution.end_time else None,
        total_declarations=execution.total_declarations,
        processed_declarations=execution.processed_declarations,
        failed_declarations=execution.failed_declarations,
        total_violations=execution.ghana_metrics.total_violations,
        total_recovery_amount=execution.ghana_metrics.total_recovery_amount,
    )


# =============================================================================
# API ENDPOINTS
# =============================================================================

@router.post("/run")
async def run_audit(
    request: RunAuditRequest,
    services: ServiceContainer = Depends(get_services),
):
    """Queue an audit execution, wait for it and return the full ExecutionResult."""
    try:
        declarations = [Declaration.from_dict(d) for d in request.declarations]
    except (AttributeError, KeyError, TypeError, ValueError) as e:
        logger.warning(f"Rejected audit run for case {request.config.case_id}: invalid declaration: {e}")
        raise HTTPException(status_code=400, detail=f"Invalid declaration: {e}")

    config = AuditExecutionConfig.from_dict(request.config.model_dump())
    try:
        execution = await services.queue.submit(config, declarations, request.priority)
    except AuditConfigurationError as e:
        logger.warning(f"Rejected audit run for case {request.config.case_id}: {e}")
        raise HTTPException(status_code=400, detail=str(e))

    logger.info(
        f"Audit {execution.execution_id} for case {execution.case_id} finished {execution.status.value}: "
        f"{execution.processed_declarations}/{execution.total_declarations} declarations"
    )
    return execution.to_dict()


@router.get("", response_model=List[ExecutionSummary])
async def list_executions(services: ServiceContainer = Depends(get_services)):
    return [_summary(e) for e in services.orchestrator.list_executions()]


@router.get("/queue")
async def queue_status(services: ServiceContainer = Depends(get_services)):
    """Executions waiting and running, against the concurrency cap."""
    return services.queue.status()


@router.get("/analytics/agents")
async def agent_performance(services: ServiceContainer = Depends(get_services)):
    """Agent statistics across completed executions."""
    return services.orchestrator.agent_performance_metrics()


@router.get("/analytics/system")
async def system_performance(services: ServiceContainer = Depends(get_services)):
    """System throughput, error rate and accuracy across executions."""
    return services.orchestrator.system_performance_metrics()


@router.get("/case/{case_id}", response_model=List[ExecutionSummary])
async def executions_by_case(case_id: str, services: ServiceContainer = Depends(get_services)):
    return [_summary(e) for e in services.orchestrator.get_executions_by_case(case_id)]


@router.get("/{execution_id}")
async def get_execution(execution_id: str, services: ServiceContainer = Depends(get_services)):
    execution = services.orchestrator.get_execution(execution_id)
    if not execution:
        raise HTTPException(status_code=404, detail="Execution not found")
    return execution.to_dict()


@router.post("/{execution_id}/cancel")
async def cancel_execution(execution_id: str, services: ServiceContainer = Depends(get_services)):
    """Cancel a running execution. Completed or unknown executions are rejected."""
    if services.orchestrator.get_execution(execution_id) is None:
        raise HTTPException(status_code=404, detail="Execution not found")
    if not services.orchestrator.cancel_execution(execution_id):
        logger.warning(f"Cancel rejected for {execution_id}: execution is not running")
        raise HTTPException(status_code=409, detail="Execution is not running")
    logger.info(f"Cancellation requested for {execution_id}")
    return {"execution_id": execution_id, "cancelled": True}
