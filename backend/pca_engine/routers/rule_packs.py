"""
Ghana PCA Engine - Rule Packs API Router

CRUD over rule packs and their rules, plus simulation runs against
posted declaration datasets.
"""
import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, HTTPException
from pydantic import BaseModel, Field

from ..dependencies import ServiceContainer, get_services
from ..models.ssot import Declaration
from ..services.rule_packs import RulePackNotFoundError, RulePackValidationError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/rule-packs", tags=["rule-packs"])


# =============================================================================
# PYDANTIC MODELS
# =============================================================================

class SimulateRequest(BaseModel):
    declarations: List[Dict[str, Any]] = Field(default=[], description="Test dataset")
    dataset_name: Optional[str] = None


class RulePackSummary(BaseModel):
    id: str
    name: str
    version: str
    is_active: bool
    total_rules: int
    active_rules: int


# =============================================================================
# API ENDPOINTS
# =============================================================================

@router.get("", response_model=List[RulePackSummary])
async def list_rule_packs(services: ServiceContainer = Depends(get_services)):
    return [
        RulePackSummary(
            id=pack.id,
            name=pack.name,
            version=pack.version,
            is_active=pack.is_active,
            total_rules=len(pack.rules),
            active_rules=len(pack.active_rules),
        )
        for pack in services.rule_packs.list_rule_packs()
    ]


@router.get("/active")
async def get_active_rule_pack(services: ServiceContainer = Depends(get_services)):
    pack = services.rule_packs.get_active_rule_pack()
    if not pack:
        raise HTTPException(status_code=404, detail="No active rule pack")
    return pack.model_dump(mode="json")


@router.get("/simulations")
async def list_simulations(services: ServiceContainer = Depends(get_services)):
    return [r.model_dump(mode="json") for r in services.rule_packs.get_simulation_results()]


@router.get("/{rule_pack_id}")
async def get_rule_pack(rule_pack_id: str, services: ServiceContainer = Depends(get_services)):
    pack = services.rule_packs.get_rule_pack(rule_pack_id)
    if not pack:
        raise HTTPException(status_code=404, detail="Rule pack not found")
    return pack.model_dump(mode="json")


@router.post("", status_code=201)
async def create_rule_pack(
    payload: Dict[str, Any] = Body(...),
    services: ServiceContainer = Depends(get_services),
):
    """Create a rule pack. The id and timestamps are assigned here."""
    try:
        pack = services.rule_packs.create_rule_pack(payload)
    except RulePackValidationError as e:
        logger.warning(f"Rejected rule pack: {e}")
        raise HTTPException(status_code=400, detail=str(e))
    logger.info(f"Rule pack created: {pack.id} ({pack.name})")
    return pack.model_dump(mode="json")


@router.put("/{rule_pack_id}")
async def update_rule_pack(
    rule_pack_id: str,
    updates: Dict[str, Any] = Body(...),
    services: ServiceContainer = Depends(get_services),
):
    try:
        pack = services.rule_packs.update_rule_pack(rule_pack_id, updates)
    except RulePackNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except RulePackValidationError as e:
        logger.warning(f"Rejected update to rule pack {rule_pack_id}: {e}")
        raise HTTPException(status_code=400, detail=str(e))
    return pack.model_dump(mode="json")


@router.delete("/{rule_pack_id}")
async def delete_rule_pack(rule_pack_id: str, services: ServiceContainer = Depends(get_services)):
    if not services.rule_packs.delete_rule_pack(rule_pack_id):
        raise HTTPException(status_code=404, detail="Rule pack not found")
    logger.info(f"Rule pack deleted: {rule_pack_id}")
    return {"deleted": True, "id": rule_pack_id}


@router.post("/{rule_pack_id}/rules", status_code=201)
async def add_rule(
    rule_pack_id: str,
    rule: Dict[str, Any] = Body(...),
    services: ServiceContainer = Depends(get_services),
):
    try:
        created = services.rule_packs.add_rule(rule_pack_id, rule)
    except RulePackNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    except RulePackValidationError as e:
        logger.warning(f"Rejected rule for pack {rule_pack_id}: {e}")
        raise HTTPException(status_code=400, detail=str(e))
    return created.model_dump(mode="json")


@router.delete("/{rule_pack_id}/rules/{rule_id}")
async def remove_rule(
    rule_pack_id: str,
    rule_id: str,
    services: ServiceContainer = Depends(get_services),
):
    try:
        removed = services.rule_packs.remove_rule(rule_pack_id, rule_id)
    except RulePackNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    if not removed:
        raise HTTPException(status_code=404, detail="Rule not found")
    return {"deleted": True, "id": rule_id}


@router.post("/{rule_pack_id}/simulate")
async def simulate_rule_pack(
    rule_pack_id: str,
    request: SimulateRequest,
    services: ServiceContainer = Depends(get_services),
):
    """Score the dataset against the pack and store the SimulationResult."""
    try:
        dataset = [Declaration.from_dict(d) for d in request.declarations]
    except (AttributeError, KeyError, TypeError, ValueError) as e:
        logger.warning(f"Rejected simulation dataset for {rule_pack_id}: {e}")
        raise HTTPException(status_code=400, detail=f"Invalid declaration: {e}")

    kwargs = {"dataset_name": request.dataset_name} if request.dataset_name else {}
    try:
        result = services.rule_packs.simulate(rule_pack_id, dataset, **kwargs)
    except RulePackNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
    logger.info(f"Simulation of {rule_pack_id} on {result.test_dataset}: accuracy {result.accuracy:.2f}")
    return result.model_dump(mode="json")


@router.get("/{rule_pack_id}/simulations")
async def rule_pack_simulations(rule_pack_id: str, services: ServiceContainer = Depends(get_services)):
    return [
        r.model_dump(mode="json")
        for r in services.rule_packs.get_simulation_results(rule_pack_id)
    ]


@router.get("/{rule_pack_id}/metrics")
async def rule_pack_metrics(rule_pack_id: str, services: ServiceContainer = Depends(get_services)):
    try:
        return services.rule_packs.get_rule_pack_metrics(rule_pack_id)
    except RulePackNotFoundError as e:
        raise HTTPException(status_code=404, detail=str(e))
