"""
Rule Pack Service

Manages rule packs and their simulation history behind the storage port.

Key responsibilities:
- Create / update / delete packs (validated, ids generated here)
- Add and remove individual rules
- Run simulations by pack id and keep the results
- Seed the default Ghana pack
"""
from datetime import datetime
from math import fsum
from typing import Any, Dict, List, Optional
from uuid import uuid4
import logging

from pydantic import ValidationError

from ...models.rule_pack import Rule, RulePack, SimulationResult
from ...models.ssot import Declaration
from ..storage import InMemoryRepository, Repository
from .defaults import DEFAULT_RULE_PACK_ID, default_rule_pack
from .simulation import DEFAULT_DATASET_NAME, DeclarationLabeler, simulate_rule_pack

logger = logging.getLogger(__name__)


class RulePackValidationError(Exception):
    """Raised when a rule pack or rule definition is invalid."""
    pass


class RulePackNotFoundError(Exception):
    """Raised when a rule pack id is unknown."""
    pass


def _validation_message(error: ValidationError) -> str:
    return "; ".join(
        f"{'.'.join(str(p) for p in e['loc'])}: {e['msg']}" for e in error.errors()
    )


class RulePackService:
    """
    Rule pack store plus simulation runner.

    Construct with explicit repositories; in-memory ones are used when omitted.
    """

    def __init__(
        self,
        store: Optional[Repository[RulePack]] = None,
        simulation_store: Optional[Repository[SimulationResult]] = None,
        labeler: Optional[DeclarationLabeler] = None,
    ):
        self.store = store if store is not None else InMemoryRepository()
        self.simulation_store = simulation_store if simulation_store is not None else InMemoryRepository()
        self.labeler = labeler

    # =========================================================================
    # VALIDATION
    # =========================================================================

    @staticmethod
    def _validate_pack(data: Dict[str, Any]) -> RulePack:
        try:
            pack = RulePack.model_validate(data)
        except ValidationError as e:
            raise RulePackValidationError(_validation_message(e))

        rule_ids = [rule.id for rule in pack.rules]
        duplicates = sorted({rid for rid in rule_ids if rule_ids.count(rid) > 1})
        if duplicates:
            raise RulePackValidationError(f"Duplicate rule ids: {', '.join(duplicates)}")
        return pack

    @staticmethod
    def _validate_rule(data: Dict[str, Any]) -> Rule:
        try:
            return Rule.model_validate(data)
        except ValidationError as e:
            raise RulePackValidationError(_validation_message(e))

    def _require(self, rule_pack_id: str) -> RulePack:
        pack = self.store.get(rule_pack_id)
        if pack is None:
            raise RulePackNotFoundError(f"Rule pack with ID {rule_pack_id} not found")
        return pack

    # =========================================================================
    # RULE PACKS
    # =========================================================================

    def ensure_default_rule_pack(self) -> RulePack:
        """Store ghana-rule-pack-v1 unless a pack with that id already exists."""
        existing = self.store.get(DEFAULT_RULE_PACK_ID)
        if existing is not None:
            return existing
        pack = default_rule_pack()
        logger.info(f"Seeding default rule pack {pack.id}")
        return self.store.put(pack.id, pack)

    def create_rule_pack(self, data: Dict[str, Any]) -> RulePack:
        now = datetime.utcnow()
        payload = {
            **data,
            "id": f"rp-{uuid4().hex[:12]}",
            "created_at": now,
            "updated_at": now,
        }
        pack = self._validate_pack(payload)
        logger.info(f"Created rule pack {pack.id} ({pack.name})")
        return self.store.put(pack.id, pack)

    def update_rule_pack(self, rule_pack_id: str, updates: Dict[str, Any]) -> RulePack:
        existing = self._require(rule_pack_id)
        payload = {
            **existing.model_dump(),
            **updates,
            "id": existing.id,
            "created_at": existing.created_at,
            "updated_at": datetime.utcnow(),
        }
        pack = self._validate_pack(payload)
        return self.store.put(pack.id, pack)

    def get_rule_pack(self, rule_pack_id: str) -> Optional[RulePack]:
        return self.store.get(rule_pack_id)

    def list_rule_packs(self) -> List[RulePack]:
        return self.store.list()

    def get_active_rule_pack(self) -> Optional[RulePack]:
        """First stored pack with is_active set."""
        for pack in self.store.list():
            if pack.is_active:
                return pack
        return None

    def delete_rule_pack(self, rule_pack_id: str) -> bool:
        return self.store.delete(rule_pack_id)

    # =========================================================================
    # RULES
    # =========================================================================

    def add_rule(self, rule_pack_id: str, rule_data: Dict[str, Any]) -> Rule:
        pack = self._require(rule_pack_id)
        now = datetime.utcnow()
        rule = self._validate_rule({
            **rule_data,
            "id": f"rule-{uuid4().hex[:12]}",
            "created_at": now,
            "updated_at": now,
        })
        updated = pack.model_copy(update={"rules": [*pack.rules, rule], "updated_at": now})
        self.store.put(updated.id, updated)
        return rule

    def remove_rule(self, rule_pack_id: str, rule_id: str) -> bool:
        pack = self._require(rule_pack_id)
        remaining = [rule for rule in pack.rules if rule.id != rule_id]
        if len(remaining) == len(pack.rules):
            return False
        updated = pack.model_copy(update={"rules": remaining, "updated_at": datetime.utcnow()})
        self.store.put(updated.id, updated)
        return True

    # =========================================================================
    # SIMULATION
    # =========================================================================

    def simulate(
        self,
        rule_pack_id: str,
        test_dataset: List[Declaration],
        dataset_name: str = DEFAULT_DATASET_NAME,
    ) -> SimulationResult:
        pack = self._require(rule_pack_id)
        result = simulate_rule_pack(pack, test_dataset, labeler=self.labeler, dataset_name=dataset_name)
        self.simulation_store.put(f"{rule_pack_id}-{uuid4().hex[:12]}", result)
        return result

    def get_simulation_results(self, rule_pack_id: Optional[str] = None) -> List[SimulationResult]:
        results = self.simulation_store.list()
        if rule_pack_id:
            return [r for r in results if r.rule_pack_id == rule_pack_id]
        return results

    def get_rule_pack_metrics(self, rule_pack_id: str) -> Dict[str, Any]:
        pack = self._require(rule_pack_id)
        results = self.get_simulation_results(rule_pack_id)
        return {
            "rule_pack": {
                "id": pack.id,
                "name": pack.name,
                "version": pack.version,
                "total_rules": len(pack.rules),
                "active_rules": len(pack.active_rules),
            },
            "focus_areas": pack.focus_areas.model_dump(),
            "latest_simulation": results[-1].model_dump(mode="json") if results else None,
            "average_accuracy": fsum(r.accuracy for r in results) / len(results) if results else 0.0,
            "total_simulations": len(results),
        }
