"""
Ghana PCA Engine - Rule Pack Models

A rule pack is a versioned bundle of sector focus weights, risk tiers and
named match-criteria rules. Packs are validated on construction; the
simulation harness scores declarations against a pack's active rules.
"""

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field


class RuleCategory(str, Enum):
    PETROLEUM = "petroleum"
    TEXTILES = "textiles"
    VEHICLES = "vehicles"
    GENERAL = "general"


class RuleRiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


# =============================================================================
# RULES
# =============================================================================

class GhanaCompliance(BaseModel):
    vat_requirement: bool = False
    get_fund_requirement: bool = False
    nhil_requirement: bool = False
    covid_levy_requirement: bool = False
    ecowas_origin_check: bool = False
    atg_requirement: Optional[bool] = None


class RuleCriteria(BaseModel):
    value_threshold: Optional[float] = None
    weight_threshold: Optional[float] = None
    hs_code_patterns: List[str] = Field(default_factory=list)
    country_patterns: List[str] = Field(default_factory=list)
    risk_score_threshold: Optional[float] = None

    @property
    def hs_prefixes(self) -> List[str]:
        """HS patterns with the trailing wildcard stripped."""
        return [p.rstrip("*") for p in self.hs_code_patterns]


class ImpactMetrics(BaseModel):
    recovery_rate: float = Field(..., ge=0, le=1)
    false_positive_rate: float = Field(..., ge=0, le=1)
    processing_time: float = Field(..., ge=0, description="Seconds")
    accuracy: float = Field(..., ge=0, le=1)


class Rule(BaseModel):
    id: str = Field(..., min_length=1)
    name: str
    description: str = ""
    category: RuleCategory
    risk_level: RuleRiskLevel
    is_active: bool = True
    focus_areas: List[str] = Field(default_factory=list)
    ghana_compliance: GhanaCompliance = Field(default_factory=GhanaCompliance)
    criteria: RuleCriteria = Field(default_factory=RuleCriteria)
    impact_metrics: ImpactMetrics
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


# =============================================================================
# RULE PACK
# =============================================================================

class PetroleumFocus(BaseModel):
    enabled: bool = True
    weight: float = Field(..., ge=0, le=1)
    atg_monitoring: bool = True
    tax_compliance: bool = True


class TextilesFocus(BaseModel):
    enabled: bool = True
    weight: float = Field(..., ge=0, le=1)
    origin_verification: bool = True
    hs_classification: bool = True


class VehiclesFocus(BaseModel):
    enabled: bool = True
    weight: float = Field(..., ge=0, le=1)
    value_assessment: bool = True
    documentation: bool = True


class FocusAreas(BaseModel):
    petroleum: PetroleumFocus
    textiles: TextilesFocus
    vehicles: VehiclesFocus


class LowRiskTier(BaseModel):
    threshold: float
    actions: List[str] = Field(default_factory=list)
    auto_approval: bool = True


class MediumRiskTier(BaseModel):
    threshold: float
    actions: List[str] = Field(default_factory=list)
    manual_review: bool = True


class HighRiskTier(BaseModel):
    threshold: float
    actions: List[str] = Field(default_factory=list)
    immediate_audit: bool = True


class RiskLevels(BaseModel):
    low: LowRiskTier
    medium: MediumRiskTier
    high: HighRiskTier


class RulePack(BaseModel):
    id: str = Field(..., min_length=1)
    name: str
    version: str
    description: str = ""
    is_active: bool = True
    focus_areas: FocusAreas
    risk_levels: RiskLevels
    rules: List[Rule] = Field(default_factory=list)
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)

    @property
    def active_rules(self) -> List[Rule]:
        return [rule for rule in self.rules if rule.is_active]

    def get_rule(self, rule_id: str) -> Optional[Rule]:
        for rule in self.rules:
            if rule.id == rule_id:
                return rule
        return None


# =============================================================================
# SIMULATION OUTPUT
# =============================================================================

class SectorPerformance(BaseModel):
    accuracy: float = 0.0
    recovery: float = 0.0
    violations: int = 0


class SimulationResult(BaseModel):
    rule_pack_id: str
    test_dataset: str
    total_declarations: int
    violations_detected: int
    false_positives: int
    accuracy: float
    precision: float
    recall: float
    f1_score: float
    processing_time: float  # milliseconds
    sectoral_performance: Dict[str, SectorPerformance] = Field(default_factory=dict)
    ghana_compliance_rate: float
    recommendations: List[str] = Field(default_factory=list)
    simulated_at: datetime = Field(default_factory=datetime.utcnow)
