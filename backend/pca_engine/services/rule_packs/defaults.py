"""
Ghana PCA Engine - Default Rule Pack

ghana-rule-pack-v1: six rules across the petroleum, textiles and vehicles
focus areas. Built fresh on every call so callers may mutate the result.
"""
from ...models.rule_pack import (
    FocusAreas, GhanaCompliance, HighRiskTier, ImpactMetrics, LowRiskTier, MediumRiskTier,
    PetroleumFocus, RiskLevels, Rule, RuleCriteria, RulePack, TextilesFocus, VehiclesFocus,
)

DEFAULT_RULE_PACK_ID = "ghana-rule-pack-v1"

PETROLEUM_PATTERNS = ["2709*", "2710*", "2711*"]
TEXTILE_PATTERNS = ["520*", "530*", "540*", "550*", "560*", "570*", "580*", "590*", "600*", "610*"]
VEHICLE_PATTERNS = ["8701*", "8702*", "8703*", "8704*", "8705*"]
ECOWAS_COUNTRY_PATTERNS = ["NG", "BJ", "CI", "BF", "ML", "NE", "SN", "SL", "TG"]


def _levies(ecowas_origin_check: bool = False, atg_requirement=None) -> GhanaCompliance:
    return GhanaCompliance(
        vat_requirement=True,
        get_fund_requirement=True,
        nhil_requirement=True,
        covid_levy_requirement=True,
        ecowas_origin_check=ecowas_origin_check,
        atg_requirement=atg_requirement,
    )


def default_rules():
    return [
        # Petroleum
        Rule(
            id="petro-atg-001",
            name="ATG Shortfall Detection",
            description="Detects significant shortfalls in Automated Transfer Gauger readings for petroleum products",
            category="petroleum",
            risk_level="high",
            focus_areas=["atg-monitoring", "tax-compliance"],
            ghana_compliance=_levies(ecowas_origin_check=True, atg_requirement=True),
            criteria=RuleCriteria(
                hs_code_patterns=PETROLEUM_PATTERNS,
                value_threshold=50000,
                risk_score_threshold=75,
            ),
            impact_metrics=ImpactMetrics(
                recovery_rate=0.85, false_positive_rate=0.05, processing_time=2.3, accuracy=0.94,
            ),
        ),
        Rule(
            id="petro-tax-002",
            name="Petroleum Tax Compliance",
            description="Ensures proper calculation of VAT, GETFund, NHIL, and COVID levies on petroleum imports",
            category="petroleum",
            risk_level="medium",
            focus_areas=["tax-compliance"],
            ghana_compliance=_levies(),
            criteria=RuleCriteria(hs_code_patterns=PETROLEUM_PATTERNS, value_threshold=10000),
            impact_metrics=ImpactMetrics(
                recovery_rate=0.78, false_positive_rate=0.08, processing_time=1.8, accuracy=0.89,
            ),
        ),
        # Textiles
        Rule(
            id="textile-origin-003",
            name="ECOWAS Origin Verification",
            description="Verifies authenticity of ECOWAS origin claims for textile products",
            category="textiles",
            risk_level="high",
            focus_areas=["origin-verification"],
            ghana_compliance=_levies(ecowas_origin_check=True),
            criteria=RuleCriteria(
                hs_code_patterns=TEXTILE_PATTERNS,
                country_patterns=ECOWAS_COUNTRY_PATTERNS,
                risk_score_threshold=70,
            ),
            impact_metrics=ImpactMetrics(
                recovery_rate=0.72, false_positive_rate=0.12, processing_time=3.1, accuracy=0.87,
            ),
        ),
        Rule(
            id="textile-hs-004",
            name="Textiles HS Classification",
            description="Detects misclassification of textile products to reduce customs duties",
            category="textiles",
            risk_level="medium",
            focus_areas=["hs-classification"],
            ghana_compliance=_levies(),
            criteria=RuleCriteria(hs_code_patterns=TEXTILE_PATTERNS, value_threshold=25000),
            impact_metrics=ImpactMetrics(
                recovery_rate=0.68, false_positive_rate=0.15, processing_time=2.7, accuracy=0.82,
            ),
        ),
        # Vehicles
        Rule(
            id="vehicle-value-005",
            name="Vehicle Value Assessment",
            description="Detects under-declaration of vehicle values for tax evasion",
            category="vehicles",
            risk_level="high",
            focus_areas=["value-assessment"],
            ghana_compliance=_levies(),
            criteria=RuleCriteria(
                hs_code_patterns=VEHICLE_PATTERNS,
                value_threshold=10000,
                risk_score_threshold=80,
            ),
            impact_metrics=ImpactMetrics(
                recovery_rate=0.81, false_positive_rate=0.09, processing_time=2.1, accuracy=0.91,
            ),
        ),
        Rule(
            id="vehicle-docs-006",
            name="Vehicle Documentation Check",
            description="Verifies authenticity of vehicle documentation and certificates",
            category="vehicles",
            risk_level="medium",
            focus_areas=["documentation"],
            ghana_compliance=_levies(),
            criteria=RuleCriteria(hs_code_patterns=VEHICLE_PATTERNS, weight_threshold=1000),
            impact_metrics=ImpactMetrics(
                recovery_rate=0.64, false_positive_rate=0.18, processing_time=4.2, accuracy=0.79,
            ),
        ),
    ]


def default_rule_pack() -> RulePack:
    return RulePack(
        id=DEFAULT_RULE_PACK_ID,
        name="Ghana PCA Enhanced Rule Pack",
        version="1.0.0",
        description="Comprehensive rule pack for Ghana customs with sectoral focus areas",
        is_active=True,
        focus_areas=FocusAreas(
            petroleum=PetroleumFocus(weight=0.4, atg_monitoring=True, tax_compliance=True),
            textiles=TextilesFocus(weight=0.3, origin_verification=True, hs_classification=True),
            vehicles=VehiclesFocus(weight=0.3, value_assessment=True, documentation=True),
        ),
        risk_levels=RiskLevels(
            low=LowRiskTier(threshold=30, actions=["auto-approve", "log-for-review"], auto_approval=True),
            medium=MediumRiskTier(
                threshold=70, actions=["manual-review", "request-additional-docs"], manual_review=True,
            ),
            high=HighRiskTier(
                threshold=90,
                actions=["immediate-audit", "flag-authorities", "hold-shipment"],
                immediate_audit=True,
            ),
        ),
        rules=default_rules(),
    )
