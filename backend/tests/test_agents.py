"""
Violation-Detection Agent Tests

Covers:
- ECOWAS origin fraud, route diversion and under-valuation
- Petroleum ATG shortfall and the non-petroleum no-op
- Tax liability arithmetic, TIN, exemptions and payment checks
- TSA reference and payment reconciliation
- Check folding (penalty per finding, cap at 100)
"""
import pytest

from pca_engine.models.ssot import AgentType, FindingSeverity
from pca_engine.services.agents import (
    BaseAgent,
    Check,
    EcowasOriginAgent,
    MalformedDeclarationError,
    PetroleumATGAgent,
    TaxComplianceAgent,
    TSAReconciliationAgent,
    default_agents,
    tax_gap,
    total_tax_liability,
)
from pca_engine.services.agents.payment import tsa_status
from pca_engine.services.agents.petroleum import identify_petroleum_type, shortfall_litres


def finding_types(result):
    return [f.finding_type for f in result.findings]


# Statutory lines for GHS 10,000 of HS 271019 (15% excise)
PETROLEUM_TAXES = {"vat": 1500.0, "get_fund": 250.0, "nhil": 250.0, "covid": 100.0, "excise": 1500.0}


# =============================================================================
# TEST: EcowasOriginAgent
# =============================================================================

class TestEcowasOriginAgent:

    @pytest.fixture
    def agent(self):
        return EcowasOriginAgent()

    def test_agent_identity(self, agent):
        assert agent.agent_type == AgentType.ECOWAS_ORIGIN
        assert agent.agent_id == "ecowas-origin-001"

    @pytest.mark.parametrize("country", ["CN", "AE", "IN", "US", "GB"])
    def test_non_ecowas_origin_claim_is_fraud(self, agent, declaration_factory, country):
        """ECOWAS claim from outside the bloc yields exactly one critical origin-fraud finding."""
        declaration = declaration_factory(origin_country=country, ecowas_origin=True)
        result = agent.analyze(declaration)

        assert result.has_violation is True
        fraud = [f for f in result.findings if f.finding_type == "origin-fraud"]
        assert len(fraud) == 1
        assert fraud[0].severity == FindingSeverity.CRITICAL

    def test_petroleum_claimed_from_china(self, agent, declaration_factory):
        declaration = declaration_factory(hs_code="27101990", origin_country="CN", ecowas_origin=True)
        result = agent.analyze(declaration)

        assert result.has_violation is True
        assert finding_types(result).count("origin-fraud") == 1
        assert result.confidence == 0.95
        # origin fraud + missing certificate of origin
        assert result.risk_score == 50

    def test_ecowas_member_with_certificate_is_clean(self, agent, declaration_factory):
        declaration = declaration_factory(
            origin_country="NG", ecowas_origin=True, documents=["certificate-of-origin"]
        )
        result = agent.analyze(declaration)

        assert result.has_violation is False
        assert result.findings == []
        assert result.risk_score == 0
        assert result.confidence == 0.85
        assert result.metadata["ecowas_compliance"] is True
        assert result.metadata["verified_origin"] == "NG"

    def test_missing_certificate_adds_risk_without_violation(self, agent, declaration_factory):
        declaration = declaration_factory(origin_country="TG", ecowas_origin=True)
        result = agent.analyze(declaration)

        assert result.has_violation is False
        assert finding_types(result) == ["missing-document"]
        assert result.risk_score == 10

    def test_china_textile_route_diversion(self, agent, declaration_factory):
        declaration = declaration_factory(
            hs_code="52010000", value=20000.0, origin_country="CN", ecowas_origin=True
        )
        result = agent.analyze(declaration)

        types = finding_types(result)
        assert "origin-fraud" in types
        assert "suspicious-pattern" in types
        assert "under-valuation" in types
        # 40 + 25 + 20 + 10
        assert result.risk_score == 95
        assert result.metadata["ecowas_compliance"] is False

    def test_each_suspicious_pattern_is_charged(self, agent, declaration_factory):
        """CN->GH and an AE transit each add their own penalty; total is capped."""
        declaration = declaration_factory(
            hs_code="62034200",
            value=10000.0,
            origin_country="CN",
            ecowas_origin=True,
            transit_countries=["AE"],
        )
        result = agent.analyze(declaration)

        assert finding_types(result).count("suspicious-pattern") == 2
        assert result.risk_score == 100

    def test_no_ecowas_claim_is_not_checked(self, agent, declaration_factory):
        declaration = declaration_factory(hs_code="52010000", origin_country="CN")
        result = agent.analyze(declaration)

        assert result.has_violation is False
        assert result.findings == []


# =============================================================================
# TEST: PetroleumATGAgent
# =============================================================================

class TestPetroleumATGAgent:

    @pytest.fixture
    def agent(self):
        return PetroleumATGAgent()

    @pytest.fixture
    def shortfall_declaration(self, declaration_factory):
        return declaration_factory(
            hs_code="27101990",
            value=100000.0,
            ecowas_origin=True,
            origin_country="NG",
            atg_applicable=True,
            atg_readings={"final_volume": 5000},
            volume=5882,
            sector="petroleum",
        )

    def test_atg_shortfall_scenario(self, agent, shortfall_declaration):
        result = agent.analyze(shortfall_declaration)

        assert result.has_violation is True
        shortfalls = [f for f in result.findings if f.finding_type == "atg-shortfall"]
        assert len(shortfalls) == 1
        assert "882 liters" in shortfalls[0].description
        assert shortfalls[0].severity == FindingSeverity.CRITICAL
        assert result.risk_score >= 15

    def test_shortfall_metadata(self, agent, shortfall_declaration):
        result = agent.analyze(shortfall_declaration)

        assert result.metadata["shortfall_litres"] == pytest.approx(882)
        assert result.metadata["estimated_shortfall"] == pytest.approx(882 * 100000 / 5882)
        assert result.metadata["atg_compliant"] is False
        assert result.metadata["petroleum_type"] == "Other Oils"
        assert result.metadata["sector"] == "petroleum"
        assert result.recovery_estimate == pytest.approx(882 * 100000 / 5882)

    @pytest.mark.parametrize("hs_code", ["52010000", "87032300", "84713000", "", "1027"])
    def test_non_petroleum_is_a_no_op(self, agent, declaration_factory, hs_code):
        """Non-petroleum declarations return the neutral result whatever else they contain."""
        declaration = declaration_factory(
            hs_code=hs_code,
            atg_applicable=False,
            atg_readings={"final_volume": 1},
            volume=99999,
            weight=1,
            taxes=None,
            declarant_tin=None,
        )
        result = agent.analyze(declaration)

        assert result.has_violation is False
        assert result.confidence == 1.0
        assert result.risk_score == 0
        assert result.findings == []

    def test_atg_not_applied(self, agent, declaration_factory):
        declaration = declaration_factory(hs_code="27090000", atg_applicable=False)
        result = agent.analyze(declaration)

        assert result.has_violation is True
        assert "atg-not-applied" in finding_types(result)
        assert "missing-atg-certificate" not in finding_types(result)

    def test_reading_within_tolerance_is_not_a_shortfall(self, agent, declaration_factory):
        declaration = declaration_factory(
            hs_code="27101990",
            atg_applicable=True,
            atg_readings={"final_volume": 9600},
            volume=10000,
            atg_certificate="ATG-2024-001",
            quality_certificate="QC-2024-001",
        )
        result = agent.analyze(declaration)

        assert "atg-shortfall" not in finding_types(result)

    def test_missing_volume_skips_shortfall(self, agent, declaration_factory):
        declaration = declaration_factory(
            hs_code="27101990", atg_applicable=True, atg_readings={"final_volume": 100}
        )
        result = agent.analyze(declaration)

        assert "atg-shortfall" not in finding_types(result)
        assert shortfall_litres(declaration) is None

    def test_advisory_checks_do_not_flag_violation(self, agent, declaration_factory):
        """Weight, tax and quality findings add risk but not a violation."""
        declaration = declaration_factory(
            hs_code="27111200",
            atg_applicable=True,
            atg_certificate="ATG-2024-002",
            volume=10000,
            weight=2000,
        )
        result = agent.analyze(declaration)

        types = finding_types(result)
        assert "volume-weight-discrepancy" in types
        assert "missing-quality-certificate" in types
        assert "tax-discrepancy" in types
        assert result.has_violation is False
        assert result.risk_score > 0

    @pytest.fixture
    def petroleum(self, declaration_factory):
        """Builds a petroleum import that passes every check until overridden."""
        def build(**overrides):
            data = {
                "hs_code": "27101990",
                "value": 10000.0,
                "sector": "petroleum",
                "atg_applicable": True,
                "atg_certificate": "ATG-2024-001",
                "quality_certificate": "QC-2024-001",
                "volume": 10000.0,
                "weight": 8500.0,
                "atg_readings": {"final_volume": 10000.0},
                "taxes": dict(PETROLEUM_TAXES),
            }
            data.update(overrides)
            return declaration_factory(**data)
        return build

    def test_compliant_petroleum(self, agent, petroleum):
        result = agent.analyze(petroleum())

        assert result.findings == []
        assert result.risk_score == 0
        assert result.metadata["atg_compliant"] is True
        assert result.metadata["tax_compliant"] is True

    @pytest.mark.parametrize("overrides, finding_type, penalty, violation", [
        ({"atg_applicable": False}, "atg-not-applied", 30, True),
        ({"atg_certificate": None}, "missing-atg-certificate", 15, True),
        ({"atg_readings": {"final_volume": 9000.0}}, "atg-shortfall", 15, True),
        ({"weight": 5000.0}, "volume-weight-discrepancy", 20, False),
        ({"taxes": {**PETROLEUM_TAXES, "vat": 0.0}}, "tax-discrepancy", 10, False),
        ({"quality_certificate": None}, "missing-quality-certificate", 15, False),
    ])
    def test_penalty_per_check(self, agent, petroleum, overrides, finding_type, penalty, violation):
        result = agent.analyze(petroleum(**overrides))

        assert finding_types(result) == [finding_type]
        assert result.risk_score == penalty
        assert result.has_violation is violation

    def test_tax_discrepancy_charged_per_line(self, agent, petroleum):
        result = agent.analyze(petroleum(taxes={**PETROLEUM_TAXES, "vat": 0.0, "excise": 0.0}))

        assert finding_types(result) == ["tax-discrepancy", "tax-discrepancy"]
        assert result.risk_score == 20
        assert result.metadata["tax_compliant"] is False

    @pytest.mark.parametrize("overrides, risk_score, confidence", [
        ({}, 0, 0.90),
        ({"atg_applicable": False, "taxes": {**PETROLEUM_TAXES, "vat": 0.0}}, 40, 0.90),
        ({"atg_applicable": False, "quality_certificate": None}, 45, 0.88),
        (
            {"atg_applicable": False, "weight": 5000.0,
             "taxes": {**PETROLEUM_TAXES, "vat": 0.0, "nhil": 0.0}},
            70, 0.88,
        ),
        (
            {"atg_applicable": False, "weight": 5000.0, "quality_certificate": None,
             "taxes": {**PETROLEUM_TAXES, "vat": 0.0}},
            75, 0.96,
        ),
    ])
    def test_confidence_tiers(self, agent, petroleum, overrides, risk_score, confidence):
        result = agent.analyze(petroleum(**overrides))

        assert result.risk_score == risk_score
        assert result.confidence == confidence

    def test_petroleum_types(self):
        assert identify_petroleum_type("27090010") == "Crude Petroleum Oil"
        assert identify_petroleum_type("27111200") == "Propane"
        assert identify_petroleum_type("27132000") == "Petroleum Bitumen"
        assert identify_petroleum_type("27100000") == "Unknown Petroleum Product"


# =============================================================================
# TEST: TaxComplianceAgent
# =============================================================================

class TestTaxComplianceAgent:

    @pytest.fixture
    def agent(self):
        return TaxComplianceAgent()

    @pytest.mark.parametrize("ecowas_origin", [True, False])
    @pytest.mark.parametrize("value", [0.0, 999.99, 12345.67, 1000000.0])
    def test_total_tax_liability_is_exact(self, declaration_factory, value, ecowas_origin):
        """Liability depends only on value and ECOWAS origin, never on stated taxes."""
        declaration = declaration_factory(value=value, ecowas_origin=ecowas_origin)
        expected = value * (0.15 + 0.025 + 0.025 + 0.01)
        if not ecowas_origin:
            expected += value * 0.05

        assert total_tax_liability(declaration) == expected

        no_taxes = declaration_factory(value=value, ecowas_origin=ecowas_origin, taxes=None)
        bogus = declaration_factory(
            value=value, ecowas_origin=ecowas_origin, taxes={"vat": 1.0, "nhil": 99999.0}
        )
        assert total_tax_liability(no_taxes) == expected
        assert total_tax_liability(bogus) == expected

    def test_compliant_declaration(self, agent, declaration_factory):
        result = agent.analyze(declaration_factory())

        assert result.has_violation is False
        assert result.risk_score == 0
        assert result.confidence == 1.0
        assert result.metadata["tax_gap"] == pytest.approx(0.0, abs=1e-6)
        assert result.metadata["compliance_score"] == 100

    def test_short_tin_is_invalid(self, agent, declaration_factory):
        result = agent.analyze(declaration_factory(declarant_tin="TIN123"))

        tin = [f for f in result.findings if f.finding_type == "invalid-tin-format"]
        assert len(tin) == 1
        assert tin[0].severity == FindingSeverity.HIGH

    @pytest.mark.parametrize("tin", ["TIN1234567", "TIN1234567890"])
    def test_valid_tin_lengths(self, agent, declaration_factory, tin):
        result = agent.analyze(declaration_factory(declarant_tin=tin))
        assert "invalid-tin-format" not in finding_types(result)

    def test_missing_tin(self, agent, declaration_factory):
        result = agent.analyze(declaration_factory(declarant_tin=None))
        assert finding_types(result) == ["missing-tin"]
        assert result.risk_score == 15

    def test_missing_tax_breakdown(self, agent, declaration_factory):
        declaration = declaration_factory(taxes=None)
        result = agent.analyze(declaration)

        assert result.has_violation is True
        assert "missing-tax-breakdown" in finding_types(result)
        assert result.metadata["recovery_amount"] == pytest.approx(total_tax_liability(declaration))

    def test_understated_vat(self, agent, declaration_factory):
        declaration = declaration_factory(
            value=10000.0,
            taxes={"vat": 1000.0, "get_fund": 250.0, "nhil": 250.0, "covid": 100.0, "import_duty": 500.0},
        )
        result = agent.analyze(declaration)

        errors = [f for f in result.findings if f.finding_type == "tax-calculation-error"]
        assert len(errors) == 1
        assert errors[0].severity == FindingSeverity.HIGH
        assert "VAT" in errors[0].description
        assert result.risk_score == 12
        assert tax_gap(declaration) == pytest.approx(500.0)

    @pytest.mark.parametrize("declared_vat, severity", [
        (1480.0, None),
        (1400.0, FindingSeverity.MEDIUM),
        (1300.0, FindingSeverity.HIGH),
        (1700.0, FindingSeverity.HIGH),
    ])
    def test_tax_error_severity_boundary(self, agent, declaration_factory, declared_vat, severity):
        """Within 2% passes; up to 10% of expected is medium; beyond that is high."""
        declaration = declaration_factory(
            value=10000.0,
            taxes={"vat": declared_vat, "get_fund": 250.0, "nhil": 250.0, "covid": 100.0, "import_duty": 500.0},
        )
        result = agent.analyze(declaration)

        errors = [f for f in result.findings if f.finding_type == "tax-calculation-error"]
        if severity is None:
            assert errors == []
            assert result.risk_score == 0
        else:
            assert [e.severity for e in errors] == [severity]
            assert result.risk_score == 12

    def test_invalid_exemptions_each_charged(self, agent, declaration_factory):
        declaration = declaration_factory(exemptions=["diplomatic", "friend-of-minister", "vip"])
        result = agent.analyze(declaration)

        assert finding_types(result).count("invalid-exemption") == 2
        assert result.risk_score == 40

    def test_unpaid_high_value(self, agent, declaration_factory):
        result = agent.analyze(declaration_factory(value=150000.0, payment_status="pending"))
        assert "unpaid-high-value" in finding_types(result)

    def test_malformed_declaration_raises(self, agent, declaration_factory):
        with pytest.raises(MalformedDeclarationError):
            agent.analyze(declaration_factory(declaration_id=""))


# =============================================================================
# TEST: TSAReconciliationAgent
# =============================================================================

class TestTSAReconciliationAgent:

    @pytest.fixture
    def agent(self):
        return TSAReconciliationAgent()

    def test_missing_reference(self, agent, declaration_factory):
        declaration = declaration_factory()
        result = agent.analyze(declaration)

        assert result.has_violation is True
        assert finding_types(result) == ["missing-tsa-reference"]
        assert result.risk_score == 25
        assert result.metadata["tsa_status"] == "not-initiated"

    def test_reconciled_payment(self, agent, declaration_factory):
        base = declaration_factory(value=20000.0)
        declaration = declaration_factory(
            value=20000.0,
            tsa_reference="TSA202400000001",
            payment_confirmation={"amount": total_tax_liability(base), "verified": True},
            payment_method="bank-transfer",
        )
        result = agent.analyze(declaration)

        assert result.has_violation is False
        assert result.findings == []
        assert result.metadata["tsa_status"] == "verified"
        assert result.metadata["reconciled_amount"] == pytest.approx(total_tax_liability(base))
        assert result.metadata["payment_method"] == "bank-transfer"

    def test_invalid_reference_and_mismatch(self, agent, declaration_factory):
        declaration = declaration_factory(
            value=20000.0,
            tsa_reference="TSA-123",
            payment_confirmation={"amount": 100.0, "verified": False},
        )
        result = agent.analyze(declaration)

        assert finding_types(result) == ["invalid-tsa-reference", "payment-mismatch"]
        assert result.risk_score == 40
        assert tsa_status(declaration) == "unverified"

    def test_exchange_rate_discrepancy(self, agent, declaration_factory):
        declaration = declaration_factory(
            currency="USD", exchange_rate=14.0, tsa_reference="TSA202400000001"
        )
        result = agent.analyze(declaration)

        assert finding_types(result) == ["exchange-rate-discrepancy"]
        assert tsa_status(declaration) == "pending"

    def test_local_currency_skips_exchange_rate(self, agent, declaration_factory):
        declaration = declaration_factory(exchange_rate=99.0, tsa_reference="TSA202400000001")
        assert "exchange-rate-discrepancy" not in finding_types(agent.analyze(declaration))


# =============================================================================
# TEST: Check folding
# =============================================================================

class TestCheckFolding:

    def test_penalty_per_finding_capped(self, declaration_factory):
        from pca_engine.models.ssot import Finding

        def three_hits(declaration):
            return [
                Finding(finding_type="x", description="x", severity=FindingSeverity.LOW)
                for _ in range(3)
            ]

        class ThreeHitAgent(BaseAgent):
            agent_type = AgentType.TAX_COMPLIANCE

            def checks(self):
                return [Check("three", 45, three_hits)]

        result = ThreeHitAgent().analyze(declaration_factory())
        assert len(result.findings) == 3
        assert result.risk_score == 100
        assert result.has_violation is True

    def test_agents_do_not_mutate_input(self, declaration_factory):
        declaration = declaration_factory(
            hs_code="27101990", origin_country="CN", ecowas_origin=True, taxes=None
        )
        before = declaration.to_dict()
        for agent in default_agents().values():
            agent.analyze(declaration)
        assert declaration.to_dict() == before

    def test_default_registry(self):
        agents = default_agents()
        assert set(agents) == set(AgentType)
        assert agents[AgentType.TSA_RECONCILIATION].agent_id == "tsa-reconciliation-004"
