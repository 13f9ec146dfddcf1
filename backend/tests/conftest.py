"""
Shared fixtures for the Ghana PCA Engine test suite.
"""
import pytest

from pca_engine.models.ssot import Declaration


def make_declaration(**overrides) -> Declaration:
    """A clean, fully compliant non-petroleum import unless overridden."""
    value = overrides.pop("value", 50000.0)
    ecowas_origin = overrides.get("ecowas_origin", False)
    taxes = {
        "vat": value * 0.15,
        "get_fund": value * 0.025,
        "nhil": value * 0.025,
        "covid": value * 0.01,
        "import_duty": 0.0 if ecowas_origin else value * 0.05,
    }
    data = {
        "declaration_id": "GH-DECL-0001",
        "hs_code": "84713000",
        "value": value,
        "origin_country": "DE",
        "destination_country": "GH",
        "declarant_tin": "TIN12345678",
        "payment_status": "paid",
        "taxes": taxes,
        "sector": "other",
        "declaration_date": "2024-03-15",
    }
    data.update(overrides)
    return Declaration.from_dict(data)


@pytest.fixture
def declaration_factory():
    return make_declaration


@pytest.fixture
def mixed_declarations():
    """Petroleum, textiles, vehicles and general cargo with known issues."""
    return [
        make_declaration(
            declaration_id="GH-PET-001",
            hs_code="27101990",
            value=100000.0,
            sector="petroleum",
            atg_applicable=True,
            atg_readings={"final_volume": 5000},
            volume=5882,
            shipment_id="SHIP-A",
        ),
        make_declaration(
            declaration_id="GH-TEX-001",
            hs_code="52010000",
            value=20000.0,
            sector="textiles",
            origin_country="CN",
            ecowas_origin=True,
            shipment_id="SHIP-A",
        ),
        make_declaration(
            declaration_id="GH-VEH-001",
            hs_code="87032300",
            value=45000.0,
            sector="vehicles",
            origin_country="JP",
            declarant_tin="TIN123",
            shipment_id="SHIP-B",
        ),
        make_declaration(
            declaration_id="GH-GEN-001",
            hs_code="84713000",
            value=800.0,
            shipment_id="SHIP-B",
        ),
        make_declaration(
            declaration_id="GH-TEX-002",
            hs_code="62034200",
            value=150000.0,
            sector="textiles",
            origin_country="NG",
            ecowas_origin=True,
            payment_status="pending",
            documents=["certificate-of-origin"],
        ),
    ]
