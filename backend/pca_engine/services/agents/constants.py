"""
Ghana PCA Engine - Agent Constants

Fixed reference tables shared by the agents and the orchestrator's
agent-selection policy.
"""
from typing import Dict, FrozenSet, Tuple

ECOWAS_COUNTRIES: FrozenSet[str] = frozenset({
    "NG", "BJ", "CI", "BF", "ML", "NE", "SN", "SL", "TG",
})

PETROLEUM_HS_PREFIXES: Tuple[str, ...] = ("2709", "2710", "2711", "2713")

# Statutory rates applied to declared value
VAT_RATE = 0.15
GET_FUND_RATE = 0.025
NHIL_RATE = 0.025
COVID_LEVY_RATE = 0.01
IMPORT_DUTY_RATE = 0.05

BASE_TAX_RATES: Dict[str, float] = {
    "vat": VAT_RATE,
    "get_fund": GET_FUND_RATE,
    "nhil": NHIL_RATE,
    "covid": COVID_LEVY_RATE,
}

# Minimum declared value for TSA reconciliation
TSA_MIN_VALUE = 1000.0


def is_petroleum(hs_code: str) -> bool:
    return bool(hs_code) and hs_code.startswith(PETROLEUM_HS_PREFIXES)


def is_ecowas_country(country: str) -> bool:
    return country in ECOWAS_COUNTRIES
