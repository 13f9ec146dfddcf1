"""
Ghana PCA Engine - Declaration Filtering

Scope inclusion followed by the common filters. All present criteria
compose as a logical AND. Input order is preserved.
"""
from __future__ import annotations
from typing import Callable, List

from ...models.ssot import Declaration
from .config import AuditExecutionConfig, AuditScope

DeclarationPredicate = Callable[[Declaration], bool]


def _scope_predicate(scope: AuditScope, config: AuditExecutionConfig) -> DeclarationPredicate:
    filters = config.target_filters

    if scope == AuditScope.HS_CODES:
        prefixes = tuple(filters.hs_codes)
        return lambda d: d.hs_code.startswith(prefixes)

    if scope == AuditScope.SHIPMENTS:
        shipment_ids = set(filters.shipment_ids)
        return lambda d: d.shipment_id in shipment_ids

    if scope == AuditScope.DECLARATIONS:
        declaration_ids = set(filters.declaration_ids)
        return lambda d: d.declaration_id in declaration_ids

    return lambda d: True


def build_predicates(config: AuditExecutionConfig) -> List[DeclarationPredicate]:
    """Translate a validated configuration into declaration predicates."""
    scope = AuditScope(config.scope)
    filters = config.target_filters
    predicates = [_scope_predicate(scope, config)]

    if filters.date_range is not None:
        start, end = filters.date_range.parse()
        predicates.append(
            lambda d: d.declaration_date is not None and start <= d.declaration_date <= end
        )

    if filters.countries:
        countries = set(filters.countries)
        predicates.append(
            lambda d: d.origin_country in countries or d.destination_country in countries
        )

    if filters.risk_threshold is not None:
        threshold = filters.risk_threshold
        predicates.append(lambda d: d.risk_score >= threshold)

    if filters.sectors:
        sectors = set(filters.sectors)
        predicates.append(lambda d: d.sector.value in sectors)

    return predicates


def filter_declarations(
    declarations: List[Declaration], config: AuditExecutionConfig
) -> List[Declaration]:
    predicates = build_predicates(config)
    return [d for d in declarations if all(p(d) for p in predicates)]
