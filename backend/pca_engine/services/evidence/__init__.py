"""Ghana PCA Engine - Evidence Validation

Supporting-document checks for declarations, stored as evidence packages.
"""
from .extraction import DocumentExtractor, SampleDataExtractor
from .rules import GHANA_PORTS, port_problem, recommendations, risk_level, tin_problem, validation_score
from .service import EvidenceValidationService

__all__ = [
    "DocumentExtractor",
    "SampleDataExtractor",
    "GHANA_PORTS",
    "port_problem",
    "recommendations",
    "risk_level",
    "tin_problem",
    "validation_score",
    "EvidenceValidationService",
]
