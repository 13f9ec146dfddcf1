"""Ghana PCA Engine - Rule Packs

Rule pack management and the what-if simulation harness.
"""
from .defaults import DEFAULT_RULE_PACK_ID, default_rule_pack
from .simulation import (
    DeclarationLabeler,
    GroundTruthLabeler,
    RandomLabeler,
    generate_recommendations,
    score_declaration,
    simulate_rule_pack,
)
from .service import RulePackNotFoundError, RulePackService, RulePackValidationError

__all__ = [
    "DEFAULT_RULE_PACK_ID",
    "default_rule_pack",
    "DeclarationLabeler",
    "GroundTruthLabeler",
    "RandomLabeler",
    "generate_recommendations",
    "score_declaration",
    "simulate_rule_pack",
    "RulePackNotFoundError",
    "RulePackService",
    "RulePackValidationError",
]
