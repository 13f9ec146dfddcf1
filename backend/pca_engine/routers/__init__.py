"""Ghana PCA Engine - API Routers"""
from .audits import router as audits_router
from .rule_packs import router as rule_packs_router
from .reports import router as reports_router
from .evidence import router as evidence_router

__all__ = [
    "audits_router",
    "rule_packs_router",
    "reports_router",
    "evidence_router",
]
