"""
Ghana PCA Engine - FastAPI Application

Main entry point for the post-clearance audit backend.

Architecture:
- Declaration[] + AuditExecutionConfig → Orchestrator → ExecutionResult (SSOT)
- ExecutionResult → MinisterReportService → MinisterReport
- RulePack + Declaration[] → Simulation → SimulationResult
- EvidenceDocument[] (+ Declaration) → EvidenceValidationService → EvidencePackage
"""
import logging
import os
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from .database import STORAGE_BACKEND, init_db
from .dependencies import ServiceContainer, build_services
from .routers import audits_router, evidence_router, reports_router, rule_packs_router

logging.basicConfig(
    level=os.getenv("PCA_LOG_LEVEL", "INFO").upper(),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Initialize storage and seed the default rule pack on startup."""
    if getattr(app.state, "services", None) is None:
        if STORAGE_BACKEND == "sql":
            init_db()
        app.state.services = build_services()
    app.state.services.rule_packs.ensure_default_rule_pack()
    logger.info("Ghana PCA Engine started")
    yield


def create_app(services: Optional[ServiceContainer] = None) -> FastAPI:
    """Build the application; pass a container to bypass env-driven wiring."""
    app = FastAPI(
        lifespan=lifespan,
        title="Ghana PCA Engine",
        description="""
    Ghana PCA Engine - Post-Clearance Audit System

    Runs specialized audit agents over customs declarations, aggregates
    their findings into Ghana-specific metrics and produces minister-level
    reports.

    ## Pipeline
    1. **Filtering**: Declarations narrowed by the audit scope and filters
    2. **Agents**: ECOWAS origin, petroleum ATG, tax compliance, TSA reconciliation
    3. **Aggregation**: Violations, recovery, risk bands and sector breakdown
    4. **Reporting**: Minister reports from completed executions
    5. **Evidence**: Supporting documents validated against Ghana requirements

    ## Key Principles
    - Agents are deterministic check lists; no network calls
    - Aggregates are identical for sequential and parallel runs
    - Every execution reaches exactly one terminal status
    """,
        version=VERSION,
        docs_url="/docs",
        redoc_url="/redoc",
    )
    app.state.services = services

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(audits_router)
    app.include_router(rule_packs_router)
    app.include_router(reports_router)
    app.include_router(evidence_router)

    @app.get("/")
    async def root():
        """Root endpoint - API information."""
        return {
            "name": "Ghana PCA Engine",
            "version": VERSION,
            "description": "Post-Clearance Audit System",
            "docs": "/docs",
            "agents": [
                "ecowas-origin",
                "petroleum-atg",
                "tax-compliance",
                "tsa-reconciliation",
            ],
        }

    @app.get("/health")
    async def health_check():
        """Health check endpoint."""
        return {"status": "healthy", "version": VERSION}

    return app


app = create_app()


# For running with: python -m pca_engine.main
if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8001)
