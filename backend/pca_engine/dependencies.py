"""
Ghana PCA Engine - Service Wiring

Builds the services the API uses and hands them to routers through
FastAPI dependencies. One container per application instance.
"""
from dataclasses import dataclass
from typing import Optional

from fastapi import Request
from sqlalchemy.orm import sessionmaker

from .database import STORAGE_BACKEND, SessionLocal
from .services.audit import AuditOrchestrator, ExecutionQueue
from .services.evidence import EvidenceValidationService
from .services.reporting import MinisterReportService
from .services.rule_packs import RulePackService
from .services.storage import (
    InMemoryRepository,
    evidence_repository,
    execution_repository,
    report_repository,
    rule_pack_repository,
    simulation_repository,
)


@dataclass
class ServiceContainer:
    rule_packs: RulePackService
    orchestrator: AuditOrchestrator
    queue: ExecutionQueue
    reports: MinisterReportService
    evidence: EvidenceValidationService


def build_services(
    backend: str = STORAGE_BACKEND,
    session_factory: Optional[sessionmaker] = None,
) -> ServiceContainer:
    """Wire services over SQL repositories (backend="sql") or in-memory ones."""
    if backend == "memory":
        executions = InMemoryRepository()
        rule_packs = RulePackService(InMemoryRepository(), InMemoryRepository())
        reports = MinisterReportService(executions, InMemoryRepository())
        evidence = EvidenceValidationService(InMemoryRepository())
    elif backend == "sql":
        factory = session_factory or SessionLocal
        executions = execution_repository(factory)
        rule_packs = RulePackService(rule_pack_repository(factory), simulation_repository(factory))
        reports = MinisterReportService(executions, report_repository(factory))
        evidence = EvidenceValidationService(evidence_repository(factory))
    else:
        raise ValueError(f"Unknown storage backend: {backend}")

    orchestrator = AuditOrchestrator(execution_store=executions)
    return ServiceContainer(
        rule_packs=rule_packs,
        orchestrator=orchestrator,
        queue=ExecutionQueue(orchestrator),
        reports=reports,
        evidence=evidence,
    )


def get_services(request: Request) -> ServiceContainer:
    """Dependency for FastAPI - the application's service container."""
    return request.app.state.services
