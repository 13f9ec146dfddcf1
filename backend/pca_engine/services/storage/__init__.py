"""Ghana PCA Engine - Storage

Repository port with an in-memory adapter (tests) and a SQLAlchemy
adapter (production).
"""
from .base import Repository
from .memory import InMemoryRepository
from .sql import (
    RecordCodec,
    SqlRepository,
    evidence_repository,
    execution_repository,
    report_repository,
    rule_pack_repository,
    simulation_repository,
)

__all__ = [
    "Repository",
    "InMemoryRepository",
    "RecordCodec",
    "SqlRepository",
    "evidence_repository",
    "execution_repository",
    "report_repository",
    "rule_pack_repository",
    "simulation_repository",
]
