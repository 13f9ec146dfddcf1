"""
Ghana PCA Engine - SQLAlchemy Repository

Stores each record as a JSON payload plus a few indexed columns.
A RecordCodec describes how one domain type maps onto its table.
"""
from __future__ import annotations
import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Dict, Generic, List, Optional, TypeVar

from sqlalchemy.orm import Session, sessionmaker

from ...models.db_models import (
    AuditExecutionDB, EvidencePackageDB, MinisterReportDB, RulePackDB, SimulationResultDB,
)
from ...models.evidence import EvidencePackage
from ...models.rule_pack import RulePack, SimulationResult
from ...models.ssot import ExecutionResult
from .base import Repository

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class RecordCodec(Generic[T]):
    encode: Callable[[T], Dict[str, Any]]
    decode: Callable[[Dict[str, Any]], T]
    columns: Callable[[T], Dict[str, Any]]


class SqlRepository(Repository[T]):
    """Repository backed by one ORM table with a JSON `payload` column."""

    def __init__(self, session_factory: sessionmaker, model, codec: RecordCodec):
        self.session_factory = session_factory
        self.model = model
        self.codec = codec

    def _session(self) -> Session:
        return self.session_factory()

    def get(self, item_id: str) -> Optional[T]:
        db = self._session()
        try:
            row = db.query(self.model).filter(self.model.id == item_id).first()
            return self.codec.decode(row.payload) if row else None
        finally:
            db.close()

    def put(self, item_id: str, item: T) -> T:
        db = self._session()
        try:
            row = db.query(self.model).filter(self.model.id == item_id).first()
            if row is None:
                row = self.model(id=item_id)
                db.add(row)
            row.payload = self.codec.encode(item)
            for column, value in self.codec.columns(item).items():
                setattr(row, column, value)
            if hasattr(row, "updated_at"):
                row.updated_at = datetime.utcnow()
            db.commit()
            return item
        except Exception:
            db.rollback()
            logger.error(f"Failed to persist {self.model.__tablename__}/{item_id}")
            raise
        finally:
            db.close()

    def list(self) -> List[T]:
        db = self._session()
        try:
            rows = db.query(self.model).order_by(self.model.created_at).all()
            return [self.codec.decode(row.payload) for row in rows]
        finally:
            db.close()

    def delete(self, item_id: str) -> bool:
        db = self._session()
        try:
            deleted = db.query(self.model).filter(self.model.id == item_id).delete()
            db.commit()
            return deleted > 0
        finally:
            db.close()


# =============================================================================
# CODECS
# =============================================================================

RULE_PACK_CODEC = RecordCodec(
    encode=lambda pack: pack.model_dump(mode="json"),
    decode=RulePack.model_validate,
    columns=lambda pack: {"name": pack.name, "version": pack.version, "is_active": pack.is_active},
)

EXECUTION_CODEC = RecordCodec(
    encode=lambda execution: execution.to_dict(),
    decode=ExecutionResult.from_dict,
    columns=lambda execution: {
        "case_id": execution.case_id,
        "status": execution.status.value,
        "total_declarations": execution.total_declarations,
        "processed_declarations": execution.processed_declarations,
        "failed_declarations": execution.failed_declarations,
    },
)

SIMULATION_CODEC = RecordCodec(
    encode=lambda result: result.model_dump(mode="json"),
    decode=SimulationResult.model_validate,
    columns=lambda result: {
        "rule_pack_id": result.rule_pack_id,
        "accuracy": result.accuracy,
        "precision": result.precision,
    },
)


EVIDENCE_CODEC = RecordCodec(
    encode=lambda package: package.model_dump(mode="json"),
    decode=EvidencePackage.model_validate,
    columns=lambda package: {
        "declaration_id": package.declaration_id,
        "overall_score": package.overall_score,
        "overall_compliance": package.overall_compliance,
    },
)


def _report_codec() -> RecordCodec:
    from ..reporting.minister_report import MinisterReport

    return RecordCodec(
        encode=lambda report: report.to_dict(),
        decode=MinisterReport.from_dict,
        columns=lambda report: {"case_id": report.case_id, "report_type": report.report_type},
    )


def rule_pack_repository(session_factory: sessionmaker) -> SqlRepository:
    return SqlRepository(session_factory, RulePackDB, RULE_PACK_CODEC)


def execution_repository(session_factory: sessionmaker) -> SqlRepository:
    return SqlRepository(session_factory, AuditExecutionDB, EXECUTION_CODEC)


def simulation_repository(session_factory: sessionmaker) -> SqlRepository:
    return SqlRepository(session_factory, SimulationResultDB, SIMULATION_CODEC)


def report_repository(session_factory: sessionmaker) -> SqlRepository:
    return SqlRepository(session_factory, MinisterReportDB, _report_codec())


def evidence_repository(session_factory: sessionmaker) -> SqlRepository:
    return SqlRepository(session_factory, EvidencePackageDB, EVIDENCE_CODEC)
