"""
Ghana PCA Engine - SQLAlchemy ORM Models
Each table keeps a few indexed lookup columns plus the full record as JSON
"""
from datetime import datetime
from sqlalchemy import Column, String, Integer, Float, DateTime, JSON, Boolean
from ..database import Base


class RulePackDB(Base):
    """Persisted rule pack."""
    __tablename__ = "rule_packs"

    id = Column(String(100), primary_key=True)
    name = Column(String(255), nullable=False)
    version = Column(String(50))
    is_active = Column(Boolean, default=True, index=True)

    # Full RulePack as JSON
    payload = Column(JSON, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class AuditExecutionDB(Base):
    """Persisted audit execution (ExecutionResult, SSOT #3)."""
    __tablename__ = "audit_executions"

    id = Column(String(64), primary_key=True)
    case_id = Column(String(100), nullable=False, index=True)
    status = Column(String(20), nullable=False, index=True)

    total_declarations = Column(Integer, default=0)
    processed_declarations = Column(Integer, default=0)
    failed_declarations = Column(Integer, default=0)

    # Full ExecutionResult as JSON
    payload = Column(JSON, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)


class SimulationResultDB(Base):
    """Persisted rule pack simulation run."""
    __tablename__ = "simulation_results"

    id = Column(String(64), primary_key=True)
    rule_pack_id = Column(String(100), nullable=False, index=True)
    accuracy = Column(Float)
    precision = Column(Float)

    payload = Column(JSON, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)


class MinisterReportDB(Base):
    """Persisted minister report."""
    __tablename__ = "minister_reports"

    id = Column(String(64), primary_key=True)
    case_id = Column(String(100), nullable=False, index=True)
    report_type = Column(String(50))

    payload = Column(JSON, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)


class EvidencePackageDB(Base):
    """Persisted evidence package."""
    __tablename__ = "evidence_packages"

    id = Column(String(64), primary_key=True)
    declaration_id = Column(String(100), nullable=False, index=True)
    overall_score = Column(Float)
    overall_compliance = Column(Boolean, default=False)

    payload = Column(JSON, nullable=False)

    created_at = Column(DateTime, default=datetime.utcnow)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow)
