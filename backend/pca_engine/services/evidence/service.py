"""
Evidence Validation Service

Validates the supporting documents of a declaration and keeps the
resulting evidence packages behind the storage port.

Key responsibilities:
- Validate one document (extract fields when not supplied, run the
  type's rules, score, risk level, recommendations)
- Validate and store a package of documents for a declaration
- Package lookups and validation metrics across stored packages
"""
from collections import Counter
from datetime import datetime
from time import perf_counter
from typing import Any, Dict, List, Optional
from uuid import uuid4
import logging

from ...models.evidence import (
    DocumentValidation,
    EvidenceDocument,
    EvidencePackage,
    GhanaDocumentCompliance,
    IssueType,
)
from ...models.ssot import Declaration, FindingSeverity
from ..storage import InMemoryRepository, Repository
from .extraction import DocumentExtractor, SampleDataExtractor
from .rules import PASS_SCORE, recommendations, risk_level, validation_score, validator_for

logger = logging.getLogger(__name__)

COMMON_ISSUE_LIMIT = 10


class EvidenceValidationService:
    """
    Evidence package validation and store.

    Construct with an explicit repository and extractor; in-memory storage
    and the sample extractor are used when omitted.
    """

    def __init__(
        self,
        store: Optional[Repository[EvidencePackage]] = None,
        extractor: Optional[DocumentExtractor] = None,
    ):
        self.store = store if store is not None else InMemoryRepository()
        self.extractor = extractor if extractor is not None else SampleDataExtractor()

    # =========================================================================
    # VALIDATION
    # =========================================================================

    def validate_document(
        self,
        document: EvidenceDocument,
        declaration: Optional[Declaration] = None,
    ) -> DocumentValidation:
        """Validate one document, optionally cross-checked against its declaration."""
        start = perf_counter()

        data = document.extracted_data
        if data is None:
            data = self.extractor.extract(document)

        compliance = GhanaDocumentCompliance()
        issues = validator_for(document.type)(data, declaration, compliance)

        score = validation_score(issues)
        has_errors = any(issue.type == IssueType.ERROR for issue in issues)

        return DocumentValidation(
            document_id=document.id,
            is_valid=score >= PASS_SCORE and not has_errors,
            validation_score=score,
            issues=issues,
            ghana_compliance=compliance,
            recommendations=recommendations(issues, document.type),
            risk_level=risk_level(issues, score),
            processing_time=(perf_counter() - start) * 1000,
        )

    def validate_evidence_package(
        self,
        declaration_id: str,
        documents: List[EvidenceDocument],
        declaration: Optional[Declaration] = None,
    ) -> EvidencePackage:
        results = [self.validate_document(document, declaration) for document in documents]

        overall_score = sum(r.validation_score for r in results) / len(results) if results else 0.0
        all_compliant = all(
            r.is_valid and r.risk_level != FindingSeverity.CRITICAL for r in results
        )

        now = datetime.utcnow()
        package = EvidencePackage(
            id=f"ep-{uuid4().hex[:12]}",
            declaration_id=declaration_id,
            documents=documents,
            validation_results=results,
            overall_score=overall_score,
            overall_compliance=all_compliant and overall_score >= PASS_SCORE,
            created_at=now,
            updated_at=now,
        )

        logger.info(
            f"Evidence package {package.id} for {declaration_id}: "
            f"{len(documents)} documents, score {overall_score:.1f}, "
            f"{'compliant' if package.overall_compliance else 'non-compliant'}"
        )
        return self.store.put(package.id, package)

    # =========================================================================
    # PACKAGES
    # =========================================================================

    def get_evidence_package(self, package_id: str) -> Optional[EvidencePackage]:
        return self.store.get(package_id)

    def list_evidence_packages(self) -> List[EvidencePackage]:
        return self.store.list()

    def get_evidence_packages_by_declaration(self, declaration_id: str) -> List[EvidencePackage]:
        return [p for p in self.store.list() if p.declaration_id == declaration_id]

    def delete_evidence_package(self, package_id: str) -> bool:
        deleted = self.store.delete(package_id)
        if deleted:
            logger.info(f"Deleted evidence package {package_id}")
        return deleted

    # =========================================================================
    # METRICS
    # =========================================================================

    def get_validation_metrics(self) -> Dict[str, Any]:
        """
        Averages across stored packages.

        risk_distribution counts documents, not packages. common_issues is
        the most frequent "{issue type}-{field}" keys, at most ten.
        """
        packages = self.store.list()
        risk_distribution = {severity.value: 0 for severity in FindingSeverity}
        if not packages:
            return {
                "total_packages": 0,
                "average_score": 0.0,
                "compliance_rate": 0.0,
                "risk_distribution": risk_distribution,
                "common_issues": [],
            }

        issue_frequency: Counter = Counter()
        for package in packages:
            for result in package.validation_results:
                risk_distribution[result.risk_level.value] += 1
                for issue in result.issues:
                    issue_frequency[f"{issue.type.value}-{issue.field or 'general'}"] += 1

        compliant = sum(1 for p in packages if p.overall_compliance)
        return {
            "total_packages": len(packages),
            "average_score": sum(p.overall_score for p in packages) / len(packages),
            "compliance_rate": compliant / len(packages) * 100,
            "risk_distribution": risk_distribution,
            "common_issues": [
                {"issue": key, "frequency": count}
                for key, count in issue_frequency.most_common(COMMON_ISSUE_LIMIT)
            ],
        }
