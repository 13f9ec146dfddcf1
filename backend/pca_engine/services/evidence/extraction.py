"""
Ghana PCA Engine - Document Extraction

Port for reading structured fields off an uploaded evidence document.
Validation only sees the dict an extractor returns, so an OCR or parsing
backend can be swapped in without touching the rules.
"""
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Dict

from ...models.evidence import EvidenceDocument, EvidenceDocumentType


class DocumentExtractor(ABC):

    @abstractmethod
    def extract(self, document: EvidenceDocument) -> Dict[str, Any]:
        """Return the fields found on the document."""
        ...


SAMPLE_EXTRACTIONS: Dict[EvidenceDocumentType, Dict[str, Any]] = {
    EvidenceDocumentType.COMMERCIAL_INVOICE: {
        "declarantTin": "TIN1234567",
        "value": 100000,
        "taxes": {"vat": 15000, "getFund": 2500, "nhil": 2500, "covid": 1000},
    },
    EvidenceDocumentType.CERTIFICATE_OF_ORIGIN: {
        "originCountry": "NG",
        "certificateNumber": "ECO-2024-001",
        "issuingAuthority": "Ministry of Trade and Industry",
        "ecowasProtocol": "ECOWAS Trade Protocol",
    },
    EvidenceDocumentType.BILL_OF_LADING: {
        "portOfDischarge": "TEMA",
        "vesselName": "MV Ghana Trader",
        "grossWeight": 5000,
    },
    EvidenceDocumentType.TAX_CLEARANCE: {
        "tin": "TIN1234567",
        "clearanceNumber": "GRA-2024-001",
        "issuingAuthority": "Ghana Revenue Authority",
    },
    EvidenceDocumentType.ATG_CERTIFICATE: {
        "atgNumber": "ATG-2024-001",
        "productType": "Petroleum Products",
        "volume": 5882,  # litres
    },
}


class SampleDataExtractor(DocumentExtractor):
    """
    Stand-in extractor that returns fixed, well-formed fields per document
    type. Used until a real OCR backend is configured.
    """

    def extract(self, document: EvidenceDocument) -> Dict[str, Any]:
        sample = SAMPLE_EXTRACTIONS.get(document.type)
        if sample is not None:
            return dict(sample)
        return {
            "documentNumber": f"DOC-{document.id}",
            "issueDate": datetime.utcnow().isoformat(),
        }
