"""Ghana PCA Engine - Reporting

Minister reports built from completed executions.
"""
from .minister_report import (
    MinisterReport,
    MinisterReportService,
    ReportConfig,
    ReportGenerationError,
    ReportType,
)

__all__ = [
    "MinisterReport",
    "MinisterReportService",
    "ReportConfig",
    "ReportGenerationError",
    "ReportType",
]
