"""
Reports - artifact builders for scored submissions.
"""

from core.reports.generator import (
    Artifact,
    ReportBundle,
    ReportGenerator,
    build_followup_document,
    build_raw_export,
    build_summary_document,
    severity_tier,
)

__all__ = [
    'Artifact',
    'ReportBundle',
    'ReportGenerator',
    'build_followup_document',
    'build_raw_export',
    'build_summary_document',
    'severity_tier',
]
