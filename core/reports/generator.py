#!/usr/bin/env python3
"""
Report Generator - renders a scored submission into artifact bytes.

All builders are pure: they return bytes and never touch storage. The
workflow engine decides where the bytes go.
"""

import csv
import io
import logging
import re
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Tuple

from docx import Document
from docx.shared import Pt, RGBColor

from core.intake.normalizer import EMPTY_VALUE
from core.scorer.models import ScoreResult

logger = logging.getLogger(__name__)

CSV_CONTENT_TYPE = "text/csv"
DOCX_CONTENT_TYPE = "application/vnd.openxmlformats-officedocument.wordprocessingml.document"

LOW_TIER_MAX = 30.0
HIGH_TIER_MIN = 70.0

TIER_COLOURS = {
    "low": RGBColor(0xC0, 0x39, 0x2B),
    "medium": RGBColor(0xE6, 0x7E, 0x22),
    "high": RGBColor(0x27, 0xAE, 0x60),
}

_UNSAFE_PATH_CHARS = re.compile(r"[^A-Za-z0-9._ -]+")


def severity_tier(percentage: float) -> str:
    """low below 30, high above 70, medium in between (inclusive)."""
    if percentage < LOW_TIER_MAX:
        return "low"
    if percentage > HIGH_TIER_MIN:
        return "high"
    return "medium"


def _format_value(value: Any) -> str:
    if hasattr(value, "isoformat"):
        return value.isoformat()
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def build_raw_export(submission: Mapping[str, Any]) -> bytes:
    """Key,Value CSV of every normalized field, in sorted key order."""
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    writer.writerow(["Key", "Value"])
    for key in sorted(submission):
        writer.writerow([key, _format_value(submission[key])])
    return buffer.getvalue().encode("utf-8")


def _set_default_font(doc) -> None:
    style = doc.styles["Normal"]
    style.font.name = "Calibri"
    style.font.size = Pt(11)


def _to_bytes(doc) -> bytes:
    out = io.BytesIO()
    doc.save(out)
    return out.getvalue()


def build_summary_document(
    submission: Mapping[str, Any],
    score: ScoreResult,
    org_name: str = "",
    project_name: str = ""
) -> bytes:
    """
    Impact assessment report as .docx.

    One row per dimension with its percentage and severity tier, the tier
    label coloured red/amber/green, followed by the aggregate score and any
    answers that could not be scored.
    """
    doc = Document()
    doc.add_heading("Impact Assessment Report", level=1)
    if org_name:
        doc.add_paragraph(f"Organization: {org_name}")
    if project_name:
        doc.add_paragraph(f"Project: {project_name}")

    doc.add_heading("Dimension Scores", level=2)
    table = doc.add_table(rows=1, cols=3)
    header = table.rows[0].cells
    header[0].text = "Dimension"
    header[1].text = "Score"
    header[2].text = "Tier"
    for dim in score.dimensions:
        tier = severity_tier(dim.percentage)
        cells = table.add_row().cells
        cells[0].text = dim.name
        cells[1].text = f"{dim.percentage:.1f}%"
        run = cells[2].paragraphs[0].add_run(tier.upper())
        run.bold = True
        run.font.color.rgb = TIER_COLOURS[tier]

    doc.add_heading("Total Score", level=2)
    total_run = doc.add_paragraph().add_run(f"{score.total} / 100")
    total_run.bold = True
    total_run.font.color.rgb = TIER_COLOURS[severity_tier(score.total)]

    if score.diagnostics:
        doc.add_heading("Unscored Answers", level=2)
        for diag in score.diagnostics:
            answer = diag.answer if diag.answer not in (None, EMPTY_VALUE) else "(empty)"
            doc.add_paragraph(f"{diag.field}: {answer}", style="List Bullet")

    _set_default_font(doc)
    return _to_bytes(doc)


def build_followup_document(
    submission: Mapping[str, Any],
    score: ScoreResult,
    org_name: str = "",
    project_name: str = ""
) -> bytes:
    """Design document draft produced once a project is approved."""
    doc = Document()
    doc.add_heading(f"Design Document: {project_name or 'Untitled project'}", level=1)
    if org_name:
        doc.add_paragraph(f"Organization: {org_name}")
    doc.add_paragraph(f"Impact assessment total: {score.total} / 100")

    weakest = sorted(score.dimensions, key=lambda d: d.percentage)
    doc.add_heading("Areas to Address", level=2)
    flagged = [d for d in weakest if severity_tier(d.percentage) != "high"]
    if flagged:
        for dim in flagged:
            doc.add_paragraph(
                f"{dim.name} ({dim.percentage:.1f}%): describe planned improvements.",
                style="List Bullet"
            )
    else:
        doc.add_paragraph("All dimensions scored in the high tier.")

    if score.diagnostics:
        doc.add_heading("Missing Information", level=2)
        for diag in score.diagnostics:
            doc.add_paragraph(f"Confirm the answer for '{diag.field}'.", style="List Bullet")

    doc.add_heading("Submitted Details", level=2)
    for key in sorted(submission):
        doc.add_paragraph(f"{key}: {_format_value(submission[key])}")

    _set_default_font(doc)
    return _to_bytes(doc)


def safe_segment(value: Any, fallback: str) -> str:
    """Reduce a user-supplied name to a single path segment."""
    text = _UNSAFE_PATH_CHARS.sub("_", str(value or "")).strip(" ._")
    return text or fallback


@dataclass(frozen=True)
class Artifact:
    path: str
    content: bytes
    content_type: str


@dataclass(frozen=True)
class ReportBundle:
    raw_export: Artifact
    summary: Artifact

    @property
    def artifacts(self) -> Tuple[Artifact, ...]:
        return (self.raw_export, self.summary)

    @property
    def paths(self) -> dict:
        return {"raw_export": self.raw_export.path, "summary": self.summary.path}


class ReportGenerator:
    """Builds artifact paths and bytes for one submission."""

    def __init__(self, org_name_field: str = "org-name", project_name_field: str = "project-name"):
        self.org_name_field = org_name_field
        self.project_name_field = project_name_field

    def names(self, submission: Mapping[str, Any]) -> Tuple[str, str]:
        org = submission.get(self.org_name_field, EMPTY_VALUE)
        project = submission.get(self.project_name_field, EMPTY_VALUE)
        return str(org), str(project)

    def base_path(self, identity: str, submission: Mapping[str, Any]) -> str:
        org, project = self.names(submission)
        return (
            f"{safe_segment(org, 'unknown-org')}/{identity[:12]}/"
            f"{safe_segment(project, 'project')}"
        )

    def generate(
        self,
        identity: str,
        submission: Mapping[str, Any],
        score: ScoreResult
    ) -> ReportBundle:
        org, project = self.names(submission)
        base = self.base_path(identity, submission)
        bundle = ReportBundle(
            raw_export=Artifact(
                path=f"{base}_rawImpactAssessment.csv",
                content=build_raw_export(submission),
                content_type=CSV_CONTENT_TYPE
            ),
            summary=Artifact(
                path=f"{base}_impactAssessmentReport.docx",
                content=build_summary_document(submission, score, org, project),
                content_type=DOCX_CONTENT_TYPE
            )
        )
        logger.info(f"Generated reports for {identity[:12]}: {bundle.paths}")
        return bundle

    def followup(
        self,
        identity: str,
        submission: Mapping[str, Any],
        score: ScoreResult
    ) -> Artifact:
        org, project = self.names(submission)
        return Artifact(
            path=f"{self.base_path(identity, submission)}_designDoc.docx",
            content=build_followup_document(submission, score, org, project),
            content_type=DOCX_CONTENT_TYPE
        )
