from datetime import datetime, timedelta, timezone
from typing import Dict, List, Optional
from urllib.parse import urlencode

from pydantic import BaseModel, Field


class ReportLink(BaseModel):
    label: str
    url: str


class DecisionRequestContent(BaseModel):
    org_name: str
    project_name: str
    total_score: int
    dimension_scores: Dict[str, float] = Field(default_factory=dict)
    report_links: List[ReportLink] = Field(default_factory=list)
    unscored_fields: List[str] = Field(default_factory=list)


class NotificationMessage(BaseModel):
    subject: str
    body: str
    metadata: Dict = Field(default_factory=dict)


APPROVE_COLOUR = "#27ae60"
WAITLIST_COLOUR = "#e67e22"


class NotificationMessageBuilder:
    """
    Builds reviewer and applicant messages.

    The public base URL is where the reviewer's browser reaches the decision
    endpoints; report links are presigned and expire after
    link_expiry_seconds.
    """

    def __init__(self, public_base_url: str, link_expiry_seconds: int = 604800):
        self.public_base_url = public_base_url.rstrip('/')
        self.link_expiry_seconds = link_expiry_seconds

    def decision_url(self, decision: str, token: str) -> str:
        return f"{self.public_base_url}/{decision}?{urlencode({'token': token})}"

    def links_expire_on(self, now: Optional[datetime] = None) -> datetime:
        now = now or datetime.now(timezone.utc)
        return now + timedelta(seconds=self.link_expiry_seconds)

    def build_decision_request(
        self,
        content: DecisionRequestContent,
        token: str,
        now: Optional[datetime] = None
    ) -> NotificationMessage:
        """Reviewer email: scores, report downloads, approve/waitlist links."""
        approve_url = self.decision_url("approve", token)
        waitlist_url = self.decision_url("waitlist", token)
        expires_on = self.links_expire_on(now).strftime("%Y-%m-%d")

        lines = [
            "A new project is awaiting review.",
            "",
            f"Organization: {content.org_name or '(not provided)'}",
            f"Project: {content.project_name or '(not provided)'}",
            f"Total impact score: {content.total_score} / 100",
        ]
        if content.dimension_scores:
            lines.append("")
            lines.append("Dimension scores:")
            for name, pct in content.dimension_scores.items():
                lines.append(f"  - {name}: {pct:.1f}%")
        if content.unscored_fields:
            lines.append("")
            lines.append(f"Answers that could not be scored: {', '.join(content.unscored_fields)}")
        if content.report_links:
            lines.append("")
            lines.append(f"Reports (links expire on {expires_on}):")
            for link in content.report_links:
                lines.append(f"  - {link.label}: {link.url}")
        lines.extend([
            "",
            f"Approve: {approve_url}",
            f"Waitlist: {waitlist_url}",
            "",
            "Each link can be used once.",
        ])

        subject = f"Review needed: {content.project_name or 'new project'}"
        if content.org_name:
            subject += f" ({content.org_name})"

        return NotificationMessage(
            subject=subject,
            body="\n".join(lines),
            metadata={
                'links': [
                    {'label': 'Approve', 'url': approve_url, 'colour': APPROVE_COLOUR},
                    {'label': 'Waitlist', 'url': waitlist_url, 'colour': WAITLIST_COLOUR},
                ] + [{'label': link.label, 'url': link.url} for link in content.report_links],
                'event_type': 'decision_request',
            }
        )

    @staticmethod
    def build_applicant_outcome(decision: str, org_name: str, project_name: str) -> NotificationMessage:
        project = project_name or "your project"
        if decision == "approve":
            subject = "Your project has been approved!"
            body = (
                f"Congratulations! {project} has been approved.\n\n"
                "We will be in touch shortly with next steps and a draft design "
                "document for your review."
            )
        else:
            subject = "Your project has been waitlisted"
            body = (
                f"Thank you for submitting {project}. It has been placed on our "
                "waitlist and we will contact you if capacity opens up."
            )
        if org_name:
            body = f"Dear {org_name},\n\n{body}"
        return NotificationMessage(
            subject=subject,
            body=body,
            metadata={'event_type': f'applicant_{decision}'}
        )
