#!/usr/bin/env python3
"""
Shared builders for workflow engine tests: rubric, config, webhook bodies,
a controllable clock and a recording notification gateway.
"""

import tempfile
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List, Optional

from core.config_loader import AppConfig
from core.errors import DownstreamError
from core.scorer import ScoringService, parse_rubric
from core.storage import LocalArtifactStore
from core.workflow import WorkflowEngine
from notification.message_builder import NotificationMessageBuilder

RUBRIC_DATA = {
    'version': 'test',
    'dimensions': {'community': 2, 'environment': 1},
    'questions': [
        {
            'id': 'beneficiaries',
            'field': 'beneficiaries',
            'dimension': 'community',
            'weight': 1.5,
            'answers': {'Over 1000': 3, '100-1000': 2, 'Under 100': 1},
        },
        {
            'id': 'local-employment',
            'field': 'local-employment',
            'dimension': 'community',
            'weight': 1,
            'answers': {'Yes': 2, 'Partially': 1, 'No': 0},
        },
        {
            'id': 'water-source',
            'field': 'water-source',
            'dimension': 'environment',
            'weight': 1,
            'answers': {'Rainwater': 3, 'Groundwater': 2, 'Municipal': 1},
        },
    ],
}

FIELD_MAP = {
    'text': 'org-name',
    'email': 'contact-email',
    'status': 'beneficiaries',
    'status_1': 'local-employment',
    'status_2': 'water-source',
}

REVIEWER_EMAIL = 'reviewer@example.org'


def make_config(**workflow_overrides) -> AppConfig:
    config = AppConfig(
        intake={'field_map': FIELD_MAP},
        notifications={'channel': 'in_app', 'reviewer_email': REVIEWER_EMAIL},
        web={'public_base_url': 'https://funnel.example.org'},
    )
    for key, value in workflow_overrides.items():
        setattr(config.workflow, key, value)
    return config


def webhook_body(
    project: str = 'Acme Water',
    org: str = 'Acme Co',
    beneficiaries: str = 'Over 1000',
    employment: str = 'Yes',
    water: str = 'Rainwater',
    email: Optional[str] = 'founder@acme.example',
    event_type: str = 'create_pulse'
) -> Dict[str, Any]:
    """Webhook body in the form provider's nested column shape."""
    columns = {
        'text': {'value': org},
        'status': {'label': {'index': 1, 'text': beneficiaries}},
        'status_1': {'label': {'index': 0, 'text': employment}},
        'status_2': {'label': {'index': 2, 'text': water}},
    }
    if email is not None:
        columns['email'] = {'email': email, 'text': email}
    return {
        'event': {
            'type': event_type,
            'pulseName': project,
            'columnValues': columns,
        }
    }


class FakeClock:
    def __init__(self, start: Optional[datetime] = None):
        self.now = start or datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now = self.now + timedelta(**kwargs)


class RecordingGateway:
    """Stands in for NotificationGateway; keeps every message sent."""

    def __init__(self, fail_for: Optional[str] = None):
        self.sent: List[Dict[str, Any]] = []
        self.fail_for = fail_for

    def send(self, recipient, subject, body, metadata=None, instance_id=None) -> str:
        if not recipient:
            raise DownstreamError(f"No recipient configured for '{subject}'")
        if self.fail_for and recipient == self.fail_for:
            raise DownstreamError(f"Failed to deliver '{subject}'")
        self.sent.append({
            'recipient': recipient,
            'subject': subject,
            'body': body,
            'metadata': metadata or {},
            'instance_id': instance_id,
        })
        return f"n-{len(self.sent)}"

    def tokens(self) -> List[str]:
        """Continuation tokens from the approve links sent so far."""
        found = []
        for message in self.sent:
            for link in message['metadata'].get('links', []):
                if link['label'] == 'Approve':
                    found.append(link['url'].split('token=', 1)[1])
        return found


def build_engine(
    session_factory,
    config: Optional[AppConfig] = None,
    gateway=None,
    store=None,
    clock: Optional[FakeClock] = None
) -> WorkflowEngine:
    config = config or make_config()
    return WorkflowEngine(
        session_factory=session_factory,
        config=config,
        scorer=ScoringService(parse_rubric(RUBRIC_DATA)),
        store=store or LocalArtifactStore(tempfile.mkdtemp(prefix='funnel-test-')),
        gateway=gateway or RecordingGateway(),
        messages=NotificationMessageBuilder(config.web.public_base_url),
        clock=clock or FakeClock()
    )
