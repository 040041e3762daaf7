"""
Intake - normalization and identity of incoming submissions.

Public API:
- normalize_event: Validate a webhook body and flatten its fields
- normalize_payload: Flatten raw column payloads into canonical fields
- compute_identity: Deterministic content hash for deduplication
"""

from core.intake.normalizer import (
    EMPTY_VALUE,
    IntakeEvent,
    normalize_event,
    normalize_payload,
)
from core.intake.identity import canonical_json, compute_identity, to_storable

__all__ = [
    'EMPTY_VALUE',
    'IntakeEvent',
    'normalize_event',
    'normalize_payload',
    'canonical_json',
    'compute_identity',
    'to_storable',
]
