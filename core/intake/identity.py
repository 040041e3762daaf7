#!/usr/bin/env python3
"""
Identity Generator - content-addressed submission identifiers.

The identity is the idempotency key for intake: two submissions with the same
normalized content, in any field order, share an identity.
"""

import hashlib
import json
from datetime import date
from typing import Any, Mapping

IDENTITY_LENGTH = 64


def _encode_scalar(value: Any) -> Any:
    if isinstance(value, date):
        return value.isoformat()
    raise TypeError(f"Cannot encode {type(value).__name__} in a submission")


def canonical_json(submission: Mapping[str, Any]) -> str:
    """
    Deterministic JSON encoding: sorted keys, compact separators, dates as
    ISO-8601 strings.
    """
    return json.dumps(
        dict(submission),
        sort_keys=True,
        ensure_ascii=False,
        separators=(",", ":"),
        default=_encode_scalar
    )


def compute_identity(submission: Mapping[str, Any]) -> str:
    """
    SHA-256 of the canonical encoding.

    Returns:
        64 lowercase hex characters
    """
    return hashlib.sha256(canonical_json(submission).encode('utf-8')).hexdigest()


def to_storable(submission: Mapping[str, Any]) -> dict:
    """JSON-safe copy of a submission for persistence (dates become ISO strings)."""
    return json.loads(canonical_json(submission))
