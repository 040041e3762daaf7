#!/usr/bin/env python3
"""
Error taxonomy shared by intake, scoring and the workflow engine.

The web layer maps these onto HTTP responses (see web/backend/exceptions.py).
"""

from typing import Optional


class FunnelError(Exception):
    """Base exception for supply funnel errors."""
    pass


class ValidationError(FunnelError):
    """Malformed or unrecognized intake payload. The submission is discarded."""
    pass


class DuplicateSubmission(FunnelError):
    """Identity collision on intake. Treated as success by callers."""

    def __init__(self, identity: str, instance_id: Optional[str] = None):
        self.identity = identity
        self.instance_id = instance_id
        super().__init__(f"Submission {identity} already received")


class ConfigurationError(FunnelError):
    """Rubric or application configuration is inconsistent."""
    pass


class TokenError(FunnelError):
    """Continuation token is missing, unknown, expired or already used."""

    MISSING = "missing"
    UNKNOWN = "unknown"
    EXPIRED = "expired"
    ALREADY_REDEEMED = "already-redeemed"
    CONFLICT = "conflict"

    def __init__(self, reason: str, message: Optional[str] = None):
        self.reason = reason
        super().__init__(message or f"Token rejected: {reason}")


class DecisionTimeout(FunnelError):
    """No reviewer decision within the maximum pending lifetime."""

    def __init__(self, instance_id: str):
        self.instance_id = instance_id
        super().__init__(f"Workflow {instance_id} timed out waiting for a decision")


class DownstreamError(FunnelError):
    """Artifact storage or notification delivery failed."""
    pass


class InstanceNotFound(FunnelError):
    """Workflow instance does not exist."""

    def __init__(self, instance_id: str):
        self.instance_id = instance_id
        super().__init__(f"Workflow instance {instance_id} not found")


class InvalidTransition(FunnelError):
    """State change requested from a state that does not allow it."""
    pass
