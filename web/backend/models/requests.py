#!/usr/bin/env python3
"""
Request models for API endpoints.
"""

from typing import Optional

from pydantic import BaseModel, Field


class CancelRequest(BaseModel):
    """Operator cancellation of a workflow instance."""
    reason: Optional[str] = Field(None, max_length=500, description="Why the workflow was cancelled")


class SweepRequest(BaseModel):
    """Optional reference time for the timeout sweep (defaults to now)."""
    now: Optional[str] = Field(None, description="ISO-8601 timestamp")
