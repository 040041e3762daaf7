#!/usr/bin/env python3
"""
Response models for API endpoints.
"""

from pydantic import BaseModel, ConfigDict, Field
from typing import List, Optional, Dict, Any


class IntakeResponse(BaseModel):
    """Result of a webhook intake."""
    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "success": True,
                "message": "Submission received",
                "instance_id": "550e8400-e29b-41d4-a716-446655440000",
                "identity": "3f2b...",
                "state": "awaiting_decision",
                "duplicate": False
            }
        }
    )

    success: bool = True
    message: str
    instance_id: Optional[str]
    identity: str
    state: Optional[str]
    duplicate: bool = False


class DecisionResponse(BaseModel):
    success: bool = True
    message: str
    instance_id: str
    decision: str
    state: str


class WorkflowSummary(BaseModel):
    instance_id: str
    identity: str
    state: str
    decision: Optional[str] = None
    org_name: Optional[str] = None
    project_name: Optional[str] = None
    total_score: Optional[int] = Field(None, ge=0, le=100)
    decision_deadline: Optional[str] = None
    failure_reason: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class WorkflowDetail(WorkflowSummary):
    failure_detail: Optional[str] = None
    failed_from_state: Optional[str] = None
    submission: Dict[str, Any] = Field(default_factory=dict)
    context: Dict[str, Any] = Field(default_factory=dict)
    transitions: List[Dict[str, Any]] = Field(default_factory=list)


class WorkflowListResponse(BaseModel):
    success: bool = True
    count: int
    workflows: List[WorkflowSummary]


class WorkflowDetailResponse(BaseModel):
    success: bool = True
    workflow: WorkflowDetail


class SweepResponse(BaseModel):
    success: bool = True
    expired: List[str]
    count: int
