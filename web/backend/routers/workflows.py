#!/usr/bin/env python3
"""
Operator endpoints - inspect, cancel and time out workflow instances.
"""

from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, Query

from core.errors import ValidationError
from core.workflow import WorkflowEngine
from ..dependencies import get_workflow_engine
from ..models.requests import CancelRequest, SweepRequest
from ..models.responses import SweepResponse, WorkflowDetailResponse, WorkflowListResponse
from ..services.workflow_service import to_detail, to_summary

router = APIRouter(prefix="/api/workflows", tags=["workflows"])


@router.get("", response_model=WorkflowListResponse)
def list_workflows(
    state: Optional[str] = Query(None, description="Filter by state, e.g. awaiting_decision"),
    limit: int = Query(100, ge=1, le=1000),
    offset: int = Query(0, ge=0),
    engine: WorkflowEngine = Depends(get_workflow_engine)
):
    """List workflow instances, newest first."""
    views = engine.list(state=state, limit=limit, offset=offset)
    return WorkflowListResponse(count=len(views), workflows=[to_summary(v) for v in views])


@router.post("/sweep-timeouts", response_model=SweepResponse)
def sweep_timeouts(
    request: Optional[SweepRequest] = None,
    engine: WorkflowEngine = Depends(get_workflow_engine)
):
    """Fail every instance whose decision deadline has passed."""
    now = None
    if request is not None and request.now:
        try:
            now = datetime.fromisoformat(request.now)
        except ValueError:
            raise ValidationError(f"Invalid timestamp: {request.now!r}")
        if now.tzinfo is None:
            now = now.replace(tzinfo=timezone.utc)
    expired = engine.expire_overdue(now)
    return SweepResponse(expired=expired, count=len(expired))


@router.get("/{instance_id}", response_model=WorkflowDetailResponse)
def get_workflow(
    instance_id: str,
    engine: WorkflowEngine = Depends(get_workflow_engine)
):
    """Get one workflow instance with its transition history."""
    view = engine.get(instance_id, with_transitions=True)
    return WorkflowDetailResponse(workflow=to_detail(view))


@router.post("/{instance_id}/cancel", response_model=WorkflowDetailResponse)
def cancel_workflow(
    instance_id: str,
    request: Optional[CancelRequest] = None,
    engine: WorkflowEngine = Depends(get_workflow_engine)
):
    """Move a non-terminal instance to failed and invalidate its token."""
    view = engine.cancel(instance_id, reason=request.reason if request else None)
    return WorkflowDetailResponse(workflow=to_detail(view))
