#!/usr/bin/env python3
"""
Reviewer decision endpoints - the links in the decision request email.
"""

from typing import Optional

from fastapi import APIRouter, Depends, Query

from core.workflow import Decision, WorkflowEngine
from ..dependencies import get_workflow_engine
from ..models.responses import DecisionResponse

router = APIRouter(tags=["decisions"])

SUCCESS_MESSAGES = {
    Decision.APPROVE: "You successfully approved the project.",
    Decision.WAITLIST: "You successfully waitlisted the project.",
}


def _redeem(engine: WorkflowEngine, token: Optional[str], decision: Decision) -> DecisionResponse:
    result = engine.redeem(token, decision)
    return DecisionResponse(
        message=SUCCESS_MESSAGES[decision],
        instance_id=result.instance_id,
        decision=result.decision,
        state=result.state.value
    )


@router.api_route("/approve", methods=["GET", "POST"], response_model=DecisionResponse)
def approve(
    token: Optional[str] = Query(None, description="Continuation token from the review email"),
    engine: WorkflowEngine = Depends(get_workflow_engine)
):
    """Approve the project named by the token."""
    return _redeem(engine, token, Decision.APPROVE)


@router.api_route("/waitlist", methods=["GET", "POST"], response_model=DecisionResponse)
def waitlist(
    token: Optional[str] = Query(None, description="Continuation token from the review email"),
    engine: WorkflowEngine = Depends(get_workflow_engine)
):
    """Waitlist the project named by the token."""
    return _redeem(engine, token, Decision.WAITLIST)
