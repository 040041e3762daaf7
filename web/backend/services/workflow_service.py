#!/usr/bin/env python3
"""
Conversion of workflow snapshots into API response models.
"""

from datetime import datetime
from typing import Optional

from core.workflow import WorkflowView
from ..models.responses import WorkflowDetail, WorkflowSummary


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _total_score(view: WorkflowView) -> Optional[int]:
    score = view.context.get('score') or {}
    return score.get('total')


def to_summary(view: WorkflowView) -> WorkflowSummary:
    return WorkflowSummary(
        instance_id=view.instance_id,
        identity=view.identity,
        state=view.state.value,
        decision=view.decision,
        org_name=view.org_name,
        project_name=view.project_name,
        total_score=_total_score(view),
        decision_deadline=_iso(view.decision_deadline),
        failure_reason=view.failure_reason,
        created_at=_iso(view.created_at),
        updated_at=_iso(view.updated_at)
    )


def to_detail(view: WorkflowView) -> WorkflowDetail:
    return WorkflowDetail(
        **to_summary(view).model_dump(),
        failure_detail=view.failure_detail,
        failed_from_state=view.failed_from_state,
        submission=view.submission,
        context=view.context,
        transitions=view.transitions
    )
