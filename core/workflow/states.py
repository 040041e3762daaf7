#!/usr/bin/env python3
"""
Workflow states, decisions, failure reasons and the allowed transitions.
"""

from enum import Enum
from typing import Dict, FrozenSet


class WorkflowState(str, Enum):
    STARTED = "started"
    AWAITING_REPORT = "awaiting_report"
    AWAITING_DECISION = "awaiting_decision"
    APPROVING = "approving"
    WAITLISTING = "waitlisting"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in TERMINAL_STATES


class Decision(str, Enum):
    APPROVE = "approve"
    WAITLIST = "waitlist"


class FailureReason(str, Enum):
    REPORT_FAILED = "report-failed"
    NOTIFICATION_FAILED = "notification-failed"
    DECISION_TIMEOUT = "decision-timeout"
    BRANCH_FAILED = "branch-failed"
    CANCELLED = "cancelled"


TERMINAL_STATES: FrozenSet[WorkflowState] = frozenset({
    WorkflowState.COMPLETED,
    WorkflowState.FAILED,
})

NON_TERMINAL_STATES: FrozenSet[WorkflowState] = frozenset(
    s for s in WorkflowState if s not in TERMINAL_STATES
)

# FAILED is additionally reachable from every non-terminal state
TRANSITIONS: Dict[WorkflowState, FrozenSet[WorkflowState]] = {
    WorkflowState.STARTED: frozenset({WorkflowState.AWAITING_REPORT}),
    WorkflowState.AWAITING_REPORT: frozenset({WorkflowState.AWAITING_DECISION}),
    WorkflowState.AWAITING_DECISION: frozenset({WorkflowState.APPROVING, WorkflowState.WAITLISTING}),
    WorkflowState.APPROVING: frozenset({WorkflowState.COMPLETED}),
    WorkflowState.WAITLISTING: frozenset({WorkflowState.COMPLETED}),
    WorkflowState.COMPLETED: frozenset(),
    WorkflowState.FAILED: frozenset(),
}

BRANCH_FOR_DECISION: Dict[Decision, WorkflowState] = {
    Decision.APPROVE: WorkflowState.APPROVING,
    Decision.WAITLIST: WorkflowState.WAITLISTING,
}


def can_transition(source: WorkflowState, target: WorkflowState) -> bool:
    if target == WorkflowState.FAILED:
        return source in NON_TERMINAL_STATES
    return target in TRANSITIONS[source]
