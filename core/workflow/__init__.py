"""
Workflow - durable intake/decision state machine.

Public API:
- WorkflowEngine: start, redeem, expire_overdue, cancel, get, list
- WorkflowState, Decision, FailureReason
"""

from core.workflow.engine import IntakeResult, RedemptionResult, WorkflowEngine, WorkflowView
from core.workflow.failure import mark_failed
from core.workflow.states import Decision, FailureReason, WorkflowState

__all__ = [
    'WorkflowEngine',
    'WorkflowView',
    'IntakeResult',
    'RedemptionResult',
    'WorkflowState',
    'Decision',
    'FailureReason',
    'mark_failed',
]
