from .base import Base, JsonType, UTCDateTime, ensure_utc, utcnow
from .submission import Submission
from .workflow import WorkflowInstance, ContinuationToken, WorkflowTransition

__all__ = [
    'Base',
    'JsonType',
    'UTCDateTime',
    'ensure_utc',
    'utcnow',
    'Submission',
    'WorkflowInstance',
    'ContinuationToken',
    'WorkflowTransition',
]
