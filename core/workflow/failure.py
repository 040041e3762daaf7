#!/usr/bin/env python3
"""
Moving an instance to failed.

Shared by the engine and the notification worker, which marks instances
failed when a queued delivery does not go through.
"""

import logging
import uuid
from datetime import datetime
from typing import Iterable, Optional, Union

from sqlalchemy.orm import sessionmaker

from core.errors import InstanceNotFound
from core.workflow.states import FailureReason, WorkflowState
from database.models import utcnow
from database.uow import workflow_uow

logger = logging.getLogger(__name__)

# A concurrent writer can move the instance between our read and our CAS
MAX_CAS_ATTEMPTS = 3


def parse_instance_id(instance_id: Union[str, uuid.UUID]) -> uuid.UUID:
    if isinstance(instance_id, uuid.UUID):
        return instance_id
    try:
        return uuid.UUID(str(instance_id))
    except ValueError:
        raise InstanceNotFound(str(instance_id))


def mark_failed(
    session_factory: sessionmaker,
    instance_id: Union[str, uuid.UUID],
    reason: FailureReason,
    detail: Optional[str] = None,
    expected: Optional[Iterable[WorkflowState]] = None,
    now: Optional[datetime] = None
) -> bool:
    """
    Fail a non-terminal instance and invalidate its outstanding tokens.

    Args:
        expected: Only fail if the instance is currently in one of these
            states (defaults to any non-terminal state)

    Returns:
        True if this call moved the instance to failed
    """
    instance_id = parse_instance_id(instance_id)
    expected = set(expected) if expected is not None else None
    now = now or utcnow()

    for _ in range(MAX_CAS_ATTEMPTS):
        with workflow_uow(session_factory) as uow:
            instance = uow.workflows.get(instance_id)
            if instance is None:
                raise InstanceNotFound(str(instance_id))

            current = WorkflowState(instance.state)
            if current.is_terminal or (expected is not None and current not in expected):
                logger.info(
                    f"Not failing workflow {instance_id} ({reason.value}): state is {current.value}"
                )
                return False

            moved = uow.workflows.compare_and_set(
                instance_id,
                [current.value],
                WorkflowState.FAILED.value,
                reason=reason.value,
                now=now,
                failure_reason=reason.value,
                failure_detail=detail,
                failed_from_state=current.value,
                finished_at=now
            )
            if moved:
                uow.tokens.invalidate_for_instance(instance_id, now)
                logger.warning(
                    f"Workflow {instance_id} failed from {current.value}: {reason.value}"
                    + (f" ({detail})" if detail else "")
                )
                return True
    return False
