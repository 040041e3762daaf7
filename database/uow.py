import contextlib
import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.orm import Session, sessionmaker

from database.database import get_session_factory
from database.repositories import SubmissionRepository, TokenRepository, WorkflowRepository

logger = logging.getLogger(__name__)


@dataclass
class WorkflowUnitOfWork:
    session: Session
    submissions: SubmissionRepository
    workflows: WorkflowRepository
    tokens: TokenRepository


@contextlib.contextmanager
def workflow_uow(session_factory: Optional[sessionmaker] = None):
    """Per-unit-of-work transaction scope.

    Yields repositories bound to one fresh Session. Commits on success,
    rolls back on exception, always closes.

    Usage:
        with workflow_uow() as uow:
            instance = uow.workflows.get(instance_id)
            # perform operations...
        # commit happens automatically on successful exit
    """
    session = (session_factory or get_session_factory())()
    try:
        yield WorkflowUnitOfWork(
            session=session,
            submissions=SubmissionRepository(session),
            workflows=WorkflowRepository(session),
            tokens=TokenRepository(session)
        )
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()
