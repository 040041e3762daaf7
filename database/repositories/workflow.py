import logging
from datetime import datetime
from typing import Any, Iterable, List, Optional
from uuid import UUID

from sqlalchemy import select, update

from database.models import ContinuationToken, Submission, WorkflowInstance, WorkflowTransition, utcnow
from database.repositories.base import BaseRepository

logger = logging.getLogger(__name__)


class WorkflowRepository(BaseRepository):
    def create(self, submission: Submission, state: str, reason: Optional[str] = None) -> WorkflowInstance:
        instance = WorkflowInstance(submission=submission, state=state, context={})
        self.db.add(instance)
        self.db.flush()
        self.db.add(WorkflowTransition(instance_id=instance.id, from_state=None, to_state=state, reason=reason))
        return instance

    def get(self, instance_id: UUID, refresh: bool = False) -> Optional[WorkflowInstance]:
        return self.db.get(WorkflowInstance, instance_id, populate_existing=refresh)

    def get_by_submission(self, submission_id: UUID) -> Optional[WorkflowInstance]:
        stmt = select(WorkflowInstance).where(WorkflowInstance.submission_id == submission_id)
        return self.db.execute(stmt).scalar_one_or_none()

    def compare_and_set(
        self,
        instance_id: UUID,
        expected: Iterable[str],
        target: str,
        reason: Optional[str] = None,
        now: Optional[datetime] = None,
        **values: Any
    ) -> bool:
        """
        Atomically move an instance to `target` if its state is in `expected`.

        Issues a single conditional UPDATE; returns False when no row matched
        (another writer already moved the instance).
        """
        expected = list(expected)
        now = now or utcnow()
        stmt = (
            update(WorkflowInstance)
            .where(
                WorkflowInstance.id == instance_id,
                WorkflowInstance.state.in_(expected)
            )
            .values(state=target, updated_at=now, **values)
            .execution_options(synchronize_session=False)
        )
        result = self.db.execute(stmt)
        if result.rowcount != 1:
            logger.debug(f"CAS {expected} -> {target} lost for instance {instance_id}")
            return False

        self.db.add(WorkflowTransition(
            instance_id=instance_id,
            from_state=expected[0] if len(expected) == 1 else None,
            to_state=target,
            reason=reason,
            created_at=now
        ))
        return True

    def list(self, state: Optional[str] = None, limit: int = 100, offset: int = 0) -> List[WorkflowInstance]:
        stmt = select(WorkflowInstance)
        if state:
            stmt = stmt.where(WorkflowInstance.state == state)
        stmt = stmt.order_by(WorkflowInstance.created_at.desc()).limit(limit).offset(offset)
        return self.db.execute(stmt).scalars().all()

    def find_overdue(self, state: str, now: datetime) -> List[UUID]:
        stmt = select(WorkflowInstance.id).where(
            WorkflowInstance.state == state,
            WorkflowInstance.decision_deadline.is_not(None),
            WorkflowInstance.decision_deadline <= now
        )
        return list(self.db.execute(stmt).scalars().all())


class TokenRepository(BaseRepository):
    def add(self, instance_id: UUID, token_hash: str, expires_at: datetime) -> ContinuationToken:
        token = ContinuationToken(instance_id=instance_id, token_hash=token_hash, expires_at=expires_at)
        self.db.add(token)
        self.db.flush()
        return token

    def get_by_hash(self, token_hash: str) -> Optional[ContinuationToken]:
        stmt = select(ContinuationToken).where(ContinuationToken.token_hash == token_hash)
        return self.db.execute(stmt).scalar_one_or_none()

    def mark_redeemed(self, token_id: UUID, decision: str, now: datetime) -> bool:
        """Spend a token. False if it was already redeemed or invalidated."""
        stmt = (
            update(ContinuationToken)
            .where(
                ContinuationToken.id == token_id,
                ContinuationToken.redeemed_at.is_(None),
                ContinuationToken.invalidated_at.is_(None)
            )
            .values(redeemed_at=now, redeemed_decision=decision)
            .execution_options(synchronize_session=False)
        )
        return self.db.execute(stmt).rowcount == 1

    def invalidate_for_instance(self, instance_id: UUID, now: datetime) -> int:
        stmt = (
            update(ContinuationToken)
            .where(
                ContinuationToken.instance_id == instance_id,
                ContinuationToken.redeemed_at.is_(None),
                ContinuationToken.invalidated_at.is_(None)
            )
            .values(invalidated_at=now)
            .execution_options(synchronize_session=False)
        )
        count = self.db.execute(stmt).rowcount
        if count:
            logger.info(f"Invalidated {count} outstanding token(s) for instance {instance_id}")
        return count
