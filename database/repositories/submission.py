import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from database.models import Submission
from database.repositories.base import BaseRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class PutResult:
    created: bool
    record: Submission


class SubmissionRepository(BaseRepository):
    def get_by_identity(self, identity: str) -> Optional[Submission]:
        stmt = select(Submission).where(Submission.identity == identity)
        return self.db.execute(stmt).scalar_one_or_none()

    def put_if_absent(
        self,
        identity: str,
        payload: Dict[str, Any],
        org_name: Optional[str] = None,
        project_name: Optional[str] = None,
        event_type: Optional[str] = None,
        received_at: Optional[datetime] = None
    ) -> PutResult:
        """
        Insert a submission unless one with the same identity exists.

        The unique constraint on identity decides races: the loser's insert
        is rolled back to a savepoint and the winner's row is returned.
        """
        existing = self.get_by_identity(identity)
        if existing is not None:
            return PutResult(created=False, record=existing)

        record = Submission(
            identity=identity,
            payload=payload,
            org_name=org_name,
            project_name=project_name,
            event_type=event_type
        )
        if received_at is not None:
            record.received_at = received_at

        try:
            with self.db.begin_nested():
                self.db.add(record)
                self.db.flush()
        except IntegrityError:
            logger.info(f"Concurrent intake of submission {identity[:12]}, using existing record")
            existing = self.get_by_identity(identity)
            if existing is None:
                raise
            return PutResult(created=False, record=existing)

        return PutResult(created=True, record=record)
