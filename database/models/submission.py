import uuid

from sqlalchemy import Column, Text, Uuid, UniqueConstraint
from sqlalchemy.orm import relationship

from .base import Base, JsonType, UTCDateTime, utcnow


class Submission(Base):
    """
    A normalized intake submission, stored once per content identity.

    The unique constraint on identity is what makes intake idempotent.
    """
    __tablename__ = 'submission'

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)

    # SHA-256 of the canonical field encoding
    identity = Column(Text, nullable=False)

    # Normalized fields (dates stored as ISO strings)
    payload = Column(JsonType, nullable=False, default=dict)

    org_name = Column(Text)
    project_name = Column(Text)
    event_type = Column(Text)

    received_at = Column(UTCDateTime, nullable=False, default=utcnow)

    instance = relationship("WorkflowInstance", back_populates="submission", uselist=False)

    __table_args__ = (
        UniqueConstraint('identity', name='uq_submission_identity'),
    )
