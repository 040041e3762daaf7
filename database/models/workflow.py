import uuid

from sqlalchemy import Column, Integer, Text, Uuid, ForeignKey, Index, UniqueConstraint
from sqlalchemy.orm import relationship

from .base import Base, JsonType, UTCDateTime, utcnow


class WorkflowInstance(Base):
    """
    Durable state of one intake -> decision -> outcome workflow.

    Rows are never deleted. State only changes through compare-and-set
    updates in WorkflowRepository.compare_and_set.
    """
    __tablename__ = 'workflow_instance'

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    submission_id = Column(Uuid, ForeignKey('submission.id'), nullable=False)

    state = Column(Text, nullable=False, index=True)
    decision = Column(Text, nullable=True)  # approve | waitlist
    decision_deadline = Column(UTCDateTime, nullable=True)

    # Report locations, score summary, follow-up artifacts
    context = Column(JsonType, nullable=False, default=dict)

    failure_reason = Column(Text, nullable=True)
    failure_detail = Column(Text, nullable=True)
    failed_from_state = Column(Text, nullable=True)

    created_at = Column(UTCDateTime, nullable=False, default=utcnow)
    updated_at = Column(UTCDateTime, nullable=False, default=utcnow)
    decided_at = Column(UTCDateTime, nullable=True)
    finished_at = Column(UTCDateTime, nullable=True)

    submission = relationship("Submission", back_populates="instance")
    tokens = relationship("ContinuationToken", back_populates="instance")
    transitions = relationship(
        "WorkflowTransition",
        back_populates="instance",
        order_by="WorkflowTransition.id"
    )

    __table_args__ = (
        UniqueConstraint('submission_id', name='uq_workflow_submission'),
        Index('idx_workflow_state_deadline', 'state', 'decision_deadline'),
    )


class ContinuationToken(Base):
    """
    Single-use credential naming one suspended instance.

    Only the SHA-256 of the token is stored; the plain token exists in the
    reviewer's links and nowhere else.
    """
    __tablename__ = 'continuation_token'

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    token_hash = Column(Text, nullable=False)
    instance_id = Column(Uuid, ForeignKey('workflow_instance.id'), nullable=False, index=True)

    created_at = Column(UTCDateTime, nullable=False, default=utcnow)
    expires_at = Column(UTCDateTime, nullable=False)
    redeemed_at = Column(UTCDateTime, nullable=True)
    redeemed_decision = Column(Text, nullable=True)
    invalidated_at = Column(UTCDateTime, nullable=True)

    instance = relationship("WorkflowInstance", back_populates="tokens")

    __table_args__ = (
        UniqueConstraint('token_hash', name='uq_continuation_token_hash'),
    )

    @property
    def is_spent(self) -> bool:
        return self.redeemed_at is not None or self.invalidated_at is not None


class WorkflowTransition(Base):
    """Append-only audit log of state changes."""
    __tablename__ = 'workflow_transition'

    id = Column(Integer, primary_key=True, autoincrement=True)
    instance_id = Column(Uuid, ForeignKey('workflow_instance.id'), nullable=False, index=True)
    from_state = Column(Text, nullable=True)
    to_state = Column(Text, nullable=False)
    reason = Column(Text, nullable=True)
    created_at = Column(UTCDateTime, nullable=False, default=utcnow)

    instance = relationship("WorkflowInstance", back_populates="transitions")
