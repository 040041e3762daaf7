#!/usr/bin/env python3
"""
Workflow Engine - durable intake -> report -> decision -> outcome state machine.

Suspension is persisted state plus an outstanding continuation token; there
is no in-memory waiting. Each public method is one externally triggered step
(intake, redemption, timeout sweep, cancellation) and may run in any process
that shares the database.

    started -> awaiting_report -> awaiting_decision -> approving  -> completed
                                                    -> waitlisting -> completed
    (any non-terminal state) -> failed

Every state change is a compare-and-set on the instance row, so a replayed
or concurrent redemption of the same token cannot apply a second decision.
"""

import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import Any, Callable, Dict, List, Mapping, Optional, Union

from sqlalchemy.orm import sessionmaker

from core.config_loader import AppConfig
from core.errors import (
    DecisionTimeout,
    DuplicateSubmission,
    InstanceNotFound,
    InvalidTransition,
    TokenError,
    ValidationError,
)
from core.intake import IntakeEvent, compute_identity, normalize_event, to_storable
from core.reports.generator import ReportBundle, ReportGenerator
from core.scorer import ScoreResult, ScoringService
from core.storage import ArtifactStore
from core.workflow.failure import mark_failed, parse_instance_id
from core.workflow.states import (
    BRANCH_FOR_DECISION,
    Decision,
    FailureReason,
    WorkflowState,
)
from core.workflow.tokens import hash_token, mint_token
from database.models import WorkflowInstance, utcnow
from database.uow import workflow_uow
from notification.message_builder import DecisionRequestContent, NotificationMessageBuilder, ReportLink
from notification.service import NotificationGateway

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class WorkflowView:
    """Detached snapshot of a WorkflowInstance for callers outside a session."""
    instance_id: str
    identity: str
    state: WorkflowState
    decision: Optional[str]
    org_name: Optional[str]
    project_name: Optional[str]
    submission: Dict[str, Any]
    context: Dict[str, Any]
    decision_deadline: Optional[datetime]
    failure_reason: Optional[str]
    failure_detail: Optional[str]
    failed_from_state: Optional[str]
    created_at: datetime
    updated_at: datetime
    transitions: List[Dict[str, Any]] = field(default_factory=list)

    @classmethod
    def from_model(cls, instance: WorkflowInstance, with_transitions: bool = False) -> "WorkflowView":
        submission = instance.submission
        transitions = []
        if with_transitions:
            transitions = [
                {
                    'from_state': t.from_state,
                    'to_state': t.to_state,
                    'reason': t.reason,
                    'at': t.created_at.isoformat() if t.created_at else None,
                }
                for t in instance.transitions
            ]
        return cls(
            instance_id=str(instance.id),
            identity=submission.identity,
            state=WorkflowState(instance.state),
            decision=instance.decision,
            org_name=submission.org_name,
            project_name=submission.project_name,
            submission=dict(submission.payload or {}),
            context=dict(instance.context or {}),
            decision_deadline=instance.decision_deadline,
            failure_reason=instance.failure_reason,
            failure_detail=instance.failure_detail,
            failed_from_state=instance.failed_from_state,
            created_at=instance.created_at,
            updated_at=instance.updated_at,
            transitions=transitions
        )


@dataclass(frozen=True)
class IntakeResult:
    instance_id: Optional[str]
    identity: str
    state: Optional[WorkflowState]
    duplicate: bool = False


@dataclass(frozen=True)
class RedemptionResult:
    instance_id: str
    decision: str
    state: WorkflowState


class WorkflowEngine:
    """
    Orchestrates one workflow instance per unique submission.

    Collaborators are injected; DB access goes through workflow_uow() with
    the given session factory, one short transaction per step.
    """

    def __init__(
        self,
        session_factory: sessionmaker,
        config: AppConfig,
        scorer: ScoringService,
        store: ArtifactStore,
        gateway: NotificationGateway,
        messages: NotificationMessageBuilder,
        reports: Optional[ReportGenerator] = None,
        clock: Optional[Callable[[], datetime]] = None
    ):
        self.session_factory = session_factory
        self.config = config
        self.scorer = scorer
        self.store = store
        self.gateway = gateway
        self.messages = messages
        self.reports = reports or ReportGenerator(
            org_name_field=config.intake.org_name_field,
            project_name_field=config.intake.project_name_field
        )
        self._clock = clock or utcnow

    @property
    def max_pending_lifetime(self) -> timedelta:
        return timedelta(days=self.config.workflow.max_pending_lifetime_days)

    def _now(self) -> datetime:
        return self._clock()

    # ------------------------------------------------------------------
    # Intake
    # ------------------------------------------------------------------

    def start(self, body: Any) -> IntakeResult:
        """
        Admit an intake event and drive it to awaiting_decision.

        Raises:
            ValidationError: If the body is not a recognizable intake event
        """
        event = normalize_event(body, self.config.intake)
        identity = compute_identity(event.submission)

        try:
            instance_id = self._admit(event, identity)
        except DuplicateSubmission as dup:
            logger.info(f"Duplicate submission {identity[:12]}, existing workflow {dup.instance_id}")
            state = None
            if dup.instance_id:
                state = self._resume_stalled(parse_instance_id(dup.instance_id), identity, event.submission)
            return IntakeResult(
                instance_id=dup.instance_id,
                identity=identity,
                state=state,
                duplicate=True
            )

        logger.info(f"Started workflow {instance_id} for submission {identity[:12]}")
        state = self._generate_reports(instance_id, identity, event.submission)
        return IntakeResult(instance_id=str(instance_id), identity=identity, state=state)

    def _admit(self, event: IntakeEvent, identity: str) -> uuid.UUID:
        org_name, project_name = self.reports.names(event.submission)
        with workflow_uow(self.session_factory) as uow:
            put = uow.submissions.put_if_absent(
                identity,
                to_storable(event.submission),
                org_name=org_name,
                project_name=project_name,
                event_type=event.event_type,
                received_at=event.received_at
            )
            if not put.created:
                existing = uow.workflows.get_by_submission(put.record.id)
                raise DuplicateSubmission(identity, str(existing.id) if existing else None)

            instance = uow.workflows.create(put.record, WorkflowState.STARTED.value, reason="intake")
            return instance.id

    def _resume_stalled(
        self,
        instance_id: uuid.UUID,
        identity: str,
        submission: Mapping[str, Any]
    ) -> WorkflowState:
        """
        Re-drive an instance that never reached awaiting_decision.

        Redelivering the original event is how an instance interrupted
        between admission and suspension gets moving again. One that is
        still in awaiting_report is only picked up once it has been there
        longer than workflow.stalled_report_seconds, so a slow first run
        is left alone.
        """
        view = self.get(instance_id)
        if view.state is WorkflowState.AWAITING_REPORT:
            stalled_after = timedelta(seconds=self.config.workflow.stalled_report_seconds)
            if self._now() - view.updated_at < stalled_after:
                return view.state
        elif view.state is not WorkflowState.STARTED:
            return view.state

        logger.warning(f"Resuming workflow {instance_id} stalled in {view.state.value}")
        return self._generate_reports(instance_id, identity, submission, resume_from=view.state)

    def _generate_reports(
        self,
        instance_id: uuid.UUID,
        identity: str,
        submission: Mapping[str, Any],
        resume_from: WorkflowState = WorkflowState.STARTED
    ) -> WorkflowState:
        with workflow_uow(self.session_factory) as uow:
            moved = uow.workflows.compare_and_set(
                instance_id,
                [resume_from.value],
                WorkflowState.AWAITING_REPORT.value,
                reason="generating reports",
                now=self._now()
            )
        if not moved:
            return self.get(instance_id).state

        try:
            score = self.scorer.score(submission)
            bundle = self.reports.generate(identity, submission, score)
            for artifact in bundle.artifacts:
                self.store.put_artifact(artifact.path, artifact.content, artifact.content_type)
        except Exception as e:
            logger.error(f"Report generation failed for workflow {instance_id}: {e}", exc_info=True)
            mark_failed(
                self.session_factory,
                instance_id,
                FailureReason.REPORT_FAILED,
                detail=str(e),
                expected=[WorkflowState.AWAITING_REPORT],
                now=self._now()
            )
            return WorkflowState.FAILED

        return self._suspend_for_decision(instance_id, submission, score, bundle)

    # ------------------------------------------------------------------
    # Suspension
    # ------------------------------------------------------------------

    def _suspend_for_decision(
        self,
        instance_id: uuid.UUID,
        submission: Mapping[str, Any],
        score: ScoreResult,
        bundle: ReportBundle
    ) -> WorkflowState:
        now = self._now()
        deadline = now + self.max_pending_lifetime
        token, token_hash = mint_token()

        # Token is durable before anyone can be told about it
        with workflow_uow(self.session_factory) as uow:
            moved = uow.workflows.compare_and_set(
                instance_id,
                [WorkflowState.AWAITING_REPORT.value],
                WorkflowState.AWAITING_DECISION.value,
                reason="awaiting reviewer decision",
                now=now,
                context={'reports': bundle.paths, 'score': score.to_dict()},
                decision_deadline=deadline
            )
            if moved:
                uow.tokens.add(instance_id, token_hash, deadline)
        if not moved:
            return self.get(instance_id).state

        try:
            self._notify_reviewer(instance_id, submission, score, bundle, token)
        except Exception as e:
            logger.error(f"Could not request a decision for workflow {instance_id}: {e}", exc_info=True)
            mark_failed(
                self.session_factory,
                instance_id,
                FailureReason.NOTIFICATION_FAILED,
                detail=str(e),
                expected=[WorkflowState.AWAITING_DECISION],
                now=self._now()
            )
            return WorkflowState.FAILED

        logger.info(f"Workflow {instance_id} awaiting decision until {deadline.isoformat()}")
        return WorkflowState.AWAITING_DECISION

    def _notify_reviewer(
        self,
        instance_id: uuid.UUID,
        submission: Mapping[str, Any],
        score: ScoreResult,
        bundle: ReportBundle,
        token: str
    ) -> None:
        expiry = self.config.storage.presign_expiry_seconds
        org_name, project_name = self.reports.names(submission)
        content = DecisionRequestContent(
            org_name=org_name,
            project_name=project_name,
            total_score=score.total,
            dimension_scores=dict(score.percentages),
            report_links=[
                ReportLink(label="Raw assessment (CSV)", url=self.store.presigned_url(bundle.raw_export.path, expiry)),
                ReportLink(label="Impact report", url=self.store.presigned_url(bundle.summary.path, expiry)),
            ],
            unscored_fields=[d.field for d in score.diagnostics]
        )
        message = self.messages.build_decision_request(content, token, now=self._now())
        self.gateway.send(
            self.config.notifications.reviewer_email,
            message.subject,
            message.body,
            metadata=message.metadata,
            instance_id=str(instance_id)
        )

    # ------------------------------------------------------------------
    # Resumption
    # ------------------------------------------------------------------

    def redeem(self, token: Optional[str], decision: Union[str, Decision]) -> RedemptionResult:
        """
        Apply a reviewer decision to the instance named by `token`.

        Raises:
            TokenError: missing, unknown, already-redeemed, expired or conflict
            ValidationError: Unknown decision value
        """
        if not token:
            raise TokenError(TokenError.MISSING, "Missing token")
        try:
            decision = Decision(decision)
        except ValueError:
            raise ValidationError(f"Unknown decision: {decision!r}")

        now = self._now()
        branch = BRANCH_FOR_DECISION[decision]

        with workflow_uow(self.session_factory) as uow:
            record = uow.tokens.get_by_hash(hash_token(token))
            if record is None:
                raise TokenError(TokenError.UNKNOWN, "Unknown token")
            instance_id = record.instance_id
            if record.is_spent:
                raise TokenError(TokenError.ALREADY_REDEEMED, "This link has already been used")

            expired = record.expires_at <= now
            if not expired:
                instance = uow.workflows.get(instance_id)
                identity = instance.submission.identity
                submission = dict(instance.submission.payload or {})
                context = dict(instance.context or {})

                moved = uow.workflows.compare_and_set(
                    instance_id,
                    [WorkflowState.AWAITING_DECISION.value],
                    branch.value,
                    reason=f"decision: {decision.value}",
                    now=now,
                    decision=decision.value,
                    decided_at=now
                )
                if not moved or not uow.tokens.mark_redeemed(record.id, decision.value, now):
                    # Rolls back the whole redemption
                    raise TokenError(TokenError.CONFLICT, "Decision already recorded for this project")

        if expired:
            timeout = DecisionTimeout(str(instance_id))
            mark_failed(
                self.session_factory,
                instance_id,
                FailureReason.DECISION_TIMEOUT,
                detail=str(timeout),
                expected=[WorkflowState.AWAITING_DECISION],
                now=now
            )
            raise TokenError(TokenError.EXPIRED, "This link has expired") from timeout

        logger.info(f"Workflow {instance_id} decision recorded: {decision.value}")
        state = self._run_branch(instance_id, decision, identity, submission, context)
        return RedemptionResult(instance_id=str(instance_id), decision=decision.value, state=state)

    def _run_branch(
        self,
        instance_id: uuid.UUID,
        decision: Decision,
        identity: str,
        submission: Dict[str, Any],
        context: Dict[str, Any]
    ) -> WorkflowState:
        branch = BRANCH_FOR_DECISION[decision]
        try:
            if decision == Decision.APPROVE:
                score = self.scorer.score(submission)
                followup = self.reports.followup(identity, submission, score)
                self.store.put_artifact(followup.path, followup.content, followup.content_type)
                context = {**context, 'followup': followup.path}
            self._notify_applicant(instance_id, decision, submission)
        except Exception as e:
            logger.error(f"{branch.value} failed for workflow {instance_id}: {e}", exc_info=True)
            mark_failed(
                self.session_factory,
                instance_id,
                FailureReason.BRANCH_FAILED,
                detail=str(e),
                expected=[branch],
                now=self._now()
            )
            return WorkflowState.FAILED

        now = self._now()
        with workflow_uow(self.session_factory) as uow:
            moved = uow.workflows.compare_and_set(
                instance_id,
                [branch.value],
                WorkflowState.COMPLETED.value,
                reason=f"{branch.value} done",
                now=now,
                context=context,
                finished_at=now
            )
        if not moved:
            # Cancelled while the branch ran
            return self.get(instance_id).state
        logger.info(f"Workflow {instance_id} completed ({decision.value})")
        return WorkflowState.COMPLETED

    def _notify_applicant(self, instance_id: uuid.UUID, decision: Decision, submission: Mapping[str, Any]) -> None:
        notifications = self.config.notifications
        email_field = self.config.intake.applicant_email_field
        recipient = submission.get(email_field) if email_field else None
        if not notifications.notify_applicant or not recipient:
            logger.info(f"No applicant notification for workflow {instance_id}")
            return

        org_name, project_name = self.reports.names(submission)
        message = self.messages.build_applicant_outcome(decision.value, org_name, project_name)
        self.gateway.send(
            str(recipient),
            message.subject,
            message.body,
            metadata=message.metadata,
            instance_id=str(instance_id)
        )

    # ------------------------------------------------------------------
    # Timeouts and administration
    # ------------------------------------------------------------------

    def expire_overdue(self, now: Optional[datetime] = None) -> List[str]:
        """
        Fail every instance whose decision deadline has passed.

        The reviewer is not re-notified. Returns the ids that were expired.
        """
        now = now or self._now()
        with workflow_uow(self.session_factory) as uow:
            overdue = uow.workflows.find_overdue(WorkflowState.AWAITING_DECISION.value, now)

        expired = []
        for instance_id in overdue:
            if mark_failed(
                self.session_factory,
                instance_id,
                FailureReason.DECISION_TIMEOUT,
                detail=str(DecisionTimeout(str(instance_id))),
                expected=[WorkflowState.AWAITING_DECISION],
                now=now
            ):
                expired.append(str(instance_id))

        if expired:
            logger.warning(f"Expired {len(expired)} workflow(s) awaiting decision")
        return expired

    def cancel(self, instance_id: Union[str, uuid.UUID], reason: Optional[str] = None) -> WorkflowView:
        """
        Administratively fail a non-terminal instance.

        Raises:
            InstanceNotFound: Unknown instance
            InvalidTransition: Instance already completed or failed
        """
        current = self.get(instance_id)
        if current.state.is_terminal:
            raise InvalidTransition(
                f"Workflow {current.instance_id} is already {current.state.value}"
            )
        if not mark_failed(
            self.session_factory,
            current.instance_id,
            FailureReason.CANCELLED,
            detail=reason or "cancelled by operator",
            now=self._now()
        ):
            raise InvalidTransition(f"Workflow {current.instance_id} finished before it could be cancelled")
        logger.info(f"Workflow {current.instance_id} cancelled")
        return self.get(current.instance_id)

    def get(self, instance_id: Union[str, uuid.UUID], with_transitions: bool = False) -> WorkflowView:
        uid = parse_instance_id(instance_id)
        with workflow_uow(self.session_factory) as uow:
            instance = uow.workflows.get(uid, refresh=True)
            if instance is None:
                raise InstanceNotFound(str(instance_id))
            return WorkflowView.from_model(instance, with_transitions=with_transitions)

    def list(
        self,
        state: Optional[Union[str, WorkflowState]] = None,
        limit: int = 100,
        offset: int = 0
    ) -> List[WorkflowView]:
        if state is not None:
            try:
                state = WorkflowState(state)
            except ValueError:
                raise ValidationError(f"Unknown state: {state!r}")
        with workflow_uow(self.session_factory) as uow:
            instances = uow.workflows.list(state.value if state else None, limit=limit, offset=offset)
            return [WorkflowView.from_model(i) for i in instances]
