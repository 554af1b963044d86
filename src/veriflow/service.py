"""
VeriFlow Verification Service

Orchestrates the engine against the stores for each lifecycle request.

Key features:
- Every operation returns an ActionResult; typed failures never escape
- Case writes go through compare-and-swap, re-read and retried on conflict
- Customer-facing errors are generic; validation lists every missing item
- Audit events are emitted best-effort and never fail the request
"""
from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Iterable, Mapping, Optional, TypeVar

from .config import Settings
from .engine import state_machine
from .engine.assignment import AssignmentBalancer, AssignmentResult, count_active_cases
from .engine.completeness import (
    CompletenessChecker,
    CompletenessReport,
    active_photo_fields,
)
from .engine.location import check_evidence_location, requires_gps
from .engine.rejection import (
    RejectionOutcome,
    RejectionPolicy,
    hydrate_revision_draft,
    merge_revision,
)
from .exceptions import ConcurrentUpdateError, ValidationError, VeriFlowError
from .infra import (
    AuditSink,
    CaseStore,
    DraftStore,
    InMemoryAuditSink,
    InMemoryCaseStore,
    InMemoryDraftStore,
    InMemorySubmissionStore,
    SecretTokenIssuer,
    SubmissionStore,
    TokenIssuer,
    next_reference,
)
from .models import (
    ActorType,
    AssignmentMode,
    AuditAction,
    AuditEvent,
    CustomerContact,
    DraftSession,
    GeoPoint,
    RejectionFeedback,
    Reviewer,
    Submission,
    Team,
    Template,
    VerificationCase,
    VerificationStatus,
)


logger = logging.getLogger(__name__)

T = TypeVar("T")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


# =============================================================================
# Result
# =============================================================================

@dataclass
class ActionResult:
    """
    Outcome of a service operation.

    On failure `error` holds the typed error and `message` the text that may
    be shown to the caller.
    """
    success: bool
    case: Optional[VerificationCase] = None
    error: Optional[VeriFlowError] = None
    draft: Optional[DraftSession] = None
    submission: Optional[Submission] = None
    report: Optional[CompletenessReport] = None
    outcome: Optional[RejectionOutcome] = None
    assignment: Optional[AssignmentResult] = None
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def ok(cls, case: Optional[VerificationCase] = None, **kwargs: Any) -> ActionResult:
        return cls(success=True, case=case, **kwargs)

    @classmethod
    def fail(cls, error: VeriFlowError, **kwargs: Any) -> ActionResult:
        return cls(success=False, error=error, **kwargs)

    @property
    def message(self) -> str:
        if self.error is None:
            return "OK"
        return self.error.public_message

    @property
    def error_code(self) -> Optional[str]:
        return self.error.code if self.error else None


# =============================================================================
# Service
# =============================================================================

class VerificationService:
    """
    Verification lifecycle operations over pluggable stores.

    Usage:
        service = VerificationService()
        created = service.create_case(template, customer, "POL-1", reviewers)

        opened = service.open_link(created.case.access_token)
        draft = service.load_draft(created.case.access_token).draft
        ...
        result = service.submit(created.case.access_token, draft)
        if not result.success:
            print(result.message)
    """

    def __init__(
        self,
        cases: Optional[CaseStore] = None,
        submissions: Optional[SubmissionStore] = None,
        drafts: Optional[DraftStore] = None,
        audit: Optional[AuditSink] = None,
        tokens: Optional[TokenIssuer] = None,
        settings: Optional[Settings] = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.cases = cases if cases is not None else InMemoryCaseStore()
        self.submissions = submissions if submissions is not None else InMemorySubmissionStore()
        self.drafts = drafts if drafts is not None else InMemoryDraftStore()
        self.audit = audit if audit is not None else InMemoryAuditSink()
        self.tokens = tokens if tokens is not None else SecretTokenIssuer()
        self.settings = settings or Settings()
        self.clock = clock

        self.checker = CompletenessChecker(max_dynamic_photos=self.settings.max_dynamic_photos)
        self.balancer = AssignmentBalancer()
        self.rejection_policy = RejectionPolicy(
            max_rejections=self.settings.max_rejections,
            link_validity=self.settings.revision_link_validity,
        )

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    def _emit(
        self,
        case: VerificationCase,
        action: AuditAction,
        actor_type: ActorType,
        actor_id: Optional[str] = None,
        **details: Any,
    ) -> None:
        event = AuditEvent.create(
            case_id=case.id,
            action=action,
            actor_type=actor_type,
            actor_id=actor_id,
            details={"status": case.status.value, **details},
            created_at=self.clock(),
        )
        try:
            self.audit.emit(event)
        except Exception:
            logger.exception(
                "Audit sink failed for %s", action.value, extra={"case_id": case.id}
            )

    def _update(
        self,
        case_id: str,
        mutate: Callable[[VerificationCase], tuple[VerificationCase, T]],
    ) -> tuple[VerificationCase, T]:
        """
        Apply `mutate` to the stored case and write it back atomically.

        The case is re-read on every attempt, so the mutation always sees the
        current counter and status. Typed errors from `mutate` propagate.
        """
        attempts = max(1, self.settings.cas_max_retries)
        last_conflict: Optional[ConcurrentUpdateError] = None
        for attempt in range(1, attempts + 1):
            current = self.cases.get(case_id)
            updated, value = mutate(current)
            try:
                stored = self.cases.compare_and_swap(case_id, current.version, updated)
                return stored, value
            except ConcurrentUpdateError as e:
                last_conflict = e
                logger.warning(
                    "Concurrent update, retrying",
                    extra={"case_id": case_id, "attempt": attempt},
                )
        raise last_conflict

    def _case_for_token(self, token: str) -> VerificationCase:
        return self.cases.get_by_token(token)

    def case_for_token(self, token: str) -> ActionResult:
        """Look up the case behind a customer link without checking editability."""
        try:
            return ActionResult.ok(self._case_for_token(token))
        except VeriFlowError as e:
            return ActionResult.fail(e)

    # -------------------------------------------------------------------------
    # Case creation
    # -------------------------------------------------------------------------

    def create_case(
        self,
        template: Template,
        customer: CustomerContact,
        policy_id: str,
        reviewers: Iterable[Reviewer] = (),
        teams: Optional[Mapping[str, Team]] = None,
        mode: AssignmentMode = AssignmentMode.AUTO,
        reviewer_id: Optional[str] = None,
        team_id: Optional[str] = None,
        property_location: Optional[GeoPoint] = None,
        link_expiry_hours: Optional[int] = None,
        actor_id: Optional[str] = None,
    ) -> ActionResult:
        """
        Create a case from a template and issue its customer link.

        In auto mode the least-loaded eligible reviewer is assigned; when
        nobody is eligible the case is created unassigned.
        """
        try:
            if not customer.name or not customer.phone:
                raise ValidationError(
                    message="Customer name and phone are required",
                    missing=[f for f, v in (("customer.name", customer.name),
                                            ("customer.phone", customer.phone)) if not v],
                )
            if mode == AssignmentMode.REVIEWER and not reviewer_id:
                raise ValidationError(
                    message="Reviewer assignment needs a reviewer_id",
                    missing=["reviewer_id"],
                )
            if mode == AssignmentMode.TEAM and not team_id:
                raise ValidationError(
                    message="Team assignment needs a team_id",
                    missing=["team_id"],
                )

            now = self.clock()
            existing = self.cases.list_cases()

            assignment: Optional[AssignmentResult] = None
            assigned_reviewer: Optional[str] = None
            assigned_team: Optional[str] = None
            if mode == AssignmentMode.AUTO:
                assignment = self.balancer.assign(
                    reviewers, count_active_cases(existing), template.policy_type, teams
                )
                assigned_reviewer = assignment.reviewer_id
                if not assignment.assigned:
                    logger.warning(assignment.message)
            elif mode == AssignmentMode.TEAM:
                assigned_team = team_id
            else:
                assigned_reviewer = reviewer_id

            hours = link_expiry_hours or self.settings.link_expiry_hours
            case = VerificationCase(
                id=str(uuid.uuid4()),
                reference=next_reference((c.reference for c in existing), now),
                customer=customer,
                policy_id=policy_id,
                policy_type=template.policy_type,
                access_token=self.tokens.issue(),
                access_token_expiry=now + timedelta(hours=hours),
                categories=template.snapshot(),
                status=VerificationStatus.DRAFT,
                created_at=now,
                assigned_reviewer_id=assigned_reviewer,
                assigned_team_id=assigned_team,
                property_location=property_location,
                template_id=template.id,
            )
            stored = self.cases.insert(case)
        except VeriFlowError as e:
            return ActionResult.fail(e)

        logger.info(
            "Verification created",
            extra={"case_id": stored.id, "reference": stored.reference,
                   "reviewer_id": stored.assigned_reviewer_id},
        )
        self._emit(
            stored, AuditAction.LINK_GENERATED, ActorType.ADMIN, actor_id,
            reference=stored.reference,
            assignment_mode=mode.value,
            assigned_reviewer_id=stored.assigned_reviewer_id,
        )
        return ActionResult.ok(stored, assignment=assignment)

    def get_case(self, case_id: str) -> ActionResult:
        try:
            return ActionResult.ok(self.cases.get(case_id))
        except VeriFlowError as e:
            return ActionResult.fail(e)

    # -------------------------------------------------------------------------
    # Customer session
    # -------------------------------------------------------------------------

    def open_link(self, token: str) -> ActionResult:
        """Validate the customer link; the first access marks the case in progress."""
        try:
            case = self._case_for_token(token)
            first_access = case.link_accessed_at is None
            now = self.clock()
            stored, _ = self._update(case.id, lambda c: (state_machine.open_link(c, now), None))
        except VeriFlowError as e:
            return ActionResult.fail(e)

        if first_access:
            self._emit(stored, AuditAction.LINK_ACCESSED, ActorType.CUSTOMER)
        return ActionResult.ok(
            stored,
            extra={
                "customer_name": stored.customer.name,
                "masked_phone": stored.customer.masked_phone,
                "requires_gps": requires_gps(stored.policy_type),
                "is_revision": stored.status == VerificationStatus.NEEDS_REVISION,
            },
        )

    def load_draft(self, token: str) -> ActionResult:
        """
        The customer's saved draft, or a fresh one.

        During a revision round with no saved draft, the draft is hydrated
        from the latest submission minus the flagged fields.
        """
        try:
            case = self._case_for_token(token)
            state_machine.ensure_editable(case, self.clock(), "load draft")
            draft = self.drafts.load(case.id)
            if draft is None:
                if case.status == VerificationStatus.NEEDS_REVISION:
                    draft = hydrate_revision_draft(
                        self.submissions.latest(case.id), case.rejection_reason, case.id
                    )
                else:
                    draft = DraftSession(case_id=case.id)
        except VeriFlowError as e:
            return ActionResult.fail(e)
        return ActionResult.ok(case, draft=draft)

    def start_revision(self, token: str) -> ActionResult:
        """Correction draft built from the latest submission and the reviewer's flags."""
        try:
            case = self._case_for_token(token)
            state_machine.ensure_editable(case, self.clock(), "start revision")
            if case.status != VerificationStatus.NEEDS_REVISION:
                raise ValidationError(
                    message="Case has no pending revision",
                    case_id=case.id,
                )
            draft = hydrate_revision_draft(
                self.submissions.latest(case.id), case.rejection_reason, case.id
            )
        except VeriFlowError as e:
            return ActionResult.fail(e)
        return ActionResult.ok(case, draft=draft)

    def _lock_revision(self, case: VerificationCase, draft: DraftSession) -> DraftSession:
        """Restore verified values from the latest submission during revision."""
        if case.status != VerificationStatus.NEEDS_REVISION:
            return draft
        previous = self.submissions.latest(case.id)
        if previous is None:
            return draft
        locked = replace(draft, categories=dict(draft.categories))
        for prior in previous.categories:
            revision = draft.peek(prior.category_id)
            locked.categories[prior.category_id] = merge_revision(
                prior, revision, case.rejection_reason
            )
        return locked

    def save_draft(self, token: str, draft: DraftSession) -> ActionResult:
        """Checkpoint the customer's draft."""
        try:
            case = self._case_for_token(token)
            now = self.clock()
            state_machine.ensure_editable(case, now, "save draft")
            draft = self._lock_revision(case, replace(draft, case_id=case.id, saved_at=now))
            self.drafts.save(draft)
        except VeriFlowError as e:
            return ActionResult.fail(e)
        self._emit(case, AuditAction.DRAFT_SAVED, ActorType.CUSTOMER,
                   current_category_index=draft.current_category_index)
        return ActionResult.ok(case, draft=draft)

    def check_completeness(self, token: str, draft: DraftSession) -> ActionResult:
        try:
            case = self._case_for_token(token)
            state_machine.ensure_editable(case, self.clock(), "check completeness")
            report = self.checker.check_form(case.categories, self._lock_revision(case, draft))
        except VeriFlowError as e:
            return ActionResult.fail(e)
        return ActionResult.ok(case, report=report)

    def _location_flags(self, case: VerificationCase, draft: DraftSession) -> dict[str, str]:
        if not requires_gps(case.policy_type):
            return {}
        flags: dict[str, str] = {}
        for category in case.categories:
            data = draft.peek(category.id)
            for photo_field in active_photo_fields(
                category, data, self.settings.max_dynamic_photos
            ):
                evidence = data.photos.get(photo_field.field_id)
                if not photo_field.capture_gps or evidence is None:
                    continue
                check = check_evidence_location(
                    evidence.gps, case.property_location, self.settings.gps_tolerance_meters
                )
                if not check.valid or not check.within_tolerance:
                    flags[f"{category.id}/{photo_field.field_id}"] = check.message
        return flags

    def submit(self, token: str, draft: DraftSession) -> ActionResult:
        """
        Submit the draft for review.

        Fails with every missing requirement at once when the form is
        incomplete. Evidence the form no longer asks for stays in the saved
        draft but is left out of the submission.
        """
        report: Optional[CompletenessReport] = None
        try:
            case = self._case_for_token(token)
            now = self.clock()
            # Status and expiry first, so a closed case never reports missing items
            state_machine.submit(case, now)

            if not draft.consent_given:
                raise ValidationError(
                    message="Consent is required",
                    case_id=case.id,
                    missing=["Consent"],
                )

            effective = self._lock_revision(case, draft)
            report = self.checker.check_form(case.categories, effective)
            if not report.is_complete:
                raise ValidationError(
                    message="Form is incomplete",
                    case_id=case.id,
                    missing=report.all_missing,
                )

            def _submit(current: VerificationCase) -> tuple[VerificationCase, None]:
                if current.access_token != token:
                    raise ValidationError(
                        message="Access token changed during submission",
                        case_id=current.id,
                    )
                return state_machine.submit(current, now), None

            stored, _ = self._update(case.id, _submit)

            submission = Submission.create(
                case_id=stored.id,
                submission_number=self.submissions.next_number(stored.id),
                categories=self.checker.snapshot_categories(stored.categories, effective),
                consent_given=True,
                consent_timestamp=draft.consent_timestamp or now,
                submitted_at=now,
            )
            submission.location_flags = self._location_flags(stored, effective)
            self.submissions.insert(submission)
            self.drafts.discard(stored.id)
        except VeriFlowError as e:
            return ActionResult.fail(e, report=report)

        logger.info(
            "Verification submitted",
            extra={"case_id": stored.id, "submission_number": submission.submission_number},
        )
        self._emit(
            stored, AuditAction.VERIFICATION_SUBMITTED, ActorType.CUSTOMER,
            submission_id=submission.id,
            submission_number=submission.submission_number,
        )
        return ActionResult.ok(stored, submission=submission, report=report)

    # -------------------------------------------------------------------------
    # Reviewer actions
    # -------------------------------------------------------------------------

    def approve(self, case_id: str, reviewer_id: Optional[str] = None) -> ActionResult:
        try:
            now = self.clock()
            stored, _ = self._update(case_id, lambda c: (state_machine.approve(c, now), None))
        except VeriFlowError as e:
            return ActionResult.fail(e)

        logger.info("Verification approved", extra={"case_id": case_id, "reviewer_id": reviewer_id})
        self._emit(stored, AuditAction.VERIFICATION_APPROVED, ActorType.REVIEWER, reviewer_id)
        return ActionResult.ok(stored)

    def reject(
        self,
        case_id: str,
        feedback: RejectionFeedback,
        reviewer_id: Optional[str] = None,
    ) -> ActionResult:
        """
        Reject with field-level feedback.

        The counter read and the write happen under one compare-and-swap, so
        two concurrent rejections can never both act on the same count.
        """
        try:
            now = self.clock()
            stored, outcome = self._update(
                case_id,
                lambda c: state_machine.reject(
                    c, feedback, now, self.tokens.issue, self.rejection_policy
                ),
            )
        except VeriFlowError as e:
            return ActionResult.fail(e)

        logger.info(
            "Verification rejected",
            extra={"case_id": case_id, "reviewer_id": reviewer_id,
                   "status": outcome.status.value,
                   "rejection_count": outcome.new_rejection_count},
        )
        action = (
            AuditAction.VERIFICATION_REJECTED if outcome.is_permanent
            else AuditAction.REVISION_REQUESTED
        )
        self._emit(
            stored, action, ActorType.REVIEWER, reviewer_id,
            rejection_count=outcome.new_rejection_count,
            rejection_reason=stored.rejection_reason,
        )
        return ActionResult.ok(stored, outcome=outcome)

    def reassign(
        self,
        case_id: str,
        reviewer_id: Optional[str],
        actor_id: Optional[str] = None,
    ) -> ActionResult:
        try:
            previous: dict[str, Optional[str]] = {}

            def _reassign(current: VerificationCase) -> tuple[VerificationCase, None]:
                previous["reviewer_id"] = current.assigned_reviewer_id
                return state_machine.reassign(current, reviewer_id), None

            stored, _ = self._update(case_id, _reassign)
        except VeriFlowError as e:
            return ActionResult.fail(e)

        self._emit(
            stored, AuditAction.VERIFICATION_REASSIGNED, ActorType.ADMIN, actor_id,
            from_reviewer_id=previous.get("reviewer_id"),
            to_reviewer_id=reviewer_id,
        )
        return ActionResult.ok(stored)

    # -------------------------------------------------------------------------
    # External triggers
    # -------------------------------------------------------------------------

    def cancel(self, case_id: str, actor_id: Optional[str] = None) -> ActionResult:
        try:
            stored, _ = self._update(case_id, lambda c: (state_machine.cancel(c), None))
        except VeriFlowError as e:
            return ActionResult.fail(e)

        self._emit(stored, AuditAction.VERIFICATION_CANCELLED, ActorType.ADMIN, actor_id)
        return ActionResult.ok(stored)

    def expire_stale(self, now: Optional[datetime] = None) -> list[str]:
        """Expire every open case whose customer link has run out. Returns their IDs."""
        now = now or self.clock()
        expired: list[str] = []
        for case in self.cases.list_cases():
            if case.status not in state_machine.OPEN_STATUSES or not case.is_link_expired(now):
                continue
            try:
                stored, _ = self._update(case.id, lambda c: (state_machine.expire(c, now), None))
            except VeriFlowError as e:
                logger.info(
                    "Skipped expiry: %s", e.message,
                    extra={"case_id": case.id, "error_code": e.code},
                )
                continue
            expired.append(stored.id)
            self._emit(stored, AuditAction.VERIFICATION_EXPIRED, ActorType.SYSTEM)
        return expired
