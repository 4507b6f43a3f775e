"""Workflow service for expense claim and purchase order approvals.

Provides the high-level API over the approval state machine: loading
requests, checking the authorization guard, persisting transitions with
a compare-and-swap on status, recording history and notifying the
people involved once the transition is committed.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Union
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from expenseflow.core.errors import (
    ConflictError,
    Forbidden,
    NotFound,
    PersistenceError,
    Unauthenticated,
    ValidationError,
)
from expenseflow.core.rbac.roles import Role
from expenseflow.db.models import (
    ApprovalHistory,
    ExpenseClaim,
    NotificationEventType,
    Profile,
    PurchaseOrder,
    RequestKind,
    model_for,
)
from expenseflow.db.repository import RequestRepository

from .guard import actionable_states, can_act, filter_actionable
from .machine import ApprovalStateMachine
from .policy import ApprovalThresholds, approver_for
from .states import (
    INITIAL_STATE,
    PENDING_STATES,
    ApprovalAction,
    ApprovalState,
    canonical_state,
    equivalent_states,
    is_terminal,
    parse_state,
)

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")
MAX_AMOUNT = Decimal(10) ** 10


@dataclass(frozen=True)
class Actor:
    """The resolved identity acting on a request."""

    id: UUID
    role: Role

    @classmethod
    def from_profile(cls, profile: Profile) -> "Actor":
        return cls(id=profile.id, role=Role(profile.role))


@dataclass
class TransitionResult:
    """Outcome of a committed approve or reject."""

    kind: RequestKind
    request_id: UUID
    from_status: ApprovalState
    to_status: ApprovalState
    action: ApprovalAction
    actor_id: UUID
    next_approver: Optional[Role] = None

    @property
    def escalated(self) -> bool:
        return self.next_approver is not None

    @property
    def terminal(self) -> bool:
        return is_terminal(self.to_status)


@dataclass
class ActionableSummary:
    """Requests a role can act on, with their count."""

    items: List[Any] = field(default_factory=list)
    count: int = 0


@dataclass
class SubmitterSummary:
    """Dashboard figures for one submitter across both request kinds."""

    total: int = 0
    pending: int = 0
    approved_total: Decimal = Decimal("0")


def status_label(status: Union[str, ApprovalState]) -> str:
    """Badge text for a status, e.g. ``PENDING FINANCE``."""
    state = parse_state(status)
    if state is None:
        return str(status).replace("_", " ").upper()
    return canonical_state(state).value.replace("_", " ").upper()


def status_hint(status: Union[str, ApprovalState], role: Union[str, Role]) -> str:
    """How a status reads to a given role.

    Returns one of ``actionable``, ``completed``, ``rejected`` or
    ``waiting``.
    """
    state = parse_state(status)
    if state is not None and can_act(state, role):
        return "actionable"
    if state == ApprovalState.APPROVED:
        return "completed"
    if state == ApprovalState.REJECTED:
        return "rejected"
    return "waiting"


def actionable(requests: Iterable, role: Union[str, Role]) -> ActionableSummary:
    """Project a request list onto the ones ``role`` can act on."""
    items = filter_actionable(requests, role)
    return ActionableSummary(items=items, count=len(items))


def request_link(kind: RequestKind, request_id: UUID) -> str:
    return f"/requests/{RequestKind(kind).value}/{request_id}"


class WorkflowService:
    """
    High-level service for the approval workflow.

    Handles:
    - Submitting expense claims and purchase orders
    - Approving and rejecting with guard, routing and persistence
    - Dashboard queries
    """

    def __init__(
        self,
        db: Session,
        *,
        thresholds: Optional[ApprovalThresholds] = None,
        notifier=None,
        repository: Optional[RequestRepository] = None,
    ):
        """
        Initialize the workflow service.

        Args:
            db: Database session
            thresholds: Escalation limits, defaults when omitted
            notifier: Notification dispatcher, notifications are skipped when None
            repository: Record store, built on ``db`` when omitted
        """
        self.db = db
        self.thresholds = thresholds or ApprovalThresholds()
        self.notifier = notifier
        self.repository = repository or RequestRepository(db)

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    def act(
        self,
        kind: Union[RequestKind, str],
        request_id: UUID,
        actor: Optional[Actor],
        action: Union[ApprovalAction, str],
        comment: Optional[str] = None,
    ) -> TransitionResult:
        """
        Approve or reject a request.

        Args:
            kind: Request kind
            request_id: ID of the request
            actor: Identity performing the action
            action: Approve or reject
            comment: Optional comment stored with the history entry

        Returns:
            The committed transition

        Raises:
            NotFound: If the request does not exist
            Unauthenticated: If no actor is given
            Forbidden: If the actor's role does not own the current status
            ConflictError: If the status changed since it was read
            PersistenceError: If the write failed
        """
        kind = RequestKind(kind)
        action = ApprovalAction(action)

        request = self.repository.get(kind, request_id)
        if request is None:
            raise NotFound(kind.label, request_id)

        if actor is None:
            raise Unauthenticated()

        observed = parse_state(request.status)
        if observed is None or not can_act(observed, actor.role):
            raise Forbidden(
                f"Role {actor.role.value} cannot {action.value} a request in status {request.status}",
                status=request.status,
                role=actor.role.value,
            )

        machine = ApprovalStateMachine(
            entity_id=request.id,
            current_state=observed,
            amount=request.amount,
            thresholds=self.thresholds,
        )
        new_state = machine.transition(action, actor.role, user_id=actor.id, comment=comment)
        record_id = request.id
        submitter_id = request.submitter_id

        self._commit_transition(kind, observed, machine.get_history()[-1])

        result = TransitionResult(
            kind=kind,
            request_id=record_id,
            from_status=observed,
            to_status=new_state,
            action=action,
            actor_id=actor.id,
            next_approver=approver_for(new_state),
        )
        logger.info(
            f"{kind.label} {request_id}: {observed.value} -> {new_state.value} "
            f"by {actor.role.value} {actor.id}"
        )

        try:
            self._notify_transition(result, submitter_id, comment)
        except Exception:
            logger.exception(f"Notifications for {kind.value} {record_id} failed")
        return result

    def approve(self, kind, request_id: UUID, actor: Optional[Actor], comment: Optional[str] = None) -> TransitionResult:
        return self.act(kind, request_id, actor, ApprovalAction.APPROVE, comment)

    def reject(self, kind, request_id: UUID, actor: Optional[Actor], comment: Optional[str] = None) -> TransitionResult:
        return self.act(kind, request_id, actor, ApprovalAction.REJECT, comment)

    def _commit_transition(
        self,
        kind: RequestKind,
        observed: ApprovalState,
        record: Dict[str, Any],
    ) -> None:
        """Persist a machine transition record and the status change in one transaction."""
        request_id = record["entity_id"]
        try:
            updated = self.repository.update_status(
                kind,
                request_id,
                equivalent_states(observed),
                record["to_state"],
            )
            if updated != 1:
                self.db.rollback()
                raise ConflictError(request_id, canonical_state(observed).value)

            self.db.add(ApprovalHistory(
                id=record["id"],
                request_kind=kind.value,
                request_id=request_id,
                from_status=record["from_state"],
                to_status=record["to_state"],
                action=record["action"],
                actor_id=record["user_id"],
                actor_role=record["role"],
                comment=record["comment"],
                created_at=record["timestamp"],
            ))
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.exception(f"Failed to persist transition of {kind.value} {request_id}")
            raise PersistenceError(f"Could not update {kind.label.lower()} {request_id}") from e

    def _notify_transition(
        self,
        result: TransitionResult,
        submitter_id: Optional[UUID],
        comment: Optional[str],
    ) -> None:
        if self.notifier is None:
            return

        label = result.kind.label
        link = request_link(result.kind, result.request_id)

        if result.to_status == ApprovalState.REJECTED:
            message = f"Your {label.lower()} was rejected"
            if comment:
                message = f"{message}: {comment}"
            event = NotificationEventType.REQUEST_REJECTED
        elif result.to_status == ApprovalState.APPROVED:
            message = f"Your {label.lower()} was approved"
            event = NotificationEventType.REQUEST_APPROVED
        else:
            message = f"Your {label.lower()} moved to {status_label(result.to_status).title()}"
            event = NotificationEventType.REQUEST_ESCALATED

        if submitter_id is not None:
            self.notifier.emit(submitter_id, message, link, event_type=event)

        if result.escalated:
            self.notifier.notify_role(
                result.next_approver,
                f"{label} awaiting your approval",
                link,
                event_type=NotificationEventType.REQUEST_ESCALATED,
            )

    # ------------------------------------------------------------------
    # Submission
    # ------------------------------------------------------------------

    def submit_expense(
        self,
        actor: Optional[Actor],
        title: str,
        amount,
        *,
        category: Optional[str] = None,
        description: Optional[str] = None,
        receipt_url: Optional[str] = None,
    ) -> ExpenseClaim:
        """Create an expense claim in the initial state, owned by ``actor``."""
        if not title or not title.strip():
            raise ValidationError("Title is required")

        claim = ExpenseClaim(
            title=title.strip(),
            amount=self._validate_amount(amount),
            category=category,
            description=description,
            receipt_url=receipt_url,
        )
        return self._submit(RequestKind.EXPENSE, claim, actor)

    def submit_purchase_order(
        self,
        actor: Optional[Actor],
        vendor_name: str,
        item_details: str,
        total_cost,
    ) -> PurchaseOrder:
        """Create a purchase order in the initial state, owned by ``actor``."""
        if not vendor_name or not vendor_name.strip():
            raise ValidationError("Vendor name is required")
        if not item_details or not item_details.strip():
            raise ValidationError("Item details are required")

        order = PurchaseOrder(
            vendor_name=vendor_name.strip(),
            item_details=item_details.strip(),
            amount=self._validate_amount(total_cost),
        )
        return self._submit(RequestKind.PURCHASE_ORDER, order, actor)

    def _submit(self, kind: RequestKind, request, actor: Optional[Actor]):
        if actor is None:
            raise Unauthenticated()

        request.status = INITIAL_STATE.value
        request.submitter_id = actor.id

        try:
            self.repository.add(request)
            self.db.commit()
        except SQLAlchemyError as e:
            self.db.rollback()
            logger.exception(f"Failed to submit {kind.value}")
            raise PersistenceError(f"Could not submit {kind.label.lower()}") from e

        self.db.refresh(request)
        logger.info(f"{kind.label} {request.id} submitted by {actor.id} for {request.amount}")

        if self.notifier is not None:
            try:
                self.notifier.notify_role(
                    approver_for(INITIAL_STATE),
                    f"New {kind.label.lower()} awaiting your approval",
                    request_link(kind, request.id),
                    event_type=NotificationEventType.REQUEST_SUBMITTED,
                    exclude=actor.id,
                )
            except Exception:
                logger.exception(f"Notifications for {kind.value} {request.id} failed")
        return request

    @staticmethod
    def _validate_amount(amount) -> Decimal:
        try:
            value = Decimal(str(amount))
        except ArithmeticError:
            raise ValidationError(f"Invalid amount: {amount!r}")
        if not value.is_finite():
            raise ValidationError(f"Invalid amount: {amount!r}")
        if value < 0:
            raise ValidationError("Amount must be non-negative")
        if value >= MAX_AMOUNT:
            raise ValidationError(f"Amount must be less than {MAX_AMOUNT}")
        # Stored as NUMERIC(12, 2); rounding would move an amount across a limit
        if value != value.quantize(CENT):
            raise ValidationError(f"Amount {amount} has more than two decimal places")
        return value.quantize(CENT)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get_request(self, kind: Union[RequestKind, str], request_id: UUID):
        kind = RequestKind(kind)
        request = self.repository.get(kind, request_id)
        if request is None:
            raise NotFound(kind.label, request_id)
        return request

    def get_history(self, kind: Union[RequestKind, str], request_id: UUID) -> List[ApprovalHistory]:
        """Committed transitions of a request, oldest first."""
        kind = RequestKind(kind)
        self.get_request(kind, request_id)
        return self.db.query(ApprovalHistory).filter(
            ApprovalHistory.request_kind == kind.value,
            ApprovalHistory.request_id == request_id,
        ).order_by(ApprovalHistory.created_at.asc()).all()

    def list_requests(
        self,
        kind: Union[RequestKind, str],
        *,
        status: Optional[str] = None,
        submitter_id: Optional[UUID] = None,
        newest_first: bool = True,
        limit: Optional[int] = None,
        offset: int = 0,
    ) -> List:
        """
        List requests of a kind.

        A ``status`` filter matches its legacy aliases too, so
        ``pending_manager`` also returns rows stored as ``pending``.
        """
        return self.repository.list(
            RequestKind(kind),
            statuses=self._status_filter(status),
            submitter_id=submitter_id,
            newest_first=newest_first,
            limit=limit,
            offset=offset,
        )

    def count_requests(
        self,
        kind: Union[RequestKind, str],
        *,
        status: Optional[str] = None,
        submitter_id: Optional[UUID] = None,
    ) -> int:
        return self.repository.count(
            RequestKind(kind),
            statuses=self._status_filter(status),
            submitter_id=submitter_id,
        )

    @staticmethod
    def _status_filter(status: Optional[str]):
        if status is None:
            return None
        state = parse_state(status)
        if state is None:
            raise ValidationError(f"Unknown status: {status}")
        return equivalent_states(state)

    def actionable_for(self, actor: Actor, kind: Union[RequestKind, str]) -> ActionableSummary:
        """Requests of a kind the actor can act on right now, oldest first."""
        candidates = self.repository.list(
            RequestKind(kind),
            statuses=actionable_states(actor.role),
            newest_first=False,
        )
        return actionable(candidates, actor.role)

    def submitter_summary(self, user_id: UUID) -> SubmitterSummary:
        """Counts and approved total over a user's own requests."""
        summary = SubmitterSummary()
        pending_values = [s.value for s in PENDING_STATES]

        for kind in RequestKind:
            model = model_for(kind)
            own = self.db.query(model).filter(model.submitter_id == user_id)

            summary.total += own.count()
            summary.pending += own.filter(model.status.in_(pending_values)).count()

            approved = self.db.query(func.coalesce(func.sum(model.amount), 0)).filter(
                model.submitter_id == user_id,
                model.status == ApprovalState.APPROVED.value,
            ).scalar()
            summary.approved_total += Decimal(str(approved))

        return summary

    def dashboard(self, actor: Actor) -> Dict[str, Any]:
        """Everything a role's dashboard shows, per request kind."""
        return {
            kind.value: self.actionable_for(actor, kind)
            for kind in RequestKind
        }
