"""Approval state machine implementation.

Computes transitions for a single request, records them and runs
post-transition callbacks. Authorization is checked by the caller through
``guard.can_act`` before a transition is requested.
"""

import logging
import uuid
from datetime import datetime
from decimal import Decimal
from typing import Any, Callable, Dict, Optional

from expenseflow.core.rbac.roles import Role

from .guard import can_act
from .policy import ApprovalThresholds, next_state
from .states import (
    ApprovalAction,
    ApprovalState,
    canonical_state,
    is_forward,
    is_terminal,
)

logger = logging.getLogger(__name__)


class TransitionError(Exception):
    """Raised when no transition is defined for the current state."""

    def __init__(self, message: str, from_state: ApprovalState, action: ApprovalAction):
        super().__init__(message)
        self.from_state = from_state
        self.action = action


class ApprovalStateMachine:
    """
    State machine for the request approval lifecycle.

    Manages transitions between approval states with:
    - Amount-based routing through the threshold policy
    - Forward-only movement along the ladder
    - In-memory record of transitions
    - Callback hooks for side effects
    """

    def __init__(
        self,
        entity_id,
        current_state: ApprovalState,
        amount: Decimal,
        *,
        thresholds: Optional[ApprovalThresholds] = None,
    ):
        """
        Initialize the state machine.

        Args:
            entity_id: ID of the request
            current_state: Current persisted state
            amount: Request amount, fixed at submission
            thresholds: Escalation limits, defaults when omitted
        """
        if amount < 0:
            raise ValueError("Request amount must be non-negative")

        self.entity_id = entity_id
        self._state = current_state
        self.amount = Decimal(amount)
        self.thresholds = thresholds or ApprovalThresholds()
        self._transition_history: list[Dict[str, Any]] = []
        self._callbacks: Dict[ApprovalAction, list[Callable]] = {}

    @property
    def state(self) -> ApprovalState:
        """Current state of the request."""
        return self._state

    @property
    def is_terminal(self) -> bool:
        """Check if current state is terminal (no further transitions)."""
        return is_terminal(self._state)

    def get_available_actions(self, role: Role) -> list[ApprovalAction]:
        """Actions ``role`` could take from the current state."""
        if not can_act(self._state, role):
            return []
        return list(ApprovalAction)

    def peek(self, action: ApprovalAction, role: Role) -> ApprovalState:
        """Compute the target state of an action without applying it."""
        if self.is_terminal:
            raise TransitionError(
                f"Cannot {action.value} from terminal state {self._state.value}",
                self._state,
                action,
            )

        if action == ApprovalAction.REJECT:
            return ApprovalState.REJECTED

        if action == ApprovalAction.APPROVE:
            target = next_state(role, self.amount, self.thresholds)
            if not is_forward(self._state, target):
                raise TransitionError(
                    f"{role.value} approval would move {self._state.value} back to {target.value}",
                    self._state,
                    action,
                )
            return target

        raise TransitionError(f"Unknown action {action}", self._state, action)

    def transition(
        self,
        action: ApprovalAction,
        role: Role,
        *,
        user_id=None,
        comment: Optional[str] = None,
    ) -> ApprovalState:
        """
        Perform a state transition.

        Args:
            action: Approve or reject
            role: Role of the acting approver
            user_id: ID of user performing the transition
            comment: Optional comment

        Returns:
            The new state after transition

        Raises:
            TransitionError: If the transition is undefined
            RoutingError: If the role holds no approval tier
        """
        from_state = self._state
        to_state = self.peek(action, role)

        transition_record = {
            "id": uuid.uuid4(),
            "entity_id": self.entity_id,
            "from_state": from_state.value,
            "to_state": to_state.value,
            "canonical_from": canonical_state(from_state).value,
            "action": action.value,
            "role": role.value,
            "user_id": user_id,
            "comment": comment,
            "timestamp": datetime.utcnow(),
        }
        self._transition_history.append(transition_record)

        self._state = to_state

        self._execute_callbacks(action, transition_record)

        return self._state

    def register_callback(
        self,
        action: ApprovalAction,
        callback: Callable[[Dict[str, Any]], None],
    ) -> None:
        """
        Register a callback to be executed after a transition.

        Args:
            action: The action to hook
            callback: Function to call with transition record
        """
        self._callbacks.setdefault(action, []).append(callback)

    def get_history(self) -> list[Dict[str, Any]]:
        """Get the transitions applied by this machine."""
        return self._transition_history.copy()

    def _execute_callbacks(self, action: ApprovalAction, record: Dict[str, Any]) -> None:
        """Execute registered callbacks for an action."""
        for callback in self._callbacks.get(action, []):
            try:
                callback(record)
            except Exception:
                logger.exception(f"Callback error for {action.value} on {self.entity_id}")
