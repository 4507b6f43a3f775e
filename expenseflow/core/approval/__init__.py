"""Approval workflow module for ExpenseFlow.

Implements the threshold policy, the authorization guard and the request
lifecycle shared by expense claims and purchase orders.
"""

from .states import ApprovalState, ApprovalAction, INITIAL_STATE, TERMINAL_STATES
from .policy import ApprovalThresholds, next_state, load_thresholds, thresholds_from_settings
from .guard import can_act, actionable_states
from .machine import ApprovalStateMachine, TransitionError
from .service import (
    Actor,
    ActionableSummary,
    SubmitterSummary,
    TransitionResult,
    WorkflowService,
    actionable,
    status_hint,
    status_label,
)

__all__ = [
    "ApprovalState",
    "ApprovalAction",
    "INITIAL_STATE",
    "TERMINAL_STATES",
    "ApprovalThresholds",
    "next_state",
    "load_thresholds",
    "thresholds_from_settings",
    "can_act",
    "actionable_states",
    "ApprovalStateMachine",
    "TransitionError",
    "Actor",
    "ActionableSummary",
    "SubmitterSummary",
    "TransitionResult",
    "WorkflowService",
    "actionable",
    "status_hint",
    "status_label",
]
