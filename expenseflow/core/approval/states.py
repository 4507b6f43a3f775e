"""Approval lifecycle states and actions.

State Machine Diagram:

    ┌─────────────────┐
    │ PENDING_MANAGER │ ← Initial state ("pending" on older records)
    └───────┬─────────┘
            │ manager approves
            ├──────────────── amount <= manager limit ──────────┐
            │                                                   │
    ┌───────▼─────────┐                                         │
    │ PENDING_FINANCE │                                         │
    └───────┬─────────┘                                         │
            │ finance approves                                  │
            ├──────────────── amount <= finance limit ──────────┤
            │                                                   │
    ┌───────▼───────────┐                                 ┌─────▼────┐
    │ PENDING_PRESIDENT │──────── president approves ────►│ APPROVED │
    └───────────────────┘                                 └──────────┘

    Any pending state ── reject by its owner ──► REJECTED

APPROVED and REJECTED are terminal.
"""

from enum import Enum
from typing import Dict, Optional, Set


class ApprovalState(str, Enum):
    """Persisted status values of a request."""

    # Legacy alias of PENDING_MANAGER kept for older records
    PENDING = "pending"

    # Review states
    PENDING_MANAGER = "pending_manager"
    PENDING_FINANCE = "pending_finance"
    PENDING_PRESIDENT = "pending_president"

    # Terminal states
    APPROVED = "approved"
    REJECTED = "rejected"


class ApprovalAction(str, Enum):
    """Actions an approver can take on a pending request."""

    APPROVE = "approve"  # PENDING_* → next tier or APPROVED
    REJECT = "reject"    # PENDING_* → REJECTED


INITIAL_STATE = ApprovalState.PENDING_MANAGER

# Older records carry the unqualified status
LEGACY_ALIASES: Dict[ApprovalState, ApprovalState] = {
    ApprovalState.PENDING: ApprovalState.PENDING_MANAGER,
}

TERMINAL_STATES: Set[ApprovalState] = {
    ApprovalState.APPROVED,
    ApprovalState.REJECTED,
}

PENDING_STATES: Set[ApprovalState] = {
    ApprovalState.PENDING,
    ApprovalState.PENDING_MANAGER,
    ApprovalState.PENDING_FINANCE,
    ApprovalState.PENDING_PRESIDENT,
}

# Position on the ladder; a transition never lowers it
STATE_RANK: Dict[ApprovalState, int] = {
    ApprovalState.PENDING_MANAGER: 0,
    ApprovalState.PENDING_FINANCE: 1,
    ApprovalState.PENDING_PRESIDENT: 2,
    ApprovalState.APPROVED: 3,
    ApprovalState.REJECTED: 3,
}


def parse_state(value) -> Optional[ApprovalState]:
    """Parse a persisted status string. Returns None for unknown values."""
    if isinstance(value, ApprovalState):
        return value
    try:
        return ApprovalState(value)
    except ValueError:
        return None


def canonical_state(state: ApprovalState) -> ApprovalState:
    """Resolve legacy aliases to their canonical state."""
    return LEGACY_ALIASES.get(state, state)


def equivalent_states(state: ApprovalState) -> Set[ApprovalState]:
    """All persisted values that mean the same thing as ``state``."""
    canonical = canonical_state(state)
    equivalents = {canonical}
    for alias, target in LEGACY_ALIASES.items():
        if target == canonical:
            equivalents.add(alias)
    return equivalents


def is_terminal(state: ApprovalState) -> bool:
    return canonical_state(state) in TERMINAL_STATES


def is_pending(state: ApprovalState) -> bool:
    return state in PENDING_STATES


def is_forward(from_state: ApprovalState, to_state: ApprovalState) -> bool:
    """Check that a move does not go back down the ladder."""
    if is_terminal(from_state):
        return False
    return STATE_RANK[canonical_state(to_state)] > STATE_RANK[canonical_state(from_state)]
