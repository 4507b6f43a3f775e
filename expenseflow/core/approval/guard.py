"""Authorization guard for approval actions.

The single check run before any status mutation: a request in a pending
state can only be acted on by the role that owns that state. Terminal
states are actionable by nobody, and admin never gains approval
authority here.
"""

from typing import Dict, Iterable, Union

from expenseflow.core.rbac.roles import Role

from .states import ApprovalState, parse_state


# Which role owns each actionable state
STATE_OWNERS: Dict[ApprovalState, Role] = {
    ApprovalState.PENDING: Role.MANAGER,
    ApprovalState.PENDING_MANAGER: Role.MANAGER,
    ApprovalState.PENDING_FINANCE: Role.FINANCE,
    ApprovalState.PENDING_PRESIDENT: Role.PRESIDENT,
}


def can_act(status: Union[str, ApprovalState], role: Union[str, Role]) -> bool:
    """Check whether ``role`` may approve or reject a request in ``status``."""
    state = parse_state(status)
    if state is None:
        return False

    try:
        role = Role(role)
    except ValueError:
        return False

    owner = STATE_OWNERS.get(state)
    return owner is not None and owner == role


def actionable_states(role: Union[str, Role]) -> set[ApprovalState]:
    """Persisted states a role can act on. Used to filter queries."""
    return {state for state in STATE_OWNERS if can_act(state, role)}


def filter_actionable(requests: Iterable, role: Union[str, Role]) -> list:
    """Keep the requests whose ``status`` the role can act on."""
    return [r for r in requests if can_act(r.status, role)]
