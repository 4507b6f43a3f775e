"""Approval threshold policy.

Maps the acting approver's role and the request amount to the next
lifecycle state. Limits are policy data, loaded from settings and
optionally overridden by a YAML policy file:

    approval:
      manager_limit: 20
      finance_limit: 50
"""

from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from expenseflow.core.errors import RoutingError
from expenseflow.core.rbac.roles import Role

from .states import ApprovalState


@dataclass(frozen=True)
class ApprovalThresholds:
    """Escalation limits of the approval ladder.

    A request whose amount is strictly greater than a tier's limit is
    escalated to the next tier; an amount equal to the limit is approved
    at that tier.
    """

    manager_limit: Decimal = Decimal("20")
    finance_limit: Decimal = Decimal("50")

    def __post_init__(self):
        if self.manager_limit < 0 or self.finance_limit < 0:
            raise ValueError("Approval limits must be non-negative")
        if self.finance_limit <= self.manager_limit:
            raise ValueError(
                f"finance_limit ({self.finance_limit}) must be greater than "
                f"manager_limit ({self.manager_limit})"
            )


def next_state(
    role: Role,
    amount: Decimal,
    thresholds: Optional[ApprovalThresholds] = None,
) -> ApprovalState:
    """Return the state a request moves to when ``role`` approves it.

    Raises:
        RoutingError: If the role holds no approval tier. Callers must
            check the authorization guard first.
    """
    limits = thresholds or ApprovalThresholds()
    amount = Decimal(amount)

    if role == Role.MANAGER:
        if amount > limits.manager_limit:
            return ApprovalState.PENDING_FINANCE
        return ApprovalState.APPROVED

    if role == Role.FINANCE:
        if amount > limits.finance_limit:
            return ApprovalState.PENDING_PRESIDENT
        return ApprovalState.APPROVED

    if role == Role.PRESIDENT:
        return ApprovalState.APPROVED

    raise RoutingError(getattr(role, "value", str(role)))


# Which role owns the state a request escalates into
NEXT_APPROVER: Dict[ApprovalState, Role] = {
    ApprovalState.PENDING_MANAGER: Role.MANAGER,
    ApprovalState.PENDING_FINANCE: Role.FINANCE,
    ApprovalState.PENDING_PRESIDENT: Role.PRESIDENT,
}


def approver_for(state: ApprovalState) -> Optional[Role]:
    """Role that must act next on a request in ``state``, if any."""
    if state == ApprovalState.PENDING:
        state = ApprovalState.PENDING_MANAGER
    return NEXT_APPROVER.get(state)


def _to_decimal(value: Any, key: str) -> Decimal:
    try:
        return Decimal(str(value))
    except (InvalidOperation, ValueError):
        raise ValueError(f"Invalid value for {key}: {value!r}")


def parse_thresholds(policy_dict: Dict[str, Any], defaults: ApprovalThresholds) -> ApprovalThresholds:
    """Parse the ``approval`` section of a policy dictionary.

    Missing keys fall back to ``defaults``.
    """
    section = policy_dict.get("approval", policy_dict) or {}
    return ApprovalThresholds(
        manager_limit=_to_decimal(section.get("manager_limit", defaults.manager_limit), "manager_limit"),
        finance_limit=_to_decimal(section.get("finance_limit", defaults.finance_limit), "finance_limit"),
    )


def load_thresholds(
    policy_path: Optional[str] = None,
    defaults: Optional[ApprovalThresholds] = None,
) -> ApprovalThresholds:
    """Load approval thresholds from a YAML policy file.

    Args:
        policy_path: Path to the YAML file, or None to use the defaults
        defaults: Values used for keys the file does not set

    Returns:
        ApprovalThresholds instance

    Raises:
        FileNotFoundError: If the policy file does not exist
        ValueError: If the file is malformed or the limits are inconsistent
    """
    defaults = defaults or ApprovalThresholds()
    if not policy_path:
        return defaults

    path = Path(policy_path)
    if not path.exists():
        raise FileNotFoundError(f"Approval policy file not found: {policy_path}")

    with open(path, "r") as f:
        try:
            policy_dict = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ValueError(f"Invalid YAML in approval policy file: {e}")

    if not isinstance(policy_dict, dict):
        raise ValueError("Approval policy file must contain a mapping")

    return parse_thresholds(policy_dict, defaults)


def thresholds_from_settings(settings) -> ApprovalThresholds:
    """Build thresholds from application settings."""
    defaults = ApprovalThresholds(
        manager_limit=Decimal(settings.manager_approval_limit),
        finance_limit=Decimal(settings.finance_approval_limit),
    )
    return load_thresholds(settings.approval_policy_file, defaults)
