"""Tests for the approval threshold policy."""

from decimal import Decimal

import pytest

from expenseflow.core.approval.policy import (
    ApprovalThresholds,
    approver_for,
    load_thresholds,
    next_state,
    parse_thresholds,
    thresholds_from_settings,
)
from expenseflow.core.approval.states import ApprovalState
from expenseflow.core.config import Settings
from expenseflow.core.errors import RoutingError
from expenseflow.core.rbac import Role


class TestNextState:
    """Test routing of an approval to the next state."""

    @pytest.mark.parametrize("amount,expected", [
        ("0", ApprovalState.APPROVED),
        ("15", ApprovalState.APPROVED),
        ("20", ApprovalState.APPROVED),
        ("20.01", ApprovalState.PENDING_FINANCE),
        ("35", ApprovalState.PENDING_FINANCE),
        ("10000", ApprovalState.PENDING_FINANCE),
    ])
    def test_manager(self, amount, expected):
        """Manager approves up to the manager limit inclusive."""
        assert next_state(Role.MANAGER, Decimal(amount)) == expected

    @pytest.mark.parametrize("amount,expected", [
        ("21", ApprovalState.APPROVED),
        ("50", ApprovalState.APPROVED),
        ("50.01", ApprovalState.PENDING_PRESIDENT),
        ("75", ApprovalState.PENDING_PRESIDENT),
    ])
    def test_finance(self, amount, expected):
        """Finance approves up to the finance limit inclusive."""
        assert next_state(Role.FINANCE, Decimal(amount)) == expected

    @pytest.mark.parametrize("amount", ["0", "50", "75", "1000000"])
    def test_president_always_approves(self, amount):
        assert next_state(Role.PRESIDENT, Decimal(amount)) == ApprovalState.APPROVED

    @pytest.mark.parametrize("role", [Role.EMPLOYEE, Role.ADMIN])
    def test_unrouted_roles_raise(self, role):
        """Roles without an approval tier cannot be routed."""
        with pytest.raises(RoutingError) as exc_info:
            next_state(role, Decimal("10"))
        assert exc_info.value.role == role.value

    def test_never_returns_initial_state(self):
        """No approval sends a request back to the manager tier."""
        for role in (Role.MANAGER, Role.FINANCE, Role.PRESIDENT):
            for amount in ("0", "20", "21", "50", "51", "999"):
                assert next_state(role, Decimal(amount)) != ApprovalState.PENDING_MANAGER

    def test_custom_thresholds(self):
        limits = ApprovalThresholds(manager_limit=Decimal("100"), finance_limit=Decimal("500"))
        assert next_state(Role.MANAGER, Decimal("100"), limits) == ApprovalState.APPROVED
        assert next_state(Role.MANAGER, Decimal("101"), limits) == ApprovalState.PENDING_FINANCE
        assert next_state(Role.FINANCE, Decimal("501"), limits) == ApprovalState.PENDING_PRESIDENT

    def test_accepts_int_amount(self):
        assert next_state(Role.MANAGER, 30) == ApprovalState.PENDING_FINANCE


class TestApprovalThresholds:
    """Test threshold validation."""

    def test_defaults(self):
        limits = ApprovalThresholds()
        assert limits.manager_limit == Decimal("20")
        assert limits.finance_limit == Decimal("50")

    def test_finance_must_exceed_manager(self):
        with pytest.raises(ValueError, match="finance_limit"):
            ApprovalThresholds(manager_limit=Decimal("50"), finance_limit=Decimal("50"))

    def test_negative_rejected(self):
        with pytest.raises(ValueError, match="non-negative"):
            ApprovalThresholds(manager_limit=Decimal("-1"), finance_limit=Decimal("50"))


class TestApproverFor:
    """Test next approver lookup."""

    def test_pending_states(self):
        assert approver_for(ApprovalState.PENDING_MANAGER) == Role.MANAGER
        assert approver_for(ApprovalState.PENDING) == Role.MANAGER
        assert approver_for(ApprovalState.PENDING_FINANCE) == Role.FINANCE
        assert approver_for(ApprovalState.PENDING_PRESIDENT) == Role.PRESIDENT

    def test_terminal_states_have_no_approver(self):
        assert approver_for(ApprovalState.APPROVED) is None
        assert approver_for(ApprovalState.REJECTED) is None


class TestPolicyFile:
    """Test loading thresholds from YAML."""

    def test_no_file_returns_defaults(self):
        assert load_thresholds(None) == ApprovalThresholds()

    def test_load_file(self, tmp_path):
        policy = tmp_path / "policy.yaml"
        policy.write_text("approval:\n  manager_limit: 100\n  finance_limit: 1000.50\n")

        limits = load_thresholds(str(policy))

        assert limits.manager_limit == Decimal("100")
        assert limits.finance_limit == Decimal("1000.50")

    def test_partial_file_keeps_defaults(self, tmp_path):
        policy = tmp_path / "policy.yaml"
        policy.write_text("approval:\n  finance_limit: 80\n")

        limits = load_thresholds(str(policy))

        assert limits.manager_limit == Decimal("20")
        assert limits.finance_limit == Decimal("80")

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_thresholds(str(tmp_path / "missing.yaml"))

    def test_invalid_yaml(self, tmp_path):
        policy = tmp_path / "policy.yaml"
        policy.write_text("approval: [unclosed\n")

        with pytest.raises(ValueError, match="Invalid YAML"):
            load_thresholds(str(policy))

    def test_not_a_mapping(self, tmp_path):
        policy = tmp_path / "policy.yaml"
        policy.write_text("- 20\n- 50\n")

        with pytest.raises(ValueError, match="mapping"):
            load_thresholds(str(policy))

    def test_inconsistent_limits(self, tmp_path):
        policy = tmp_path / "policy.yaml"
        policy.write_text("approval:\n  manager_limit: 60\n  finance_limit: 50\n")

        with pytest.raises(ValueError):
            load_thresholds(str(policy))

    def test_bad_number(self):
        with pytest.raises(ValueError, match="manager_limit"):
            parse_thresholds({"approval": {"manager_limit": "lots"}}, ApprovalThresholds())

    def test_from_settings(self, tmp_path):
        settings = Settings(manager_approval_limit=Decimal("30"), finance_approval_limit=Decimal("90"))
        limits = thresholds_from_settings(settings)
        assert limits == ApprovalThresholds(Decimal("30"), Decimal("90"))

        policy = tmp_path / "policy.yaml"
        policy.write_text("approval:\n  finance_limit: 200\n")
        settings = Settings(manager_approval_limit=Decimal("30"), approval_policy_file=str(policy))
        assert thresholds_from_settings(settings) == ApprovalThresholds(Decimal("30"), Decimal("200"))
