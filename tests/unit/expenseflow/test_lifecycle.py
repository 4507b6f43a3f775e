"""Tests for approval states and the request lifecycle state machine."""

from decimal import Decimal
from uuid import uuid4

import pytest

from expenseflow.core.approval.machine import ApprovalStateMachine, TransitionError
from expenseflow.core.approval.policy import approver_for
from expenseflow.core.approval.states import (
    INITIAL_STATE,
    PENDING_STATES,
    TERMINAL_STATES,
    ApprovalAction,
    ApprovalState,
    canonical_state,
    equivalent_states,
    is_forward,
    is_terminal,
    parse_state,
)
from expenseflow.core.rbac import Role


class TestApprovalStates:
    """Test approval state definitions."""

    def test_initial_state(self):
        assert INITIAL_STATE == ApprovalState.PENDING_MANAGER

    def test_terminal_states(self):
        assert TERMINAL_STATES == {ApprovalState.APPROVED, ApprovalState.REJECTED}

    def test_pending_states_include_legacy(self):
        assert ApprovalState.PENDING in PENDING_STATES
        assert ApprovalState.APPROVED not in PENDING_STATES

    def test_parse_state(self):
        assert parse_state("pending_finance") == ApprovalState.PENDING_FINANCE
        assert parse_state(ApprovalState.APPROVED) == ApprovalState.APPROVED
        assert parse_state("closed") is None

    def test_legacy_alias(self):
        """The unqualified pending status means pending_manager."""
        assert canonical_state(ApprovalState.PENDING) == ApprovalState.PENDING_MANAGER
        assert equivalent_states(ApprovalState.PENDING_MANAGER) == {
            ApprovalState.PENDING_MANAGER,
            ApprovalState.PENDING,
        }
        assert equivalent_states(ApprovalState.PENDING) == equivalent_states(ApprovalState.PENDING_MANAGER)
        assert equivalent_states(ApprovalState.PENDING_FINANCE) == {ApprovalState.PENDING_FINANCE}

    def test_is_terminal(self):
        assert is_terminal(ApprovalState.APPROVED)
        assert is_terminal(ApprovalState.REJECTED)
        assert not is_terminal(ApprovalState.PENDING)

    def test_is_forward(self):
        assert is_forward(ApprovalState.PENDING_MANAGER, ApprovalState.PENDING_FINANCE)
        assert is_forward(ApprovalState.PENDING, ApprovalState.APPROVED)
        assert not is_forward(ApprovalState.PENDING_FINANCE, ApprovalState.PENDING_MANAGER)
        assert not is_forward(ApprovalState.APPROVED, ApprovalState.REJECTED)


class TestApprovalStateMachine:
    """Test state machine transitions."""

    def _machine(self, state=ApprovalState.PENDING_MANAGER, amount="15"):
        return ApprovalStateMachine(uuid4(), state, Decimal(amount))

    def test_manager_approves_small_amount(self):
        machine = self._machine(amount="15")
        assert machine.transition(ApprovalAction.APPROVE, Role.MANAGER) == ApprovalState.APPROVED
        assert machine.is_terminal

    def test_manager_escalates(self):
        machine = self._machine(amount="35")
        assert machine.transition(ApprovalAction.APPROVE, Role.MANAGER) == ApprovalState.PENDING_FINANCE
        assert not machine.is_terminal

    def test_legacy_pending_escalates(self):
        machine = self._machine(state=ApprovalState.PENDING, amount="35")
        assert machine.transition(ApprovalAction.APPROVE, Role.MANAGER) == ApprovalState.PENDING_FINANCE

    @pytest.mark.parametrize("state,role", [
        (ApprovalState.PENDING_MANAGER, Role.MANAGER),
        (ApprovalState.PENDING_FINANCE, Role.FINANCE),
        (ApprovalState.PENDING_PRESIDENT, Role.PRESIDENT),
    ])
    @pytest.mark.parametrize("amount", ["0", "35", "75", "5000"])
    def test_reject_is_single_hop(self, state, role, amount):
        """Reject goes straight to rejected whatever the amount."""
        machine = self._machine(state=state, amount=amount)
        assert machine.transition(ApprovalAction.REJECT, role) == ApprovalState.REJECTED
        assert len(machine.get_history()) == 1

    @pytest.mark.parametrize("terminal", [ApprovalState.APPROVED, ApprovalState.REJECTED])
    def test_no_transition_from_terminal(self, terminal):
        machine = self._machine(state=terminal)
        for action in ApprovalAction:
            with pytest.raises(TransitionError) as exc_info:
                machine.transition(action, Role.PRESIDENT)
            assert exc_info.value.from_state == terminal
        assert machine.state == terminal

    def test_never_moves_backwards(self):
        """A manager-sized approval cannot pull a request back down the ladder."""
        machine = self._machine(state=ApprovalState.PENDING_PRESIDENT, amount="35")
        with pytest.raises(TransitionError):
            machine.transition(ApprovalAction.APPROVE, Role.MANAGER)
        assert machine.state == ApprovalState.PENDING_PRESIDENT

    def test_negative_amount(self):
        with pytest.raises(ValueError):
            ApprovalStateMachine(uuid4(), ApprovalState.PENDING_MANAGER, Decimal("-1"))

    def test_available_actions(self):
        machine = self._machine(state=ApprovalState.PENDING_FINANCE)
        assert machine.get_available_actions(Role.FINANCE) == [ApprovalAction.APPROVE, ApprovalAction.REJECT]
        assert machine.get_available_actions(Role.MANAGER) == []
        assert machine.get_available_actions(Role.ADMIN) == []

    def test_peek_does_not_change_state(self):
        machine = self._machine(amount="35")
        assert machine.peek(ApprovalAction.APPROVE, Role.MANAGER) == ApprovalState.PENDING_FINANCE
        assert machine.state == ApprovalState.PENDING_MANAGER
        assert machine.get_history() == []

    def test_history_recorded(self):
        user_id = uuid4()
        machine = self._machine(state=ApprovalState.PENDING, amount="35")
        machine.transition(ApprovalAction.APPROVE, Role.MANAGER, user_id=user_id, comment="ok")

        history = machine.get_history()
        assert len(history) == 1
        record = history[0]
        assert record["from_state"] == "pending"
        assert record["canonical_from"] == "pending_manager"
        assert record["to_state"] == "pending_finance"
        assert record["action"] == "approve"
        assert record["role"] == "manager"
        assert record["user_id"] == user_id
        assert record["comment"] == "ok"

    def test_callbacks(self):
        calls = []
        machine = self._machine(amount="15")
        machine.register_callback(ApprovalAction.APPROVE, lambda record: calls.append(record["to_state"]))
        machine.register_callback(ApprovalAction.REJECT, lambda record: calls.append("never"))

        machine.transition(ApprovalAction.APPROVE, Role.MANAGER)

        assert calls == ["approved"]

    def test_callback_error_does_not_propagate(self, caplog):
        def boom(record):
            raise RuntimeError("side effect failed")

        machine = self._machine(amount="15")
        machine.register_callback(ApprovalAction.APPROVE, boom)

        assert machine.transition(ApprovalAction.APPROVE, Role.MANAGER) == ApprovalState.APPROVED
        assert "Callback error" in caplog.text


class TestLadder:
    """Test whole-ladder properties."""

    @pytest.mark.parametrize("amount", ["0", "15", "20", "20.01", "35", "50", "50.01", "75", "99999"])
    def test_reaches_approved_within_three_hops(self, amount):
        """Approving with the owning role each time ends in approved in at most three steps."""
        machine = ApprovalStateMachine(uuid4(), INITIAL_STATE, Decimal(amount))
        seen = [machine.state]

        while not machine.is_terminal:
            machine.transition(ApprovalAction.APPROVE, approver_for(machine.state))
            assert machine.state not in seen
            seen.append(machine.state)
            assert len(seen) <= 4

        assert machine.state == ApprovalState.APPROVED

    def test_hop_counts(self):
        def hops(amount):
            machine = ApprovalStateMachine(uuid4(), INITIAL_STATE, Decimal(amount))
            while not machine.is_terminal:
                machine.transition(ApprovalAction.APPROVE, approver_for(machine.state))
            return len(machine.get_history())

        assert hops("15") == 1
        assert hops("35") == 2
        assert hops("75") == 3
