import pytest

from reversible_engine.errors import EngineInvariantError
from reversible_engine.models import AlreadyTerminal, InvalidTransition, OperationKind, TransitionAllowed
from reversible_engine.orders import ORDER_TABLE, OrderState
from reversible_engine.state_machine import LifecycleStateMachine, TransitionTable

HANDLE = OperationKind.HANDLE
CANCEL = OperationKind.CANCEL


@pytest.fixture
def machine():
    return LifecycleStateMachine(ORDER_TABLE)


@pytest.mark.parametrize(
    "state, kind, target",
    [
        (OrderState.PENDING, HANDLE, OrderState.PAYMENT),
        (OrderState.PENDING, CANCEL, OrderState.CANCELLED),
        (OrderState.PAYMENT, HANDLE, OrderState.DELIVERED),
        (OrderState.PAYMENT, CANCEL, OrderState.CANCELLED),
    ],
)
def test_allowed_transitions(machine, state, kind, target):
    decision = machine.check(state, kind)
    assert isinstance(decision, TransitionAllowed)
    assert decision.from_state == state
    assert decision.to_state == target


@pytest.mark.parametrize("state", [OrderState.DELIVERED, OrderState.CANCELLED])
@pytest.mark.parametrize("kind", [HANDLE, CANCEL])
def test_terminal_states_reject_everything(machine, state, kind):
    decision = machine.check(state, kind)
    assert isinstance(decision, AlreadyTerminal)
    assert isinstance(decision, InvalidTransition)
    assert decision.code == "already_terminal"
    assert machine.is_terminal(state)


def test_unmapped_kind_is_invalid_transition():
    table = TransitionTable({("active", HANDLE): "done"}, terminal_states=["done"])
    decision = LifecycleStateMachine(table).check("active", CANCEL)
    assert type(decision) is InvalidTransition
    assert decision.code == "invalid_transition"
    assert decision.from_state == "active"
    assert decision.kind == CANCEL


def test_unknown_state_is_an_invariant_violation(machine):
    with pytest.raises(EngineInvariantError):
        machine.check("shipped", HANDLE)


def test_table_requires_a_terminal_state():
    with pytest.raises(ValueError, match="terminal"):
        TransitionTable({("a", HANDLE): "b"}, terminal_states=[])


def test_terminal_state_cannot_have_outgoing_transitions():
    with pytest.raises(ValueError):
        TransitionTable({("done", HANDLE): "again"}, terminal_states=["done"])


def test_kinds_must_be_operation_kinds():
    with pytest.raises(TypeError):
        TransitionTable({("a", "handle"): "b"}, terminal_states=["b"])


def test_states_and_allowed_kinds(machine):
    assert ORDER_TABLE.states == frozenset(OrderState)
    assert machine.allowed_kinds(OrderState.PENDING) == [HANDLE, CANCEL]
    assert machine.allowed_kinds(OrderState.DELIVERED) == []


def test_extending_a_table_leaves_the_original_alone():
    extended = ORDER_TABLE.extended(
        {(OrderState.PAYMENT, HANDLE): "shipping", ("shipping", HANDLE): OrderState.DELIVERED}
    )
    machine = LifecycleStateMachine(extended)
    assert machine.check(OrderState.PAYMENT, HANDLE).to_state == "shipping"
    assert machine.check("shipping", HANDLE).to_state == OrderState.DELIVERED
    assert ORDER_TABLE.target(OrderState.PAYMENT, HANDLE) == OrderState.DELIVERED
    assert "shipping" not in ORDER_TABLE.states
