"""
This module implements the lifecycle state machine.

Behaviour per state is pure data: a `TransitionTable` maps `(state, kind)`
pairs to successor states and names the terminal states. Adding a state means
adding table entries, never new handling code.
"""
from types import MappingProxyType
from typing import Any, FrozenSet, Iterable, List, Mapping, Tuple, Union

from .errors import EngineInvariantError
from .models import AlreadyTerminal, InvalidTransition, OperationKind, TransitionAllowed


class TransitionTable:
    def __init__(
        self,
        transitions: Mapping[Tuple[Any, OperationKind], Any],
        terminal_states: Iterable[Any],
    ):
        self._transitions = MappingProxyType(dict(transitions))
        self._terminal_states: FrozenSet[Any] = frozenset(terminal_states)

        if not self._terminal_states:
            raise ValueError("A transition table needs at least one terminal state.")

        states = set(self._terminal_states)
        for (state, kind), target in self._transitions.items():
            if not isinstance(kind, OperationKind):
                raise TypeError(f"Transition kinds must be OperationKind, got {kind!r}")
            if state in self._terminal_states:
                raise ValueError(
                    f"Terminal state {state!r} cannot have an outgoing '{kind.value}' transition."
                )
            states.add(state)
            states.add(target)
        self._states: FrozenSet[Any] = frozenset(states)

    @property
    def states(self) -> FrozenSet[Any]:
        return self._states

    @property
    def terminal_states(self) -> FrozenSet[Any]:
        return self._terminal_states

    def target(self, state: Any, kind: OperationKind) -> Any | None:
        return self._transitions.get((state, kind))

    def extended(
        self,
        transitions: Mapping[Tuple[Any, OperationKind], Any],
        terminal_states: Iterable[Any] = (),
    ) -> "TransitionTable":
        """Returns a new table with extra entries; this table is left as is."""
        merged = dict(self._transitions)
        merged.update(transitions)
        return TransitionTable(merged, self._terminal_states | frozenset(terminal_states))

    def __contains__(self, key: Tuple[Any, OperationKind]) -> bool:
        return key in self._transitions

    def __len__(self) -> int:
        return len(self._transitions)


class LifecycleStateMachine:
    """Answers whether an operation kind is legal from a given state."""

    def __init__(self, table: TransitionTable):
        self.table = table

    def check(
        self, state: Any, kind: OperationKind
    ) -> Union[TransitionAllowed, AlreadyTerminal, InvalidTransition]:
        if state not in self.table.states:
            raise EngineInvariantError(f"State {state!r} is not part of the transition table.")
        if state in self.table.terminal_states:
            return AlreadyTerminal(from_state=state, kind=kind)
        target = self.table.target(state, kind)
        if target is None:
            return InvalidTransition(from_state=state, kind=kind)
        return TransitionAllowed(from_state=state, kind=kind, to_state=target)

    def is_terminal(self, state: Any) -> bool:
        return state in self.table.terminal_states

    def allowed_kinds(self, state: Any) -> List[OperationKind]:
        return [kind for kind in OperationKind if (state, kind) in self.table]
