# reversible_engine package

from .engine import Engine, open_engine
from .errors import EngineInvariantError
from .history import CommandHistory
from .models import (
    Accepted,
    AlreadyTerminal,
    EmptyHistory,
    EmptySnapshotStore,
    EngineEvent,
    Entity,
    InvalidTransition,
    OperationKind,
    OperationRequest,
    Redone,
    Rejected,
    RolledBack,
    Snapshot,
    Undone,
    ValidationFailure,
)
from .snapshots import SnapshotStore
from .state_machine import LifecycleStateMachine, TransitionTable
from .validation import ValidatorChain

__all__ = [
    "Engine",
    "open_engine",
    "EngineInvariantError",
    "CommandHistory",
    "SnapshotStore",
    "LifecycleStateMachine",
    "TransitionTable",
    "ValidatorChain",
    "Accepted",
    "AlreadyTerminal",
    "EmptyHistory",
    "EmptySnapshotStore",
    "EngineEvent",
    "Entity",
    "InvalidTransition",
    "OperationKind",
    "OperationRequest",
    "Redone",
    "Rejected",
    "RolledBack",
    "Snapshot",
    "Undone",
    "ValidationFailure",
]
