"""
This module defines the core data models for the reversible operation engine
using Pydantic. Requests, snapshots and every outcome the engine reports are
plain, validated models; business rejections are values, never exceptions.
"""
from enum import Enum
from datetime import datetime
from typing import Any, Dict, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field


class OperationKind(str, Enum):
    HANDLE = "handle"  # forward progress
    CANCEL = "cancel"  # abort path


class Entity(BaseModel):
    """The mutable subject an engine operates on."""

    state: Any
    data: Dict[str, Any] = Field(default_factory=dict)


class OperationRequest(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: OperationKind
    payload: Dict[str, Any] = Field(default_factory=dict)
    request_id: Optional[str] = None


class Snapshot(BaseModel):
    model_config = ConfigDict(frozen=True)

    sequence: int
    timestamp: datetime
    data: Dict[str, Any]  # Deep copy of the entity data at capture time
    state: Any = None  # Only set when the engine captures lifecycle state


class RollbackOutcome(BaseModel):
    removed: Optional[Snapshot] = None
    restored: Optional[Snapshot] = None  # None with a removal means the store emptied

    @property
    def is_empty(self) -> bool:
        return self.removed is None and self.restored is None


# --- Validation and transition verdicts ---


class ValidationPassed(BaseModel):
    code: Literal["validation_passed"] = "validation_passed"


class ValidationFailure(BaseModel):
    code: Literal["validation_failure"] = "validation_failure"
    validator_index: int
    validator_name: str
    reason: str


class TransitionAllowed(BaseModel):
    code: Literal["transition_allowed"] = "transition_allowed"
    from_state: Any
    kind: OperationKind
    to_state: Any


class InvalidTransition(BaseModel):
    code: Literal["invalid_transition"] = "invalid_transition"
    from_state: Any
    kind: OperationKind


class AlreadyTerminal(InvalidTransition):
    # Specialization of InvalidTransition for terminal states.
    code: Literal["already_terminal"] = "already_terminal"


# --- Engine results ---


class Accepted(BaseModel):
    outcome: Literal["accepted"] = "accepted"
    state: Any
    command_id: int
    snapshot_sequence: Optional[int] = None


class Rejected(BaseModel):
    outcome: Literal["rejected"] = "rejected"
    stage: Literal["validation", "transition"]
    error: Union[ValidationFailure, AlreadyTerminal, InvalidTransition] = Field(
        discriminator="code"
    )


EngineResult = Union[Accepted, Rejected]


class Undone(BaseModel):
    outcome: Literal["undone"] = "undone"
    command_id: int
    state: Any


class Redone(BaseModel):
    outcome: Literal["redone"] = "redone"
    command_id: int
    state: Any
    snapshot_sequence: Optional[int] = None


class EmptyHistory(BaseModel):
    outcome: Literal["empty_history"] = "empty_history"
    operation: Literal["undo", "redo"]


class RolledBack(BaseModel):
    outcome: Literal["rolled_back"] = "rolled_back"
    snapshot_sequence: Optional[int]  # None when the store was emptied
    data: Dict[str, Any]
    state: Any


class EmptySnapshotStore(BaseModel):
    outcome: Literal["empty_snapshot_store"] = "empty_snapshot_store"
    data: Dict[str, Any]  # The documented default, not the entity's data


class EngineEvent(BaseModel):
    type: Literal["accepted", "undone", "redone", "checkpoint", "rolled_back"]
    state: Any
    timestamp: datetime
    command_id: Optional[int] = None
    snapshot_sequence: Optional[int] = None
